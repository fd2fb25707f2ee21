"""
GitHub repository contents API fetcher.

Endpoint: https://api.github.com/repos/{owner}/{repo}/contents/{path}
Docs: https://docs.github.com/en/rest/repos/contents

Returns the file body base64-encoded inside a JSON envelope. Files larger
than 1 MB come back with encoding "none" and an empty body; for those we
follow the envelope's download_url and return the plain text.

Every fetch is bounded by a single timeout measured from its own start.
Timeouts, rate limits and transport errors are raised, never retried.
"""
from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from config.settings import (
    GITHUB_API_URL,
    GITHUB_TOKEN,
    REMOTE_OWNER,
    REMOTE_REPO,
    REMOTE_SERVER_TIMEOUT,
    remote_path,
)
from ingestion.cache import ResponseCache
from ingestion.errors import RateLimited, RemoteError, RemoteTimeout
from ingestion.fetchers.base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)

# Response headers worth keeping on the FetchResult
_KEPT_HEADERS = ("etag", "last-modified", "x-ratelimit-remaining", "x-ratelimit-reset")


class GitHubContentsFetcher(BaseFetcher):
    """Fetches JHU CSSE time series files from GitHub."""

    provider_name = "github"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = REMOTE_SERVER_TIMEOUT,
        token: Optional[str] = GITHUB_TOKEN,
        cache: Optional[ResponseCache] = None,
        owner: str = REMOTE_OWNER,
        repo: str = REMOTE_REPO,
    ):
        self._client = client
        self._timeout = timeout
        self._token = token
        self._cache = cache
        self._owner = owner
        self._repo = repo

    def contents_url(self, name: str) -> str:
        return f"{GITHUB_API_URL}/repos/{self._owner}/{self._repo}/contents/{remote_path(name)}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def fetch(self, name: str) -> FetchResult:
        """
        Fetch one dataset file.

        Raises:
            RemoteTimeout: no complete response within the timeout.
            RateLimited: GitHub refused the request for rate limiting.
            RemoteError: any other transport or HTTP failure.
        """
        logger.info("Get remote data, path: %s", name)
        try:
            return await asyncio.wait_for(self._fetch(name), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.info("Timed out after %.1fs fetching %s", self._timeout, name)
            raise RemoteTimeout(name, self._timeout) from exc

    async def _fetch(self, name: str) -> FetchResult:
        if self._client is not None:
            return await self._request(self._client, name)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._request(client, name)

    async def _request(self, client: httpx.AsyncClient, name: str) -> FetchResult:
        url = self.contents_url(name)
        headers = self._headers()

        cached = self._cache.get(url) if self._cache is not None else None
        if cached is not None:
            headers["If-None-Match"] = cached.etag

        resp = await self._get(client, name, url, headers)
        logger.info(
            "Response received: %s %s (rate limit remaining: %s)",
            resp.status_code, url, resp.headers.get("x-ratelimit-remaining", "?"),
        )

        if resp.status_code == 304 and cached is not None:
            body = cached.body
            from_cache = True
        else:
            self._raise_for_status(name, resp)
            body = resp.text
            from_cache = False
            if self._cache is not None:
                self._cache.put(url, resp.headers.get("etag"), body)

        try:
            envelope = json.loads(body)
        except ValueError as exc:
            raise RemoteError(name, f"malformed contents response: {exc}") from exc
        if not isinstance(envelope, dict):
            raise RemoteError(name, "contents response is not a file object")

        content = envelope.get("content") or ""
        encoding = envelope.get("encoding") or "base64"

        # Large files: contents API omits the body, raw download does not
        if not content and envelope.get("download_url"):
            raw = await self._get(client, name, envelope["download_url"], self._headers())
            self._raise_for_status(name, raw)
            content = raw.text
            encoding = "none"

        return FetchResult(
            name=name,
            content=content,
            encoding=encoding,
            sha=envelope.get("sha", ""),
            status_code=resp.status_code,
            headers={k: resp.headers[k] for k in _KEPT_HEADERS if k in resp.headers},
            source_url=envelope.get("html_url", url),
            from_cache=from_cache,
        )

    async def _get(
        self,
        client: httpx.AsyncClient,
        name: str,
        url: str,
        headers: dict[str, str],
    ) -> httpx.Response:
        try:
            return await client.get(url, headers=headers, follow_redirects=True)
        except httpx.TimeoutException as exc:
            raise RemoteTimeout(name, self._timeout) from exc
        except httpx.HTTPError as exc:
            raise RemoteError(name, str(exc) or exc.__class__.__name__) from exc

    @staticmethod
    def _raise_for_status(name: str, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        remaining = resp.headers.get("x-ratelimit-remaining")
        if resp.status_code == 429 or (resp.status_code == 403 and remaining == "0"):
            raise RateLimited(name, _format_reset(resp.headers.get("x-ratelimit-reset")))
        raise RemoteError(
            name,
            f"HTTP {resp.status_code} from {resp.request.url}",
            status_code=resp.status_code,
        )


def _format_reset(value: Optional[str]) -> Optional[str]:
    """X-RateLimit-Reset is epoch seconds; show it as an ISO timestamp."""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()
    except ValueError:
        return value
