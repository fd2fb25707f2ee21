"""
On-disk HTTP response cache keyed by request URL.

Stores the last successful body together with its ETag so the fetcher can
send a conditional request and reuse the body on 304 Not Modified. The
cache is an optimisation only: unreadable entries count as misses and
write failures are logged, never raised.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedResponse:
    url: str
    etag: str
    body: str


class ResponseCache:
    """One JSON file per URL under a cache directory."""

    def __init__(self, directory: Path):
        self._dir = Path(directory)

    def _entry_path(self, url: str) -> Path:
        key = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return self._dir / f"{key}.json"

    def get(self, url: str) -> Optional[CachedResponse]:
        """Return the cached response for url, or None on miss."""
        path = self._entry_path(url)
        if not path.exists():
            return None
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
            return CachedResponse(url=entry["url"], etag=entry["etag"], body=entry["body"])
        except (OSError, ValueError, KeyError) as exc:
            logger.warning("Could not read cache entry %s: %s — treating as miss", path, exc)
            return None

    def put(self, url: str, etag: Optional[str], body: str) -> None:
        """Store body for url. Responses without an ETag are not cached."""
        if not etag:
            return
        path = self._entry_path(url)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(
                json.dumps({"url": url, "etag": etag, "body": body}),
                encoding="utf-8",
            )
            tmp.replace(path)
        except OSError as exc:
            logger.warning("Could not write cache entry %s: %s", path, exc)

