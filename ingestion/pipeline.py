"""
Ingestion pipeline — parallel fetch + decode of the three case-type tables.

One asyncio task per dataset runs fetch → decode end to end. The tasks
share nothing; the only synchronization point is the join barrier in
run(), which returns once all three datasets are decoded.

Fail fast: the first fetch or decode error cancels the sibling tasks and
propagates. Datasets that already finished are discarded — there is no
partial-success mode.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx

from config.settings import (
    CASE_TYPES,
    DATASET_REGISTRY,
    REMOTE_SERVER_TIMEOUT,
    DatasetDefinition,
    cache_dir,
)
from ingestion.cache import ResponseCache
from ingestion.decoder import decode
from ingestion.errors import CovidError
from ingestion.fetchers.base import BaseFetcher
from ingestion.fetchers.github import GitHubContentsFetcher
from models.timeseries import Dataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinedDatasets:
    """The three decoded datasets, available only once all are complete."""
    confirmed: Dataset
    dead: Dataset
    recovered: Dataset

    def get(self, case_type: str) -> Dataset:
        if case_type not in CASE_TYPES:
            raise KeyError(f"Unknown case type '{case_type}'")
        return getattr(self, case_type)


class CovidPipeline:
    """
    Fan-out / fan-in over the dataset registry.

    Usage:
        pipeline = CovidPipeline(fetcher, work_dir=Path("~/covid"), persist=True)
        joined = await pipeline.run()
        joined.confirmed.records
    """

    def __init__(
        self,
        fetcher: BaseFetcher,
        work_dir: Optional[Path] = None,
        persist: bool = False,
    ):
        if persist and work_dir is None:
            raise ValueError("persist=True needs a work_dir to write into")
        self._fetcher = fetcher
        self._work_dir = work_dir
        self._persist = persist

    def persist_path(self, definition: DatasetDefinition) -> Optional[Path]:
        """Per-dataset file, unique by name so concurrent writes never collide."""
        if not self._persist:
            return None
        return self._work_dir / definition.filename

    async def run(self) -> JoinedDatasets:
        """
        Fetch and decode every dataset concurrently and join the results.

        Raises:
            CovidError: the first fatal fetch/decode error from any task.
        """
        tasks = {
            d.case_type: asyncio.create_task(self._fetch_and_decode(d), name=d.case_type)
            for d in DATASET_REGISTRY
        }

        logger.info("Fetching %d datasets in parallel", len(tasks))
        start_ts = datetime.now(timezone.utc)
        try:
            results = await asyncio.gather(*tasks.values())
        except BaseException as exc:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            if isinstance(exc, CovidError):
                logger.info("Pipeline aborted: %s", exc)
            raise
        elapsed = (datetime.now(timezone.utc) - start_ts).total_seconds()
        logger.info("Fetch phase complete in %.1f seconds", elapsed)

        by_type = dict(zip(tasks.keys(), results))
        return JoinedDatasets(
            confirmed=by_type["confirmed"],
            dead=by_type["dead"],
            recovered=by_type["recovered"],
        )

    async def _fetch_and_decode(self, definition: DatasetDefinition) -> Dataset:
        # The awaited fetch result is the single handoff to the decode stage
        result = await self._fetcher.fetch(definition.filename)
        # Decoding blocks on file I/O when persisting — keep it off the loop
        return await asyncio.to_thread(decode, result, self.persist_path(definition))


async def run_pipeline(
    work_dir: Path,
    use_cache: bool = True,
    persist: bool = True,
    timeout: float = REMOTE_SERVER_TIMEOUT,
) -> JoinedDatasets:
    """Build the GitHub fetcher, run the pipeline, close the HTTP client."""
    cache = ResponseCache(cache_dir(work_dir)) if use_cache else None
    async with httpx.AsyncClient(timeout=timeout) as client:
        fetcher = GitHubContentsFetcher(client=client, timeout=timeout, cache=cache)
        pipeline = CovidPipeline(fetcher, work_dir=work_dir, persist=persist)
        return await pipeline.run()
