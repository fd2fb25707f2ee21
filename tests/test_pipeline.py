from __future__ import annotations
import asyncio
import base64
import logging
import time
from typing import Optional
import httpx
import pytest
from config.settings import DATASET_REGISTRY
from ingestion.errors import FieldParseError, RemoteError, RemoteTimeout
from ingestion.fetchers.base import BaseFetcher, FetchResult
from ingestion.fetchers.github import GitHubContentsFetcher
from ingestion.pipeline import CovidPipeline, JoinedDatasets

CONFIRMED, DEAD, RECOVERED = (d.filename for d in DATASET_REGISTRY)

HEADER = "Province/State,Country/Region,Lat,Long,1/22/20,1/23/20,1/24/20\n"
PAYLOADS = {
    CONFIRMED: HEADER + "North,Country A,1,1,1,2,3\nSouth,Country A,1,1,4,5,6\n,Country B,2,2,0,0,1\n",
    DEAD: HEADER + "North,Country A,1,1,0,1,1\nSouth,Country A,1,1,0,0,1\n,Country B,2,2,0,0,0\n",
    RECOVERED: HEADER + "North,Country A,1,1,0,0,1\nSouth,Country A,1,1,0,1,2\n,Country B,2,2,0,0,0\n",
}


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


class FakeFetcher(BaseFetcher):
    """Serves PAYLOADS after per-dataset delays; records cancellations."""

    provider_name = "fake"

    def __init__(
        self,
        delays: Optional[dict[str, float]] = None,
        errors: Optional[dict[str, Exception]] = None,
        payloads: Optional[dict[str, str]] = None,
    ):
        self.delays = delays or {}
        self.errors = errors or {}
        self.payloads = payloads or PAYLOADS
        self.started: list[str] = []
        self.cancelled: list[str] = []
        # (name, fetches started by the time this one finished)
        self.finished: list[tuple[str, int]] = []

    async def fetch(self, name: str) -> FetchResult:
        self.started.append(name)
        try:
            await asyncio.sleep(self.delays.get(name, 0.0))
        except asyncio.CancelledError:
            self.cancelled.append(name)
            raise
        self.finished.append((name, len(self.started)))
        if name in self.errors:
            raise self.errors[name]
        return FetchResult(name=name, content=_b64(self.payloads[name]), encoding="base64")


def _run(pipeline: CovidPipeline) -> JoinedDatasets:
    return asyncio.run(pipeline.run())


# ── Join barrier ──────────────────────────────────────────────────────────────

def test_joins_all_three_datasets():
    joined = _run(CovidPipeline(FakeFetcher()))
    assert joined.confirmed.name == CONFIRMED
    assert joined.dead.name == DEAD
    assert joined.recovered.name == RECOVERED
    assert joined.confirmed.records[1].cases == (4, 5, 6)
    assert joined.get("dead") is joined.dead


def test_datasets_share_date_columns():
    joined = _run(CovidPipeline(FakeFetcher()))
    assert joined.confirmed.header == joined.dead.header == joined.recovered.header


def test_waits_for_slowest_task_in_parallel():
    """One slow fetch and two fast ones: wall time tracks the slowest, not the sum."""
    fetcher = FakeFetcher(delays={CONFIRMED: 0.1, DEAD: 0.9, RECOVERED: 0.1})
    start = time.monotonic()
    joined = _run(CovidPipeline(fetcher))
    elapsed = time.monotonic() - start

    assert joined.dead.records[0].cases == (0, 1, 1)
    assert elapsed >= 0.9
    # Loose bound; the finished snapshots below show the overlap
    assert elapsed < 1.5
    assert sorted(fetcher.started) == sorted(PAYLOADS)
    # All three were in flight before the first one returned
    assert [started for _, started in fetcher.finished] == [3, 3, 3]
    assert fetcher.finished[-1][0] == DEAD


def test_completion_order_does_not_matter():
    fast_first = _run(CovidPipeline(FakeFetcher(delays={CONFIRMED: 0.2})))
    slow_first = _run(CovidPipeline(FakeFetcher(delays={RECOVERED: 0.2})))
    assert fast_first == slow_first


# ── Fail fast ─────────────────────────────────────────────────────────────────

def test_dead_dataset_timeout_is_fatal(caplog):
    """A stalled deaths fetch aborts the run; finished datasets are discarded."""

    async def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        if name == DEAD:
            await asyncio.sleep(2.0)
        return httpx.Response(200, json={"content": _b64(PAYLOADS[name]), "encoding": "base64"})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            fetcher = GitHubContentsFetcher(client=client, timeout=0.2, token=None)
            return await CovidPipeline(fetcher).run()

    caplog.set_level(logging.WARNING)
    start = time.monotonic()
    with pytest.raises(RemoteTimeout) as exc_info:
        asyncio.run(go())
    assert exc_info.value.dataset == DEAD
    assert time.monotonic() - start < 1.5
    assert caplog.records == []


def test_first_error_cancels_siblings():
    fetcher = FakeFetcher(
        delays={CONFIRMED: 5.0, RECOVERED: 5.0},
        errors={DEAD: RemoteError(DEAD, "boom")},
    )
    start = time.monotonic()
    with pytest.raises(RemoteError):
        _run(CovidPipeline(fetcher))
    assert time.monotonic() - start < 1.0
    assert sorted(fetcher.cancelled) == sorted([CONFIRMED, RECOVERED])


def test_fatal_error_is_not_logged_above_info(caplog):
    """The CLI prints the fatal error once; the library keeps it at INFO."""
    caplog.set_level(logging.WARNING)
    fetcher = FakeFetcher(errors={DEAD: RemoteError(DEAD, "boom")})
    with pytest.raises(RemoteError):
        _run(CovidPipeline(fetcher))
    assert caplog.records == []


def test_decode_error_is_fatal():
    payloads = dict(PAYLOADS)
    payloads[RECOVERED] = HEADER + ",Country B,2,2,0,zero,0\n"
    with pytest.raises(FieldParseError):
        _run(CovidPipeline(FakeFetcher(payloads=payloads)))


# ── Persistence ───────────────────────────────────────────────────────────────

def test_persist_writes_one_file_per_dataset(tmp_path):
    _run(CovidPipeline(FakeFetcher(), work_dir=tmp_path, persist=True))
    for name, text in PAYLOADS.items():
        assert (tmp_path / name).read_text(encoding="utf-8") == text


def test_no_persist_writes_nothing(tmp_path):
    _run(CovidPipeline(FakeFetcher(), work_dir=tmp_path, persist=False))
    assert list(tmp_path.iterdir()) == []


def test_persist_requires_work_dir():
    with pytest.raises(ValueError):
        CovidPipeline(FakeFetcher(), persist=True)


def test_unknown_case_type():
    joined = _run(CovidPipeline(FakeFetcher()))
    with pytest.raises(KeyError):
        joined.get("hospitalised")
