"""
Base fetcher interface for remote dataset sources.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Raw remote content for one dataset, still in its transport encoding."""
    name: str                 # dataset file name, e.g. "time_series_covid19_deaths_global.csv"
    content: str
    encoding: str             # "base64" or "none" (plain text)
    sha: str = ""
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    source_url: str = ""
    from_cache: bool = False


class BaseFetcher(ABC):
    """Abstract base for all dataset fetchers."""

    provider_name: str = "base"

    @abstractmethod
    async def fetch(self, name: str) -> FetchResult:
        """
        Retrieve one dataset by file name.
        Raises a FetchError subclass on any failure.
        """
        ...
