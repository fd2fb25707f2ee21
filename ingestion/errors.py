"""
Error taxonomy for the fetch → decode → query pipeline.

Fetch- and decode-stage errors are fatal: the three datasets are treated
as one unit, so any failure aborts the whole run. CountryNotFound is the
only condition reported at the CLI boundary without a stack of causes.
"""
from __future__ import annotations

from typing import Optional


class CovidError(Exception):
    """Base for every error this package raises on purpose."""


# ─── Fetch Stage ─────────────────────────────────────────────────────────────

class FetchError(CovidError):
    def __init__(self, dataset: str, message: str):
        self.dataset = dataset
        super().__init__(f"cannot get data ({dataset}): {message}")


class RemoteTimeout(FetchError):
    def __init__(self, dataset: str, timeout: float):
        self.timeout = timeout
        super().__init__(dataset, f"no response within {timeout:g}s")


class RateLimited(FetchError):
    def __init__(self, dataset: str, reset_at: Optional[str] = None):
        self.reset_at = reset_at
        detail = "hit rate limit"
        if reset_at:
            detail += f" (resets at {reset_at})"
        super().__init__(dataset, detail)


class RemoteError(FetchError):
    def __init__(self, dataset: str, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(dataset, message)


# ─── Decode Stage ────────────────────────────────────────────────────────────

class DecodeStageError(CovidError):
    def __init__(self, dataset: str, message: str):
        self.dataset = dataset
        super().__init__(f"{message} ({dataset})")


class DecodeError(DecodeStageError):
    """Transport encoding could not be undone."""


class PersistenceError(DecodeStageError):
    """Raw payload could not be written to disk."""


class ParseError(DecodeStageError):
    """Payload is not a well-formed CSV table."""


class FieldParseError(DecodeStageError):
    """A coordinate or case count is not a number."""

    def __init__(self, dataset: str, row: int, column: str, value: str):
        self.row = row
        self.column = column
        self.value = value
        super().__init__(
            dataset,
            f"cannot convert number {value!r} in row {row}, column {column!r}",
        )


# ─── Query Stage ─────────────────────────────────────────────────────────────

class CountryNotFound(CovidError):
    def __init__(self, country: str):
        self.country = country
        super().__init__(f"Country {country} is not in the list")


class NotEnoughDays(CovidError):
    """Day-over-day figures need at least two date columns."""

    def __init__(self, dataset: str, days: int):
        self.dataset = dataset
        self.days = days
        super().__init__(
            f"{dataset} has {days} date column(s), need at least 2 to report new cases"
        )
