"""
Case-count time series data model.

A Dataset is one JHU CSSE table: a header of column labels (province,
country, lat, long, then one label per reporting day) and one Record per
region. Dates are positional — the i-th case count of every record belongs
to the i-th date label.
"""
from __future__ import annotations

from dataclasses import dataclass, field

# Columns preceding the date labels in every header
META_COLUMNS = 4


@dataclass(frozen=True)
class Record:
    """One region's metadata plus its cumulative case counts."""
    province: str
    country: str
    lat: float
    long: float
    cases: tuple[int, ...] = field(default_factory=tuple)

    @property
    def latest(self) -> int:
        return self.cases[-1]


@dataclass(frozen=True)
class Dataset:
    """Header plus records for one case type."""
    header: tuple[str, ...]
    records: tuple[Record, ...]
    name: str = ""

    def __post_init__(self) -> None:
        days = len(self.header) - META_COLUMNS
        for i, rec in enumerate(self.records):
            if len(rec.cases) != days:
                raise ValueError(
                    f"record {i} ({rec.country!r}) has {len(rec.cases)} case "
                    f"entries, header has {days} date columns"
                )

    @property
    def dates(self) -> tuple[str, ...]:
        return self.header[META_COLUMNS:]

    @property
    def days(self) -> int:
        return len(self.header) - META_COLUMNS

    def __len__(self) -> int:
        return len(self.records)
