"""
Aggregations over decoded case-count datasets.

All functions are pure: they read a Dataset and return new values or a
newly constructed Dataset, never mutating their input.

Country lookups (filter_country) search the country-reduced view, so a
country split into provinces (e.g. Canada, China) resolves to one
consolidated record.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from models.timeseries import Dataset, Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Summary:
    """Latest cumulative count and its day-over-day change."""
    total: int
    new: int


def total(dataset: Dataset, day: int = -1) -> int:
    """
    Sum of case counts at one day across all records.

    Negative days index from the end: -1 is the latest day, -2 the one before.
    """
    if not dataset.records:
        return 0
    if not -dataset.days <= day < dataset.days:
        raise IndexError(f"day {day} out of range for {dataset.days} date columns")
    return sum(rec.cases[day] for rec in dataset.records)


def delta(dataset: Dataset) -> int:
    """Global change between the last two days."""
    return total(dataset, -1) - total(dataset, -2)


def record_delta(record: Record) -> int:
    """Change between the last two days of a single record."""
    if len(record.cases) < 2:
        raise ValueError(
            f"{record.country!r} has {len(record.cases)} case entries, need at least 2"
        )
    return record.cases[-1] - record.cases[-2]


def summarize(dataset: Dataset) -> Summary:
    return Summary(total=total(dataset, -1), new=delta(dataset))


def summarize_record(record: Record) -> Summary:
    return Summary(total=record.cases[-1], new=record_delta(record))


def reduce(dataset: Dataset) -> Dataset:
    """
    Merge all records sharing a country string into one record per country.

    Country match is exact (case-sensitive). Case counts are summed
    element-wise, the province is cleared and the first constituent's
    coordinates are kept. Output is ordered by country name.
    """
    groups: dict[str, list[Record]] = {}
    for rec in dataset.records:
        groups.setdefault(rec.country, []).append(rec)

    reduced = []
    for country in sorted(groups):
        members = groups[country]
        first = members[0]
        if len(members) == 1:
            cases = first.cases
        else:
            summed = np.array([m.cases for m in members], dtype=np.int64).sum(axis=0)
            cases = tuple(int(n) for n in summed)
        reduced.append(Record(
            province="",
            country=country,
            lat=first.lat,
            long=first.long,
            cases=cases,
        ))

    logger.debug("Reduced %d records to %d countries", len(dataset.records), len(reduced))
    return Dataset(header=dataset.header, records=tuple(reduced), name=dataset.name)


def filter_country(dataset: Dataset, country: str) -> tuple[Optional[Record], bool]:
    """
    Case-insensitive lookup of one country's consolidated record.

    Returns (record, True) when found and (None, False) otherwise.
    """
    wanted = country.casefold()
    for rec in reduce(dataset).records:
        if rec.country.casefold() == wanted:
            return rec, True
    return None, False


def top_n(dataset: Dataset, n: int) -> list[Record]:
    """
    Countries with the highest latest-day count, descending.

    n is clamped to the number of distinct countries. Ties keep the
    alphabetical order produced by reduce().
    """
    reduced = reduce(dataset)
    if reduced.days == 0:
        return []
    ranked = sorted(reduced.records, key=lambda r: r.latest, reverse=True)
    n = max(0, min(n, len(ranked)))
    return ranked[:n]
