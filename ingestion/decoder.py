"""
Decode a FetchResult into a typed Dataset.

Steps, each fatal on failure:
  1. Undo the transport encoding (base64 from the contents API)
  2. Optionally write the raw CSV text to disk (before parsing)
  3. Parse the CSV with polars, every column read as a string
  4. Convert rows: cols 0-1 text, 2-3 float coordinates, 4.. int case counts

No partial-record tolerance — one bad cell aborts the whole dataset.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import os
import re
from pathlib import Path
from typing import Optional

import polars as pl

from ingestion.errors import DecodeError, FieldParseError, ParseError, PersistenceError
from ingestion.fetchers.base import FetchResult
from models.timeseries import META_COLUMNS, Dataset, Record

logger = logging.getLogger(__name__)

# Plain ASCII numbers only: no padding, digit separators, nan or inf
_INTEGER = re.compile(r"[+-]?[0-9]+")
_FLOAT = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def decode(result: FetchResult, persist_path: Optional[Path] = None) -> Dataset:
    """
    Turn one fetched payload into a Dataset.

    Args:
        result: Raw remote content, consumed once.
        persist_path: Where to save the raw CSV text, or None to skip saving.

    Raises:
        DecodeError, PersistenceError, ParseError, FieldParseError
    """
    logger.info("Convert data, path: %s", result.name)
    text = decode_content(result)

    if persist_path is not None:
        persist(result.name, text, persist_path)

    header, rows = parse_table(result.name, text)
    records = tuple(
        to_record(result.name, header, row, row_number)
        for row_number, row in enumerate(rows, start=1)
    )

    logger.info(
        "%s → %d records × %d days", result.name, len(records), len(header) - META_COLUMNS,
    )
    return Dataset(header=tuple(header), records=records, name=result.name)


def decode_content(result: FetchResult) -> str:
    """Undo the transport encoding and return UTF-8 text."""
    if result.encoding == "none":
        return result.content
    if result.encoding != "base64":
        raise DecodeError(result.name, f"unsupported content encoding {result.encoding!r}")
    try:
        # GitHub wraps base64 at 60 columns
        compact = "".join(result.content.split())
        return base64.b64decode(compact, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise DecodeError(result.name, f"cannot decode data: {exc}") from exc


def persist(name: str, text: str, path: Path) -> None:
    """Write text verbatim and force it to disk."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
    except OSError as exc:
        raise PersistenceError(name, f"cannot write to file {path}: {exc}") from exc
    logger.info("Saved %s (%d bytes) → %s", name, len(text), path)


def parse_table(name: str, text: str) -> tuple[list[str], list[tuple]]:
    """Parse CSV text into (header, rows); every cell stays a string."""
    try:
        df = pl.read_csv(
            io.BytesIO(text.encode("utf-8")),
            has_header=True,
            infer_schema=False,
        )
    except pl.exceptions.PolarsError as exc:
        raise ParseError(name, f"cannot read csv data: {exc}") from exc

    header = df.columns
    if len(header) <= META_COLUMNS:
        raise ParseError(
            name,
            f"expected province, country, lat, long and at least one date column, "
            f"got {len(header)} columns",
        )
    return header, df.rows()


def to_record(name: str, header: list[str], row: tuple, row_number: int) -> Record:
    """Convert one CSV row into a Record."""
    cells = ["" if v is None else v for v in row]

    cases = []
    for col in range(META_COLUMNS, len(header)):
        if not _INTEGER.fullmatch(cells[col]):
            raise FieldParseError(name, row_number, header[col], cells[col])
        cases.append(int(cells[col]))

    return Record(
        province=cells[0],
        country=cells[1],
        lat=_coordinate(name, header, cells, 2, row_number),
        long=_coordinate(name, header, cells, 3, row_number),
        cases=tuple(cases),
    )


def _coordinate(name: str, header: list[str], cells: list[str], col: int, row_number: int) -> float:
    if not _FLOAT.fullmatch(cells[col]):
        raise FieldParseError(name, row_number, header[col], cells[col])
    return float(cells[col])
