"""
Console report for the COVID-19 tracker.

Formats the global / per-country summary blocks, top-N rankings and ASCII
trend plots. Everything the output depends on — target stream, colour,
number grouping, plot size — comes from an explicit ReportConfig, so the
format_* methods can be tested without a terminal.
"""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Optional, Sequence, TextIO

import numpy as np

from models.timeseries import Record
from processing.aggregator import Summary

logger = logging.getLogger(__name__)

_ANSI = {
    "bold":   "\033[1m",
    "red":    "\033[31m",
    "green":  "\033[32m",
    "yellow": "\033[33m",
}
_RESET = "\033[0m"


@dataclass
class ReportConfig:
    """Presentation settings passed explicitly to the Reporter."""
    stream: TextIO = field(default_factory=lambda: sys.stdout)
    color: bool = True
    thousands_sep: str = ","
    dot_leader_width: int = 20   # minimum width of the "rank-country" column
    plot_width: int = 70
    plot_height: int = 20


@dataclass(frozen=True)
class SummaryRow:
    """One line of a summary block."""
    label: str
    summary: Summary
    color: Optional[str] = None


class Reporter:
    """Writes formatted report sections to the configured stream."""

    def __init__(self, config: Optional[ReportConfig] = None):
        self.config = config or ReportConfig()

    # ─── Primitives ──────────────────────────────────────────────────────────

    def number(self, n: float) -> str:
        text = f"{n:,.0f}" if isinstance(n, float) else f"{n:,}"
        return text.replace(",", self.config.thousands_sep)

    def paint(self, text: str, color: Optional[str]) -> str:
        if not self.config.color or color not in _ANSI:
            return text
        return f"{_ANSI[color]}{text}{_RESET}"

    def _write(self, lines: Sequence[str]) -> None:
        for line in lines:
            print(line, file=self.config.stream)

    # ─── Summary ─────────────────────────────────────────────────────────────

    def format_summary(self, title: str, rows: Sequence[SummaryRow]) -> list[str]:
        """
        Heading plus one aligned line per case type:

            Confirmed: 1,234  New: 56
            Dead:         78  New: 2
        """
        if not rows:
            return [self.paint(title, "bold")]
        label_w = max(len(r.label) for r in rows) + 1
        totals = [self.number(r.summary.total) for r in rows]
        total_w = max(len(t) for t in totals)

        lines = [self.paint(title, "bold")]
        for row, tot in zip(rows, totals):
            new = self.number(row.summary.new)
            lines.append(
                f"{row.label + ':':<{label_w}} "
                f"{self.paint(tot.rjust(total_w), row.color)}  "
                f"New: {self.paint(new, row.color)}"
            )
        return lines

    def print_summary(self, title: str, rows: Sequence[SummaryRow], leading_blank: bool = False) -> None:
        if leading_blank:
            self._write([""])
        self._write(self.format_summary(title, rows))

    # ─── Ranking ─────────────────────────────────────────────────────────────

    def format_ranking(self, title: str, records: Sequence[Record], color: Optional[str] = None) -> list[str]:
        """Numbered, dot-led list of countries and their latest count."""
        cells = [f"{i:2d}-{rec.country}" for i, rec in enumerate(records, start=1)]
        width = max([self.config.dot_leader_width] + [len(c) for c in cells])

        lines = [self.paint(title, "bold")]
        for cell, rec in zip(cells, records):
            lines.append(f"{cell.ljust(width, '.')}{self.paint(self.number(rec.cases[-1]), color)}")
        return lines

    def print_ranking(self, title: str, records: Sequence[Record], color: Optional[str] = None) -> None:
        self._write([""])
        self._write(self.format_ranking(title, records, color))

    # ─── Trend ───────────────────────────────────────────────────────────────

    def format_trend(
        self,
        record: Record,
        label: str,
        dates: Sequence[str] = (),
        color: Optional[str] = None,
    ) -> list[str]:
        """Column plot of a record's case series with a y-axis and caption."""
        width = max(1, self.config.plot_width)
        height = max(2, self.config.plot_height)
        series = np.asarray(record.cases, dtype=float)
        if series.size == 0:
            return [f"{record.country} - {label}: no data"]

        # Stretch or squeeze the series to the plot width
        if series.size != width:
            x = np.linspace(0, series.size - 1, width)
            series = np.interp(x, np.arange(series.size), series)

        lo, hi = float(series.min()), float(series.max())
        span = (hi - lo) or 1.0
        levels = np.rint((series - lo) / span * (height - 1)).astype(int)

        axis = [lo + span * r / (height - 1) for r in range(height)]
        axis_labels = [self.number(round(v)) for v in axis]
        label_w = max(len(a) for a in axis_labels)

        lines = []
        for r in range(height - 1, -1, -1):
            bars = "".join("█" if lv >= r else " " for lv in levels)
            lines.append(f"{axis_labels[r].rjust(label_w)} ┤{self.paint(bars, color)}")

        pad = " " * (label_w + 2)
        if len(dates) >= 2:
            first, last = dates[0], dates[-1]
            gap = max(1, width - len(first) - len(last))
            lines.append(f"{pad}{first}{' ' * gap}{last}")
        caption = f"{record.country} - {label}"
        lines.append(f"{pad}{caption.center(width).rstrip()}")
        return lines

    def print_trend(
        self,
        record: Record,
        label: str,
        dates: Sequence[str] = (),
        color: Optional[str] = None,
    ) -> None:
        self._write([""])
        self._write(self.format_trend(record, label, dates, color))
