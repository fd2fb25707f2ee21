"""
COVID-19 Case Tracker — Main Entry Point

Fetches the JHU CSSE confirmed / deaths / recovered time series in
parallel, then prints global totals and, on request, one country's
numbers, its trend plots and top-N country rankings.

Usage:
    # Global totals
    python main.py

    # One country with trend plots
    python main.py --country germany --graph

    # Top 10 by confirmed and dead, no request cache, don't save CSVs
    python main.py -t --top-dead --no-cache --no-save
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import DATASET_REGISTRY, DEFAULT_TOP_N, WORK_DIR
from ingestion.errors import CountryNotFound, CovidError, NotEnoughDays
from ingestion.pipeline import JoinedDatasets, run_pipeline
from processing.aggregator import filter_country, summarize, summarize_record, top_n
from production.report import ReportConfig, Reporter, SummaryRow

logger = logging.getLogger("main")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="covid",
        description="Shows number of COVID-19 cases.",
    )
    parser.add_argument(
        "-c", "--country", default="",
        help="country to show number of cases for",
    )
    parser.add_argument(
        "-e", "--cache", action=argparse.BooleanOptionalAction, default=True,
        help="enable request caching (default: on)",
    )
    parser.add_argument(
        "-s", "--save", action=argparse.BooleanOptionalAction, default=True,
        help="save/overwrite data in file (default: on)",
    )
    parser.add_argument(
        "-t", "--top-confirmed", action="store_true",
        help="top countries by most confirmed cases",
    )
    parser.add_argument(
        "--top-dead", action="store_true",
        help="top countries by most dead cases",
    )
    parser.add_argument(
        "--top-recovered", action="store_true",
        help="top countries by most recovered cases",
    )
    parser.add_argument(
        "-n", "--top", type=int, default=DEFAULT_TOP_N, metavar="N",
        help=f"number of countries in top rankings (default: {DEFAULT_TOP_N})",
    )
    parser.add_argument(
        "-g", "--graph", action="store_true",
        help="plot graph, only if country is selected",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="more verbose operation information",
    )
    parser.add_argument(
        "--no-color", action="store_true",
        help="disable coloured output",
    )
    parser.add_argument(
        "--work-dir", type=Path, default=WORK_DIR,
        help=f"where saved data and the request cache live (default: {WORK_DIR})",
    )
    args = parser.parse_args(argv)
    if args.top < 0:
        parser.error("--top must be zero or positive")
    return args


def check_reportable(joined: JoinedDatasets) -> None:
    """Raises NotEnoughDays when a dataset is too short for day-over-day deltas."""
    for d in DATASET_REGISTRY:
        dataset = joined.get(d.case_type)
        if dataset.days < 2:
            raise NotEnoughDays(dataset.name or d.filename, dataset.days)


def report_globe(reporter: Reporter, joined: JoinedDatasets) -> None:
    rows = [
        SummaryRow(d.label, summarize(joined.get(d.case_type)), d.color)
        for d in DATASET_REGISTRY
    ]
    reporter.print_summary("Globe", rows)


def report_country(reporter: Reporter, joined: JoinedDatasets, country: str, graph: bool) -> None:
    """
    Summary (and optionally trend plots) for one country.

    Raises:
        CountryNotFound: the country is missing from any of the datasets.
    """
    found_records = []
    for d in DATASET_REGISTRY:
        record, found = filter_country(joined.get(d.case_type), country)
        if not found:
            raise CountryNotFound(country)
        found_records.append((d, record))

    title = found_records[0][1].country
    rows = [SummaryRow(d.label, summarize_record(rec), d.color) for d, rec in found_records]
    reporter.print_summary(title, rows, leading_blank=True)

    if graph:
        for d, rec in found_records:
            reporter.print_trend(rec, d.label, joined.get(d.case_type).dates, d.color)


def report_top(reporter: Reporter, joined: JoinedDatasets, args: argparse.Namespace) -> None:
    selected = {
        "confirmed": args.top_confirmed,
        "dead": args.top_dead,
        "recovered": args.top_recovered,
    }
    for d in DATASET_REGISTRY:
        if not selected[d.case_type]:
            continue
        ranked = top_n(joined.get(d.case_type), args.top)
        if len(ranked) < args.top:
            logger.info("Only %d countries available for top %d", len(ranked), args.top)
        title = f"Top {len(ranked)} countries by most {d.label.lower()} cases"
        reporter.print_ranking(title, ranked, d.color)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.getLogger().setLevel(logging.INFO if args.verbose else logging.WARNING)

    work_dir = args.work_dir.expanduser()
    try:
        joined = asyncio.run(
            run_pipeline(work_dir, use_cache=args.cache, persist=args.save)
        )
        check_reportable(joined)
    except CovidError as exc:
        print(exc, file=sys.stderr)
        return 1

    reporter = Reporter(ReportConfig(color=not args.no_color))
    report_globe(reporter, joined)

    if args.country:
        try:
            report_country(reporter, joined, args.country, args.graph)
        except CountryNotFound as exc:
            print(f"\n{exc}", file=sys.stderr)
            return 1
    elif args.graph:
        logger.warning("--graph has no effect without --country")

    report_top(reporter, joined, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
