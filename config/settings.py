"""
COVID-19 tracker — Configuration

Remote location of the JHU CSSE time series, local working paths and
the dataset registry for the three case types.
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging
import os

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

# ─── Remote Source ───────────────────────────────────────────────────────────

GITHUB_API_URL = "https://api.github.com"
REMOTE_OWNER = "CSSEGISandData"
REMOTE_REPO = "COVID-19"
REMOTE_SUBPATH = "csse_covid_19_data/csse_covid_19_time_series"

# Each fetch is bounded from its own start; elapsed timeouts are fatal
REMOTE_SERVER_TIMEOUT = 10.0

# Optional — unauthenticated requests are limited to 60/hour
GITHUB_TOKEN: Optional[str] = os.environ.get("GITHUB_TOKEN") or None


# ─── Storage Paths ───────────────────────────────────────────────────────────

WORK_DIR = Path(os.environ.get("COVID_WORK_DIR", Path.home() / "covid"))
CACHE_DIR_NAME = "cache"


def cache_dir(work_dir: Path) -> Path:
    """HTTP response cache lives beside the saved payloads."""
    return work_dir / CACHE_DIR_NAME


# ─── Datasets ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DatasetDefinition:
    """One of the three case-type tables published by JHU CSSE."""
    case_type: str   # "confirmed", "dead", "recovered"
    label: str       # heading used in reports
    filename: str    # file name inside REMOTE_SUBPATH
    color: str       # ANSI colour name used by the reporter


DATASET_REGISTRY: list[DatasetDefinition] = [
    DatasetDefinition(
        case_type="confirmed", label="Confirmed",
        filename="time_series_covid19_confirmed_global.csv", color="yellow",
    ),
    DatasetDefinition(
        case_type="dead", label="Dead",
        filename="time_series_covid19_deaths_global.csv", color="red",
    ),
    DatasetDefinition(
        case_type="recovered", label="Recovered",
        filename="time_series_covid19_recovered_global.csv", color="green",
    ),
]

CASE_TYPES = [d.case_type for d in DATASET_REGISTRY]

DEFAULT_TOP_N = 10


def remote_path(filename: str) -> str:
    """Repository-relative path of a dataset file."""
    return f"{REMOTE_SUBPATH}/{filename}"
