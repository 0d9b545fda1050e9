"""
Configuration for the case reporting engine.

Closed vocabularies live here as module constants. Runtime values (log level,
cache expiry, default workbook path) are read from the environment, optionally
seeded from a local ``.env`` file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List

logger = logging.getLogger(__name__)


# =============================================================================
# STATUS / PRIORITY VOCABULARY
# =============================================================================

CANONICAL_STATUSES: List[str] = [
    "Not confirmed",
    "In Progress",
    "In Pipeline",
    "Not accommodated",
    "GP/TMT capacity",
    "Strategy capacity",
    "Cancelled",
    "Not doable",
    "Escalated",
    "Delivered",
    "Closed",
]

# Terminal statuses; everything else (that is non-blank) counts as active.
CLOSED_STATUSES: List[str] = [
    "Closed",
    "Delivered",
    "Cancelled",
    "Not accommodated",
    "Not doable",
    "Not confirmed",
]

STATUS_SYNONYMS: Dict[str, str] = {
    "open": "Not confirmed",
    "in progress": "In Progress",
    "in pipeline": "In Pipeline",
    "not accomodated": "Not accommodated",
    "not accommodated": "Not accommodated",
    "not doable": "Not doable",
    "not confirmed": "Not confirmed",
    "cancelled": "Cancelled",
    "canceled": "Cancelled",
    "closed": "Closed",
    "delivered": "Delivered",
    "escalated": "Escalated",
    "gp/tmt capacity": "GP/TMT capacity",
    "strategy capacity": "Strategy capacity",
}

CANONICAL_PRIORITIES: List[str] = ["P1", "P1A", "P2", "P3"]

PRIORITY_SYNONYMS: Dict[str, str] = {
    "p1": "P1",
    "p2": "P2",
    "p3": "P3",
    "p1a": "P1A",
    "mct": "MCT",
    "10": "10",
    "9": "9",
    "software": "Software",
    "high": "P1",
    "medium": "P2",
    "low": "P3",
}

OTHERS_LABEL = "Others"


# =============================================================================
# BILLING / GEOGRAPHY
# =============================================================================

BILLING_TYPES: List[str] = [
    "Full", "Short", "Standard", "Very Short", "Others", "New IP", "Pre-CD", "Add-ons",
]
ADD_ONS_CATEGORY = "Add-ons"
AMOUNT_CATEGORY = "Amount"

REGION_ORDER: List[str] = ["Americas", "APAC", "EMEA"]
UNKNOWN_REGION = "(Unassigned Region)"
UNKNOWN_OFFICE = "(Blank Office)"
UNKNOWN_TEAM = "Unknown"

MONTH_LABELS: List[str] = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
                           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
QUARTER_LABELS: List[str] = ["Q1", "Q2", "Q3", "Q4"]

MAX_MATRIX_YEARS = 4


# =============================================================================
# DUE-DATE HORIZONS (days from today)
# =============================================================================

DUE_SOON_DAYS = 2
THIS_WEEK_DAYS = 7
NEXT_WEEK_DAYS = 14


# =============================================================================
# RUNTIME (ENVIRONMENT)
# =============================================================================

DEFAULT_ENV_FILE = Path(".env")


def load_env_file(path: Path = DEFAULT_ENV_FILE) -> None:
    """Load KEY=VALUE lines into ``os.environ`` without overriding existing keys."""
    if not path.exists():
        return

    try:
        with path.open(encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                if not key or key in os.environ:
                    continue
                os.environ[key] = value.strip().strip('"').strip("'")
    except OSError as exc:
        logger.debug("Could not load env file %s: %s", path, exc)


def get_config_value(key: str, default: str = "") -> str:
    return os.getenv(key, default)


def cache_ttl_seconds() -> float:
    raw = get_config_value("CASEREPORT_CACHE_TTL", "30")
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid CASEREPORT_CACHE_TTL=%r; using 30s", raw)
        return 30.0


def default_data_path() -> Path:
    return Path(get_config_value("CASEREPORT_DATA_PATH", "data/cases.xlsx"))
