"""
Persistence-side collaborators: a short-lived result cache in front of the
data fetch, and loaders for the source spreadsheet layout.

The aggregation core never touches these; callers fetch a snapshot here and
hand plain records to the core.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple, Union

import pandas as pd

from casereport.parsing import as_str, is_present
from casereport.records import CASE_FIELDS, BillingAdjustment, CaseRecord
from casereport.settings import MONTH_LABELS, cache_ttl_seconds
from casereport.views import FIELD_REGISTRY

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


# =============================================================================
# CACHE
# =============================================================================

class TTLCache:
    """Key/value entries that expire ``ttl`` seconds after being set."""

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = cache_ttl_seconds() if ttl is None else float(ttl)
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        expires, value = entry
        if self._clock() >= expires:
            return default
        return value

    def peek(self, key: Hashable, default: Any = None) -> Any:
        """Last value set for ``key``, expired or not."""
        entry = self._entries.get(key)
        return default if entry is None else entry[1]

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock() + self.ttl, value)

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Expire one key, or everything when ``key`` is None."""
        if key is None:
            for k, (_, value) in list(self._entries.items()):
                self._entries[k] = (float("-inf"), value)
        elif key in self._entries:
            self._entries[key] = (float("-inf"), self._entries[key][1])

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING


_MISSING = object()

CASES_KEY = "cases"
ADJUSTMENTS_KEY = "adjustments"


@dataclass
class CachedSource:
    """Caches the two collaborator fetches. Fetch errors propagate unchanged."""

    fetch_cases: Callable[[], List[CaseRecord]]
    fetch_adjustments: Callable[[], List[BillingAdjustment]]
    cache: TTLCache = field(default_factory=TTLCache)

    def _cached(self, key: str, fetch: Callable[[], list]) -> list:
        hit = self.cache.get(key, _MISSING)
        if hit is not _MISSING:
            return hit
        value = list(fetch())
        self.cache.set(key, value)
        logger.debug("Fetched %d %s", len(value), key)
        return value

    def cases(self) -> List[CaseRecord]:
        return self._cached(CASES_KEY, self.fetch_cases)

    def adjustments(self) -> List[BillingAdjustment]:
        return self._cached(ADJUSTMENTS_KEY, self.fetch_adjustments)

    def refresh(self) -> Tuple[List[CaseRecord], List[BillingAdjustment]]:
        """Re-fetch both collections; the cache is only replaced when both succeed."""
        cases = list(self.fetch_cases())
        adjustments = list(self.fetch_adjustments())
        self.cache.set(CASES_KEY, cases)
        self.cache.set(ADJUSTMENTS_KEY, adjustments)
        logger.info("Refreshed snapshot: %d cases, %d adjustments", len(cases), len(adjustments))
        return cases, adjustments

    def invalidate(self) -> None:
        self.cache.invalidate()

    def last_snapshot(self) -> Tuple[List[CaseRecord], List[BillingAdjustment]]:
        """Most recent cached collections regardless of expiry (empty if never fetched)."""
        return self.cache.peek(CASES_KEY, []), self.cache.peek(ADJUSTMENTS_KEY, [])


# =============================================================================
# WORKBOOK LOADERS
# =============================================================================

# display label (and the field key itself) -> CaseRecord field
HEADER_MAP: Dict[str, str] = {p.label.lower(): key for key, p in FIELD_REGISTRY.items() if key in CASE_FIELDS}
HEADER_MAP.update({key: key for key in CASE_FIELDS})

ADJUSTMENT_COLUMNS = ["Month", "Year", "Type", "Amount"]


def _open(path: PathLike) -> pd.ExcelFile:
    try:
        return pd.ExcelFile(path, engine="openpyxl")
    except Exception as e:
        raise ValueError(f"Invalid Excel file: {e}") from e


def _sheet(xls: pd.ExcelFile, sheet: Optional[str]) -> Union[str, int]:
    if sheet is None:
        return 0
    if sheet not in xls.sheet_names:
        raise ValueError(f"Missing required sheet: {sheet}")
    return sheet


def _cell(v) -> Any:
    return v if is_present(v) else None


def load_cases_workbook(path: PathLike, sheet: Optional[str] = None) -> List[CaseRecord]:
    """
    Read cases from a workbook whose headers are display labels
    ("Date Received", "Billing Case Code", ...) or field names.
    Unknown columns are ignored; rows without an id are numbered.
    """
    xls = _open(path)
    raw = pd.read_excel(xls, _sheet(xls, sheet), dtype=object)

    rename = {}
    for col in raw.columns:
        key = HEADER_MAP.get(as_str(col).lower()) or HEADER_MAP.get(as_str(col))
        if key and key not in rename.values():
            rename[col] = key
    df = raw[list(rename)].rename(columns=rename)
    ignored = len(raw.columns) - len(rename)
    if ignored:
        logger.debug("Ignored %d unrecognized column(s)", ignored)

    records = []
    for pos, row in enumerate(df.to_dict(orient="records")):
        values = {k: _cell(v) for k, v in row.items()}
        values["id"] = as_str(values.get("id")) or str(pos + 1)
        records.append(CaseRecord(**values))
    logger.info("Loaded %d cases from %s", len(records), path)
    return records


def _int_or_none(text: str) -> Optional[int]:
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return None


def _month_number(v) -> Optional[int]:
    text = as_str(v)
    for i, label in enumerate(MONTH_LABELS, start=1):
        if text.lower().startswith(label.lower()):
            return i
    return _int_or_none(text)


def load_adjustments_workbook(path: PathLike, sheet: str = "Adjustments") -> List[BillingAdjustment]:
    """Read adjustments in the export layout (Month, Year, Type, Amount, Reason)."""
    xls = _open(path)
    df = pd.read_excel(xls, _sheet(xls, sheet), dtype=object)
    missing = [c for c in ADJUSTMENT_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    out = []
    for row in df.to_dict(orient="records"):
        out.append(BillingAdjustment(
            month=_month_number(row.get("Month")),
            year=_int_or_none(as_str(row.get("Year"))),
            type=as_str(row.get("Type")),
            amount=row.get("Amount"),
            reason=as_str(row.get("Reason")),
            id=_cell(row.get("Id")),
            created_at=_cell(row.get("Created")),
        ))
    logger.info("Loaded %d adjustments from %s", len(out), path)
    return out
