"""
Filter engine: a declarative FilterSpec evaluated against cases.

All predicates are AND-combined. Data problems never raise: a record with a
missing or unparseable date simply fails a date predicate, and an unparseable
bound in the FilterSpec matches nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from casereport.due import due_bucket_mask
from casereport.parsing import as_str, is_present, parse_date
from casereport.records import CaseInput, CaseRecord, case_frame, frame_to_records
from casereport.settings import OTHERS_LABEL
from casereport.views import field_text

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG
# =============================================================================

SEARCH_FIELDS = ["billing_case_code", "client", "requestor", "team", "scope_of_request"]

# FilterSpec attribute -> raw case field compared by exact (trimmed) equality
EQUALITY_FIELDS = {
    "team": "team",
    "client": "client",
    "requestor": "requestor",
    "office": "office",
    "region": "region",
    "industry": "industry",
    "billing_type": "type",
}


@dataclass
class FilterSpec:
    """Optional predicates; an empty spec matches every case."""

    statuses: List[str] = field(default_factory=list)
    priorities: List[str] = field(default_factory=list)
    team: Optional[str] = None
    client: Optional[str] = None
    requestor: Optional[str] = None
    office: Optional[str] = None
    region: Optional[str] = None
    industry: Optional[str] = None
    billing_type: Optional[str] = None
    due_bucket: Optional[str] = None
    received_from: object = None
    received_to: object = None
    search: str = ""
    column_filters: Dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (
            self.statuses or self.priorities or self.due_bucket
            or any(is_present(getattr(self, attr)) for attr in EQUALITY_FIELDS)
            or is_present(self.received_from) or is_present(self.received_to)
            or as_str(self.search)
            or any(as_str(v) for v in self.column_filters.values())
        )


@dataclass
class FilterReport:
    raw_records: int
    excluded: int
    final_records: int


# =============================================================================
# PREDICATES
# =============================================================================

def _vocabulary_mask(labels: pd.Series, canonical: pd.Series, wanted: List[str]) -> pd.Series:
    """Direct label match, or "Others" matching anything outside the vocabulary."""
    direct = labels.isin(wanted)
    if OTHERS_LABEL in wanted:
        return direct | ~canonical.astype(bool)
    return direct


def _bound(value) -> Tuple[bool, Optional[pd.Timestamp]]:
    """(given, parsed) for a date bound."""
    if not is_present(value):
        return False, None
    return True, parse_date(value)


def _date_range_mask(dates: pd.Series, lower, upper) -> pd.Series:
    mask = pd.Series(True, index=dates.index)
    for value, op in ((lower, "ge"), (upper, "le")):
        given, bound = _bound(value)
        if not given:
            continue
        if bound is None:
            logger.debug("Unparseable date bound %r; predicate matches nothing", value)
            return pd.Series(False, index=dates.index)
        mask &= getattr(dates, op)(bound).fillna(False)
    return mask


def _search_mask(df: pd.DataFrame, query: str) -> pd.Series:
    needle = as_str(query).lower()
    if not needle:
        return pd.Series(True, index=df.index)
    hay = df[SEARCH_FIELDS].apply(
        lambda row: " ".join(as_str(v) for v in row if is_present(v)).lower(), axis=1
    )
    return hay.str.contains(needle, regex=False)


def _column_filter_mask(df: pd.DataFrame, column_filters: Dict[str, str], now) -> pd.Series:
    active = {k: as_str(v).lower() for k, v in column_filters.items() if as_str(v)}
    mask = pd.Series(True, index=df.index)
    if not active:
        return mask
    records = frame_to_records(df)
    for pos, record in enumerate(records):
        for key, needle in active.items():
            if needle not in field_text(record, key, pos, now).lower():
                mask.iloc[pos] = False
                break
    return mask


def build_mask(df: pd.DataFrame, spec: FilterSpec, now: Optional[pd.Timestamp] = None) -> pd.Series:
    """Boolean include-mask for a parsed case frame."""
    mask = pd.Series(True, index=df.index)

    if spec.statuses:
        mask &= _vocabulary_mask(df["Status_Label"], df["Status_Is_Canonical"], spec.statuses)
    if spec.priorities:
        mask &= _vocabulary_mask(df["Priority_Label"], df["Priority_Is_Canonical"], spec.priorities)

    for attr, col in EQUALITY_FIELDS.items():
        wanted = as_str(getattr(spec, attr))
        if wanted:
            mask &= df[col].map(as_str) == wanted

    mask &= _date_range_mask(df["Received_Date"], spec.received_from, spec.received_to)

    if spec.due_bucket:
        mask &= due_bucket_mask(df, spec.due_bucket, now)

    mask &= _search_mask(df, spec.search)
    mask &= _column_filter_mask(df, spec.column_filters, now)
    return mask.astype(bool)


# =============================================================================
# PUBLIC API
# =============================================================================

def apply_filters(
    cases: CaseInput,
    spec: Optional[FilterSpec] = None,
    *,
    now: Optional[pd.Timestamp] = None,
    sort: bool = True,
) -> Tuple[pd.DataFrame, FilterReport]:
    """
    Filter a parsed frame. Returns filtered df (latest received first) + counts.
    """
    base = case_frame(cases)
    spec = spec or FilterSpec()
    raw_n = len(base)

    out = base.loc[build_mask(base, spec, now)] if raw_n else base
    if sort and len(out):
        out = out.sort_values("Received_Date", ascending=False, na_position="last", kind="mergesort")

    rep = FilterReport(raw_records=raw_n, excluded=raw_n - len(out), final_records=len(out))
    logger.debug("Filtered %d of %d cases", rep.final_records, rep.raw_records)
    return out, rep


def filter_cases(
    records: CaseInput,
    spec: Optional[FilterSpec] = None,
    *,
    now: Optional[pd.Timestamp] = None,
    sort: bool = True,
) -> List[CaseRecord]:
    """List-in, list-out filtering; returns the caller's own record objects."""
    filtered, _ = apply_filters(records, spec, now=now, sort=sort)
    if isinstance(records, pd.DataFrame):
        return frame_to_records(filtered)
    return [records[i] for i in filtered.index]


def matches(record: CaseRecord, spec: FilterSpec, now: Optional[pd.Timestamp] = None) -> bool:
    return len(filter_cases([record], spec, now=now, sort=False)) == 1


# =============================================================================
# DERIVED COUNTS
# =============================================================================

def alert_counts(cases: CaseInput, now: Optional[pd.Timestamp] = None) -> Dict[str, int]:
    df = case_frame(cases)
    return {
        "total": int(len(df)),
        "open": int(df["Is_Active"].sum()) if len(df) else 0,
        "overdue": int(due_bucket_mask(df, "overdue", now).sum()) if len(df) else 0,
        "due_soon": int(due_bucket_mask(df, "due-soon", now).sum()) if len(df) else 0,
    }


def available_years(cases: CaseInput) -> List[int]:
    """Distinct received years, most recent first."""
    df = case_frame(cases)
    years = df["Received_Year"].dropna().unique()
    return sorted((int(y) for y in years), reverse=True)


def count_by(cases: CaseInput, column: str, unknown: str = "Unknown") -> pd.DataFrame:
    """Count and percentage per value of a raw field (blank -> ``unknown``)."""
    df = case_frame(cases)
    labels = df[column].map(lambda x: as_str(x) or unknown)
    counts = labels.value_counts(sort=False)
    out = counts.rename_axis(column).reset_index(name="Count")
    out["Percentage"] = np.round(out["Count"] / max(len(df), 1) * 100.0, 1)
    return out
