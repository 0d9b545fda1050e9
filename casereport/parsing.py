"""
Cell-level parsing for spreadsheet-derived case data.

The source rows come from years of hand-maintained spreadsheets: amounts carry
currency symbols and thousands separators, dates arrive as ISO strings, Excel
serial numbers, ``"NA"`` or nothing at all. Every helper here resolves bad
input to a safe default instead of raising, so a single bad cell never fails a
report.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import List, Optional

import numpy as np
import pandas as pd


# =============================================================================
# CONFIG
# =============================================================================

EXCEL_EPOCH = pd.Timestamp("1899-12-30")
MISSING_DATE_TOKENS = {"", "na", "n/a"}

_COMPONENT_SPLIT = re.compile(r"\s*\+\s*|\s+and\s+|\s*,\s*", flags=re.IGNORECASE)


# =============================================================================
# SCALARS
# =============================================================================

def _is_missing(x) -> bool:
    if x is None:
        return True
    try:
        return bool(pd.isna(x))
    except (TypeError, ValueError):
        return False


def as_str(x) -> str:
    return "" if _is_missing(x) else str(x).strip()


def is_present(x) -> bool:
    """True when the cell holds any non-blank text."""
    return as_str(x) != ""


def parse_amount(x) -> float:
    """Parse an amount cell; ``"$1,200"`` -> 1200.0, blanks and junk -> 0.0."""
    if _is_missing(x) or isinstance(x, bool):
        return 0.0
    if isinstance(x, (int, float, np.number)):
        value = float(x)
        return value if math.isfinite(value) else 0.0
    s = str(x).strip()
    if s == "":
        return 0.0
    # remove currency symbol and commas
    s = s.replace("$", "").replace(",", "").strip()
    try:
        value = float(s)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def is_yes(x) -> bool:
    """Only a literal "yes" (any case) sets a yes/no flag."""
    return as_str(x).lower() == "yes"


def parse_date(x) -> Optional[pd.Timestamp]:
    """Parse a date cell to a midnight ``Timestamp``; ``None`` when unusable.

    Accepts date/datetime objects, Excel serial day numbers, and strings.
    """
    if _is_missing(x) or isinstance(x, bool):
        return None

    if isinstance(x, (pd.Timestamp, datetime, date)):
        ts = pd.Timestamp(x)
    elif isinstance(x, (int, float, np.number)):
        try:
            ts = EXCEL_EPOCH + pd.to_timedelta(float(x), unit="D")
        except (OverflowError, ValueError):
            return None
    else:
        s = str(x).strip()
        if s.lower() in MISSING_DATE_TOKENS:
            return None
        ts = pd.to_datetime(s, errors="coerce")

    if _is_missing(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize()


def split_components(x) -> List[str]:
    """Split an add-on list on commas, plus signs, or the word "and"."""
    s = as_str(x)
    if not s:
        return []
    return [part.strip() for part in _COMPONENT_SPLIT.split(s) if part and part.strip()]


# =============================================================================
# ARITHMETIC
# =============================================================================

def safe_div(n, d):
    """Vector-safe divide. Supports scalars, numpy arrays, and pandas Series."""
    n_arr = np.asarray(n, dtype="float64")
    d_arr = np.asarray(d, dtype="float64")
    out = np.zeros_like(n_arr, dtype="float64")
    np.divide(n_arr, d_arr, out=out, where=d_arr != 0)
    # Preserve scalar return type when inputs are scalar
    return float(out) if out.shape == () else out


def pct(n, d):
    """Percent = (n/d)*100 with vector-safe divide."""
    return safe_div(n, d) * 100.0


# =============================================================================
# TEXT MATCHING
# =============================================================================

def fuzzy_match(text: str, search: str) -> bool:
    """Substring match, or every search character appearing in order."""
    if not search:
        return True
    needle = search.lower()
    hay = (text or "").lower()
    if needle in hay:
        return True
    idx = 0
    for ch in hay:
        if idx < len(needle) and ch == needle[idx]:
            idx += 1
    return idx == len(needle)
