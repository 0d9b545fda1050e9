"""
Billing adjustments: the overlay onto aggregated grids, plus caller-level
helpers for moving amounts and searching the adjustment list.

An adjustment lands only in the (year, month, type) bucket it names. When the
grid has no such bucket (a quarterly or yearly grid, a region/team dimension,
or a year outside the window) the adjustment is skipped. Skips do not change
totals; they are counted on the grid and logged.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from casereport.grid import Grid
from casereport.parsing import as_str, fuzzy_match, parse_amount
from casereport.records import BillingAdjustment
from casereport.settings import AMOUNT_CATEGORY, MONTH_LABELS

logger = logging.getLogger(__name__)

# Dimensions whose columns can hold a type-keyed adjustment.
OVERLAY_DIMENSIONS = ("billing_type", None)

AdjustmentInput = Union[BillingAdjustment, Mapping]


def _coerce(adj: AdjustmentInput) -> BillingAdjustment:
    if isinstance(adj, BillingAdjustment):
        return adj
    return BillingAdjustment(
        month=adj.get("month"),
        year=adj.get("year"),
        type=adj.get("type", ""),
        amount=adj.get("amount", 0),
        reason=adj.get("reason", "") or "",
        id=adj.get("id"),
        created_at=adj.get("created_at"),
    )


def _as_int(x) -> Optional[int]:
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


# =============================================================================
# OVERLAY
# =============================================================================

def apply_adjustments(grid: Grid, adjustments: Iterable[AdjustmentInput]) -> Grid:
    """Return a copy of ``grid`` with each adjustment added to its bucket."""
    out = grid.copy()
    values = out.values
    applied = skipped = 0

    for raw in adjustments:
        adj = _coerce(raw)
        month, year = _as_int(adj.month), _as_int(adj.year)
        if month is None or year is None or not 1 <= month <= 12:
            logger.warning("Skipping adjustment %s with invalid month/year (%r/%r)", adj.id, adj.month, adj.year)
            skipped += 1
            continue
        if out.granularity != "monthly" or out.dimension not in OVERLAY_DIMENSIONS:
            skipped += 1
            continue
        label = out.period_label(year, month)
        if label is None:
            skipped += 1
            continue

        category = AMOUNT_CATEGORY if out.dimension is None else as_str(adj.type)
        if category not in values.columns:
            values[category] = 0.0
        values.at[label, category] += parse_amount(adj.amount)
        applied += 1

    if skipped:
        logger.debug(
            "Skipped %d adjustment(s) with no matching bucket in %s grid for %s",
            skipped, out.granularity, out.years,
        )
    out.applied_adjustments = grid.applied_adjustments + applied
    out.skipped_adjustments = grid.skipped_adjustments + skipped
    return out


# =============================================================================
# CALLER-LEVEL HELPERS
# =============================================================================

def _check_month(month: int) -> int:
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise ValueError(f"Month must be an integer 1-12, got {month!r}")
    return month


def move_between_months(
    year: int,
    from_month: int,
    to_month: int,
    billing_type: str,
    amount: float,
    reason: str = "",
) -> Tuple[BillingAdjustment, BillingAdjustment]:
    """Two compensating adjustments: a deduction at the source month, an addition at the destination."""
    _check_month(from_month)
    _check_month(to_month)
    amount = abs(float(amount))
    source = BillingAdjustment(
        month=from_month,
        year=year,
        type=billing_type,
        amount=-amount,
        reason=f"{reason} (Moved to {MONTH_LABELS[to_month - 1]})".strip(),
    )
    destination = BillingAdjustment(
        month=to_month,
        year=year,
        type=billing_type,
        amount=amount,
        reason=f"{reason} (Moved from {MONTH_LABELS[from_month - 1]})".strip(),
    )
    return source, destination


def search_adjustments(
    adjustments: Iterable[AdjustmentInput],
    year: Optional[int] = None,
    query: str = "",
) -> List[BillingAdjustment]:
    """Adjustments for ``year`` whose month/type/reason/amount fuzzy-match ``query``."""
    out: List[BillingAdjustment] = []
    needle = as_str(query).lower()
    for raw in adjustments:
        adj = _coerce(raw)
        if year is not None and _as_int(adj.year) != year:
            continue
        month = _as_int(adj.month)
        month_label = MONTH_LABELS[month - 1] if month and 1 <= month <= 12 else ""
        haystack = " ".join([month_label, as_str(adj.type), as_str(adj.reason), as_str(adj.amount)])
        if fuzzy_match(haystack, needle):
            out.append(adj)
    return out


def adjustments_frame(adjustments: Iterable[AdjustmentInput]) -> pd.DataFrame:
    """Month label, type, amount, reason, created: the export layout."""
    rows = []
    for raw in adjustments:
        adj = _coerce(raw)
        month = _as_int(adj.month)
        rows.append({
            "Month": MONTH_LABELS[month - 1] if month and 1 <= month <= 12 else as_str(adj.month),
            "Year": adj.year,
            "Type": adj.type,
            "Amount": parse_amount(adj.amount),
            "Reason": adj.reason,
            "Created": as_str(adj.created_at),
        })
    return pd.DataFrame(rows, columns=["Month", "Year", "Type", "Amount", "Reason", "Created"])
