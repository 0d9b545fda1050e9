"""
Time-bucketing aggregator.

Cases are bucketed by period (month, quarter or year of the anchor date) and
optionally by one categorical dimension, then summed into a dense
:class:`~casereport.grid.Grid`. Add-on billing is summed separately under a
synthetic "Add-ons" category, in addition to (not instead of) the primary
amount; with no dimension it is folded into the single "Amount" column.
Billing adjustments are overlaid last.

Dimensions
----------
billing_type  primary amount counted when the case has a type
region        missing region -> "(Unassigned Region)"
team          primary amount counted when the case has a team
None          a single "Amount" column
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from casereport.adjustments import AdjustmentInput, apply_adjustments
from casereport.grid import Grid, build_periods, check_granularity, normalize_years, period_number
from casereport.records import CaseInput, case_frame
from casereport.settings import ADD_ONS_CATEGORY, AMOUNT_CATEGORY, BILLING_TYPES, REGION_ORDER

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG
# =============================================================================

DIMENSIONS = ("billing_type", "region", "team", None)

DATE_ANCHORS: Dict[str, str] = {
    "received": "Received_Date",
    "promised": "Promised_Date",
    "delivered": "Actual_Date",
}
DEFAULT_DATE_ANCHOR = "received"


def _check_dimension(dimension: Optional[str]) -> Optional[str]:
    if dimension not in DIMENSIONS:
        raise ValueError(f"Unknown dimension {dimension!r}; expected one of {DIMENSIONS}")
    return dimension


# =============================================================================
# TIME KEYS
# =============================================================================

def add_time_keys(df: pd.DataFrame, granularity: str, anchor: str = DEFAULT_DATE_ANCHOR) -> pd.DataFrame:
    """Adds Anchor_Date, Period_Year and Period_Number (NaN when undated)."""
    if anchor not in DATE_ANCHORS:
        raise ValueError(f"Unknown date anchor {anchor!r}; expected one of {sorted(DATE_ANCHORS)}")
    out = df.copy()
    out["Anchor_Date"] = out[DATE_ANCHORS[anchor]]
    out["Period_Year"] = out["Anchor_Date"].dt.year
    out["Period_Number"] = out["Anchor_Date"].dt.month.map(
        lambda m: period_number(int(m), granularity) if pd.notna(m) else float("nan")
    )
    return out


# =============================================================================
# LONG-FORM CONTRIBUTIONS
# =============================================================================

def _primary_rows(df: pd.DataFrame, dimension: Optional[str]) -> pd.DataFrame:
    if dimension == "billing_type":
        rows = df.loc[df["Has_Type"]]
        category = rows["Type_Label"]
    elif dimension == "team":
        rows = df.loc[df["Team_Label"] != ""]
        category = rows["Team_Label"]
    elif dimension == "region":
        rows = df
        category = rows["Region_Label"]
    else:
        rows = df
        category = pd.Series(AMOUNT_CATEGORY, index=rows.index, dtype=object)
    return pd.DataFrame({
        "Period_Year": rows["Period_Year"],
        "Period_Number": rows["Period_Number"],
        "Category": category,
        "Value": rows["Amount_Value"],
    })


def _add_on_rows(df: pd.DataFrame, dimension: Optional[str]) -> pd.DataFrame:
    rows = df.loc[df["Has_AddOns"]]
    label = AMOUNT_CATEGORY if dimension is None else ADD_ONS_CATEGORY
    return pd.DataFrame({
        "Period_Year": rows["Period_Year"],
        "Period_Number": rows["Period_Number"],
        "Category": pd.Series(label, index=rows.index, dtype=object),
        "Value": rows["AddOn_Value"],
    })


def _category_order(long: pd.DataFrame, dimension: Optional[str], include_add_ons: bool) -> List[str]:
    seen = [c for c in long["Category"].unique().tolist() if c != ADD_ONS_CATEGORY or dimension == "billing_type"]

    if dimension is None:
        return [AMOUNT_CATEGORY]
    if dimension == "billing_type":
        return BILLING_TYPES + sorted(c for c in seen if c not in BILLING_TYPES)
    if dimension == "region":
        order = REGION_ORDER + sorted(c for c in seen if c not in REGION_ORDER)
    else:
        totals = long.loc[long["Category"] != ADD_ONS_CATEGORY].groupby("Category")["Value"].sum()
        order = sorted(totals.index.tolist(), key=lambda team: (-totals[team], team))
    if include_add_ons:
        order = order + [ADD_ONS_CATEGORY]
    return order


# =============================================================================
# AGGREGATE
# =============================================================================

def aggregate(
    cases: CaseInput,
    years: Union[int, Iterable[int]],
    granularity: str = "monthly",
    dimension: Optional[str] = "billing_type",
    *,
    include_add_ons: Optional[bool] = None,
    adjustments: Optional[Iterable[AdjustmentInput]] = None,
    date_anchor: str = DEFAULT_DATE_ANCHOR,
) -> Grid:
    """
    Dense period x category sums for the requested years.

    ``include_add_ons`` defaults to True for the billing_type and None
    dimensions and False for region/team.
    """
    check_granularity(granularity)
    _check_dimension(dimension)
    year_list = normalize_years(years)
    if include_add_ons is None:
        include_add_ons = dimension in ("billing_type", None)

    periods = build_periods(year_list, granularity)
    labels = {(p.year, p.number): p.label for p in periods}

    df = add_time_keys(case_frame(cases), granularity, date_anchor)
    in_window = df["Period_Year"].isin(year_list) & df["Period_Number"].notna()
    window = df.loc[in_window]

    parts = [_primary_rows(window, dimension)]
    if include_add_ons:
        parts.append(_add_on_rows(window, dimension))
    long = pd.concat(parts, ignore_index=True)

    categories = _category_order(long, dimension, include_add_ons)
    values = pd.DataFrame(0.0, index=[p.label for p in periods], columns=categories)

    if len(long):
        long["Period_Year"] = long["Period_Year"].astype(int)
        long["Period_Number"] = long["Period_Number"].astype(int)
        sums = long.groupby(["Period_Year", "Period_Number", "Category"])["Value"].sum()
        for (year, number, category), value in sums.items():
            values.at[labels[(year, number)], category] += float(value)

    logger.debug(
        "Aggregated %d of %d cases into %d %s periods x %d categories",
        int(in_window.sum()), len(df), len(periods), granularity, len(categories),
    )

    grid = Grid(
        granularity=granularity,
        dimension=dimension,
        years=year_list,
        periods=periods,
        values=values,
    )
    if adjustments is not None:
        grid = apply_adjustments(grid, adjustments)
    return grid


# =============================================================================
# CONVENIENCE VIEWS
# =============================================================================

def compute_billing_summary(
    cases: CaseInput,
    years: Union[int, Iterable[int]],
    granularity: str = "monthly",
    adjustments: Optional[Iterable[AdjustmentInput]] = None,
) -> Grid:
    """Billing by type, add-ons included, adjustments overlaid."""
    return aggregate(cases, years, granularity, "billing_type", adjustments=adjustments or [])


def compute_team_summary(
    cases: CaseInput,
    years: Union[int, Iterable[int]],
    granularity: str = "monthly",
) -> Grid:
    """Revenue by team, teams ordered by total (highest first)."""
    return aggregate(cases, years, granularity, "team")


def compute_region_summary(
    cases: CaseInput,
    years: Union[int, Iterable[int]],
    granularity: str = "yearly",
) -> Grid:
    """Amounts by region with the preferred regions always present."""
    return aggregate(cases, years, granularity, "region")


def compare_years(
    cases: CaseInput,
    years: Iterable[int],
    granularity: str = "monthly",
    dimension: Optional[str] = "billing_type",
    adjustments: Optional[Iterable[AdjustmentInput]] = None,
) -> Dict[int, Grid]:
    """One grid per year, for side-by-side comparison."""
    adjustments = list(adjustments or [])
    return {
        year: aggregate(cases, year, granularity, dimension, adjustments=adjustments)
        for year in normalize_years(years)
    }
