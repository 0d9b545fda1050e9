"""
Billing categorization: type-only, bundled, add-ons-only.

Core business definitions
-------------------------
1) ADD-ONS ONLY  = add-on billing present, and either the "add-ons only" flag
                   is yes or there is no billing type.
2) BUNDLED       = billing type AND add-on billing present, flag not yes.
3) TYPE ONLY     = billing type present, no add-on billing. A type-only case
                   with the flag set earns no revenue.
Cases with neither a type nor add-on billing are UNCLASSIFIED and take no part
in the revenue or attach-rate metrics.

Metrics
-------
A) Attach rate (%)      = bundled / (type-only + bundled) x 100
B) Avg add-on value     = add-on revenue / (add-ons-only + bundled)
C) Per-component revenue: a case listing several add-on components splits its
   add-on revenue evenly across them. This is an approximation for ranking
   components, not a ledger-accurate attribution.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from casereport.aggregation import DEFAULT_DATE_ANCHOR, DATE_ANCHORS
from casereport.grid import normalize_years
from casereport.parsing import is_present, is_yes, pct, safe_div, split_components
from casereport.records import CaseInput, CaseRecord, case_frame, frame_to_records

logger = logging.getLogger(__name__)


class BillingCategory(str, Enum):
    TYPE_ONLY = "type-only"
    BUNDLED = "bundled"
    ADD_ONS_ONLY = "add-ons-only"
    UNCLASSIFIED = "unclassified"


def classify(billing_type, add_ons_billing, add_ons_only) -> BillingCategory:
    has_type = is_present(billing_type)
    has_add_ons = is_present(add_ons_billing)
    flagged = is_yes(add_ons_only)

    if has_add_ons and (flagged or not has_type):
        return BillingCategory.ADD_ONS_ONLY
    if has_add_ons and has_type:
        return BillingCategory.BUNDLED
    if has_type:
        return BillingCategory.TYPE_ONLY
    return BillingCategory.UNCLASSIFIED


def classify_record(record: CaseRecord) -> BillingCategory:
    return classify(record.type, record.add_ons_billing, record.add_ons_only)


def add_categories(df: pd.DataFrame) -> pd.DataFrame:
    """Adds Billing_Category (the category's string value) and Category_Revenue."""
    out = df.copy()
    out["Billing_Category"] = pd.Series([
        classify(t, a, f).value for t, a, f in zip(out["type"], out["add_ons_billing"], out["add_ons_only"])
    ], index=out.index, dtype=object)
    cat = out["Billing_Category"]
    out["Category_Revenue"] = np.select(
        [
            cat == BillingCategory.TYPE_ONLY.value,
            cat == BillingCategory.BUNDLED.value,
            cat == BillingCategory.ADD_ONS_ONLY.value,
        ],
        [
            np.where(out["Is_AddOns_Only"], 0.0, out["Amount_Value"]),
            out["Amount_Value"] + out["AddOn_Value"],
            out["AddOn_Value"],
        ],
        default=0.0,
    ).astype(float)
    return out


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class Classification:
    type_only: List[CaseRecord]
    bundled: List[CaseRecord]
    add_ons_only: List[CaseRecord]
    unclassified_count: int
    type_only_revenue: float
    bundled_revenue: float
    add_ons_only_revenue: float
    add_on_revenue: float
    components: pd.DataFrame = field(repr=False, default_factory=pd.DataFrame)

    @property
    def type_only_count(self) -> int:
        return len(self.type_only)

    @property
    def bundled_count(self) -> int:
        return len(self.bundled)

    @property
    def add_ons_only_count(self) -> int:
        return len(self.add_ons_only)

    @property
    def classified_count(self) -> int:
        return self.type_only_count + self.bundled_count + self.add_ons_only_count

    @property
    def total_revenue(self) -> float:
        return self.type_only_revenue + self.bundled_revenue + self.add_ons_only_revenue

    @property
    def attach_rate(self) -> float:
        return pct(self.bundled_count, self.type_only_count + self.bundled_count)

    @property
    def average_add_on_value(self) -> float:
        return safe_div(self.add_on_revenue, self.add_ons_only_count + self.bundled_count)

    def subset(self, category: BillingCategory) -> List[CaseRecord]:
        return {
            BillingCategory.TYPE_ONLY: self.type_only,
            BillingCategory.BUNDLED: self.bundled,
            BillingCategory.ADD_ONS_ONLY: self.add_ons_only,
        }[BillingCategory(category)]

    def summary(self) -> Dict[str, float]:
        return {
            "type_only_count": self.type_only_count,
            "bundled_count": self.bundled_count,
            "add_ons_only_count": self.add_ons_only_count,
            "unclassified_count": self.unclassified_count,
            "type_only_revenue": self.type_only_revenue,
            "bundled_revenue": self.bundled_revenue,
            "add_ons_only_revenue": self.add_ons_only_revenue,
            "total_revenue": self.total_revenue,
            "add_on_revenue": self.add_on_revenue,
            "attach_rate": self.attach_rate,
            "average_add_on_value": self.average_add_on_value,
        }


# =============================================================================
# COMPONENT ROLLUP
# =============================================================================

def component_breakdown(df: pd.DataFrame) -> pd.DataFrame:
    """Per add-on component: cases listing it and its even share of add-on revenue."""
    counts: Dict[str, int] = defaultdict(int)
    revenue: Dict[str, float] = defaultdict(float)
    rows = df.loc[df["Billing_Category"].isin([BillingCategory.BUNDLED.value, BillingCategory.ADD_ONS_ONLY.value])]
    for listed, amount in zip(rows["add_on_ip_delivered"], rows["AddOn_Value"]):
        names = split_components(listed)
        for name in names:
            counts[name] += 1
            revenue[name] += float(amount) / len(names)
    out = pd.DataFrame(
        {"Add_On": list(counts), "Case_Count": list(counts.values()), "Revenue": [revenue[n] for n in counts]},
        columns=["Add_On", "Case_Count", "Revenue"],
    )
    return out.sort_values(["Revenue", "Add_On"], ascending=[False, True], kind="mergesort").reset_index(drop=True)


# =============================================================================
# PUBLIC API
# =============================================================================

def _pick(records: CaseInput, subset: pd.DataFrame) -> List[CaseRecord]:
    if isinstance(records, pd.DataFrame):
        return frame_to_records(subset)
    return [records[i] for i in subset.index]


def classify_cases(
    cases: CaseInput,
    year: Optional[int] = None,
    *,
    date_anchor: str = DEFAULT_DATE_ANCHOR,
) -> Classification:
    """Split cases into the three billing categories and compute the metrics.

    When ``year`` is given, only cases whose anchor date falls in that year are
    considered (undated cases are dropped).
    """
    df = case_frame(cases)
    if year is not None:
        if date_anchor not in DATE_ANCHORS:
            raise ValueError(f"Unknown date anchor {date_anchor!r}")
        df = df.loc[df[DATE_ANCHORS[date_anchor]].dt.year == year]
    df = add_categories(df)
    cat = df["Billing_Category"]

    type_only = df.loc[cat == BillingCategory.TYPE_ONLY.value]
    bundled = df.loc[cat == BillingCategory.BUNDLED.value]
    add_ons_only = df.loc[cat == BillingCategory.ADD_ONS_ONLY.value]

    result = Classification(
        type_only=_pick(cases, type_only),
        bundled=_pick(cases, bundled),
        add_ons_only=_pick(cases, add_ons_only),
        unclassified_count=int((cat == BillingCategory.UNCLASSIFIED.value).sum()),
        type_only_revenue=float(type_only["Category_Revenue"].sum()),
        bundled_revenue=float(bundled["Category_Revenue"].sum()),
        add_ons_only_revenue=float(add_ons_only["Category_Revenue"].sum()),
        add_on_revenue=float(bundled["AddOn_Value"].sum() + add_ons_only["AddOn_Value"].sum()),
        components=component_breakdown(df),
    )
    logger.debug(
        "Classified %d cases: %d type-only, %d bundled, %d add-ons-only, %d unclassified",
        len(df), result.type_only_count, result.bundled_count, result.add_ons_only_count,
        result.unclassified_count,
    )
    return result


def classify_by_year(cases: CaseInput, years: Iterable[int]) -> Dict[int, Classification]:
    return {year: classify_cases(cases, year) for year in normalize_years(years)}
