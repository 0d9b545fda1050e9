"""
Region -> office matrix by time period.

Rows are grouped region first, office second; columns are the periods of one
selected year (monthly / quarterly) or the most recent years (yearly, capped).
Every dated case lands in some row: blank regions and offices are bucketed
under placeholder labels. Cells hold case counts by default, or summed amounts.
Zero cells stay 0 here; blanking them is a presentation concern.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

from casereport.aggregation import DEFAULT_DATE_ANCHOR, add_time_keys
from casereport.grid import TOTAL_LABEL, check_granularity
from casereport.records import CaseInput, case_frame
from casereport.settings import MAX_MATRIX_YEARS, MONTH_LABELS, QUARTER_LABELS, REGION_ORDER

logger = logging.getLogger(__name__)

MATRIX_VALUES = ("count", "amount")
SUBTOTAL_LABEL = "Subtotal"


@dataclass
class RegionBlock:
    region: str
    offices: pd.DataFrame  # index: office, columns: periods

    @property
    def subtotal(self) -> pd.Series:
        return self.offices.sum(axis=0)

    @property
    def total(self) -> float:
        return float(self.offices.to_numpy().sum()) if self.offices.size else 0.0


@dataclass
class OfficeMatrix:
    granularity: str
    value: str
    year: Optional[int]
    columns: List[str]
    regions: List[RegionBlock]
    case_count: int

    @property
    def column_totals(self) -> pd.Series:
        totals = pd.Series(0.0, index=self.columns)
        for block in self.regions:
            totals = totals + block.subtotal
        return totals

    @property
    def grand_total(self) -> float:
        return float(sum(block.total for block in self.regions))

    @property
    def office_count(self) -> int:
        return sum(len(block.offices) for block in self.regions)

    @property
    def region_names(self) -> List[str]:
        return [block.region for block in self.regions]

    def block(self, region: str) -> RegionBlock:
        for b in self.regions:
            if b.region == region:
                return b
        raise KeyError(region)

    def to_frame(self) -> pd.DataFrame:
        """Office rows, a subtotal row per region, a grand total row; plus a Total column."""
        frames = []
        for block in self.regions:
            offices = block.offices.copy()
            offices.index = pd.MultiIndex.from_product([[block.region], offices.index], names=["Region", "Office"])
            subtotal = pd.DataFrame(
                [block.subtotal.values],
                columns=self.columns,
                index=pd.MultiIndex.from_tuples([(block.region, SUBTOTAL_LABEL)], names=["Region", "Office"]),
            )
            frames.extend([offices, subtotal])
        grand = pd.DataFrame(
            [self.column_totals.values],
            columns=self.columns,
            index=pd.MultiIndex.from_tuples([(TOTAL_LABEL, "")], names=["Region", "Office"]),
        )
        frames.append(grand)
        out = pd.concat(frames)
        out[TOTAL_LABEL] = out[self.columns].sum(axis=1)
        return out


def order_regions(regions) -> List[str]:
    """Preferred regions first (in their fixed order), the rest lexically."""
    present = set(regions)
    return [r for r in REGION_ORDER if r in present] + sorted(r for r in present if r not in REGION_ORDER)


def build_office_matrix(
    cases: CaseInput,
    granularity: str = "quarterly",
    year: Optional[int] = None,
    *,
    value: str = "count",
    max_years: int = MAX_MATRIX_YEARS,
    date_anchor: str = DEFAULT_DATE_ANCHOR,
) -> OfficeMatrix:
    """
    Monthly/quarterly: columns are the periods of ``year`` (default: most
    recent year with data). Yearly: the ``max_years`` most recent years,
    most recent first.
    """
    check_granularity(granularity)
    if value not in MATRIX_VALUES:
        raise ValueError(f"Unknown matrix value {value!r}; expected one of {MATRIX_VALUES}")

    df = add_time_keys(case_frame(cases), granularity, date_anchor)
    dated = df.loc[df["Period_Year"].notna()].copy()
    dated["Period_Year"] = dated["Period_Year"].astype(int)
    available = sorted(dated["Period_Year"].unique().tolist(), reverse=True)

    if granularity == "yearly":
        years = available[:max_years]
        columns = [str(y) for y in years]
        rows = dated.loc[dated["Period_Year"].isin(years)].copy()
        rows["Column"] = rows["Period_Year"].astype(str)
        selected = None
    else:
        selected = year if year is not None else (available[0] if available else pd.Timestamp.today().year)
        labels = MONTH_LABELS if granularity == "monthly" else QUARTER_LABELS
        columns = list(labels)
        rows = dated.loc[dated["Period_Year"] == selected].copy()
        rows["Column"] = rows["Period_Number"].map(lambda n: labels[int(n) - 1])

    rows["Cell"] = 1.0 if value == "count" else rows["Amount_Value"]

    blocks: List[RegionBlock] = []
    if len(rows):
        sums = rows.groupby(["Region_Label", "Office_Label", "Column"])["Cell"].sum()
        for region in order_regions(rows["Region_Label"].unique()):
            region_sums = sums.loc[region]
            offices = sorted(region_sums.index.get_level_values(0).unique())
            grid = pd.DataFrame(0.0, index=offices, columns=columns)
            for (office, column), cell in region_sums.items():
                grid.at[office, column] += float(cell)
            grid.index.name = "Office"
            blocks.append(RegionBlock(region=region, offices=grid))

    logger.debug("Matrix %s/%s: %d cases in %d regions", granularity, value, len(rows), len(blocks))
    return OfficeMatrix(
        granularity=granularity,
        value=value,
        year=selected,
        columns=columns,
        regions=blocks,
        case_count=int(len(rows)),
    )
