"""Dense period x category grid returned by every aggregation."""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from casereport.settings import MONTH_LABELS, QUARTER_LABELS

GRANULARITIES = ("monthly", "quarterly", "yearly")
PERIODS_PER_YEAR = {"monthly": 12, "quarterly": 4, "yearly": 1}
TOTAL_LABEL = "Total"


def check_granularity(granularity: str) -> str:
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity {granularity!r}; expected one of {GRANULARITIES}")
    return granularity


def normalize_years(years: Union[int, Iterable[int]]) -> List[int]:
    """One year or many; de-duplicated, ascending."""
    if isinstance(years, numbers.Integral):
        return [int(years)]
    out = sorted({int(y) for y in years})
    if not out:
        raise ValueError("At least one year is required")
    return out


def period_number(month: int, granularity: str) -> int:
    """Month (1-12) -> period number within its year."""
    if granularity == "monthly":
        return month
    if granularity == "quarterly":
        return (month - 1) // 3 + 1
    return 1


@dataclass(frozen=True)
class Period:
    year: int
    number: int
    granularity: str

    @property
    def label(self) -> str:
        if self.granularity == "monthly":
            return f"{MONTH_LABELS[self.number - 1]} {self.year}"
        if self.granularity == "quarterly":
            return f"{QUARTER_LABELS[self.number - 1]} {self.year}"
        return str(self.year)


def build_periods(years: List[int], granularity: str) -> List[Period]:
    check_granularity(granularity)
    return [
        Period(year, n, granularity)
        for year in years
        for n in range(1, PERIODS_PER_YEAR[granularity] + 1)
    ]


@dataclass
class Grid:
    """
    Sums per (period, category). Every requested period is a row even when all
    of its cells are zero. Totals are derived from ``values`` so overlays that
    edit a cell keep row, column and grand totals consistent.
    """

    granularity: str
    dimension: Optional[str]
    years: List[int]
    periods: List[Period]
    values: pd.DataFrame
    skipped_adjustments: int = 0
    applied_adjustments: int = 0
    _lookup: Dict[tuple, str] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        if not self._lookup:
            self._lookup = {(p.year, p.number): p.label for p in self.periods}

    @property
    def period_labels(self) -> List[str]:
        return [p.label for p in self.periods]

    @property
    def categories(self) -> List[str]:
        return list(self.values.columns)

    @property
    def row_totals(self) -> pd.Series:
        return self.values.sum(axis=1)

    @property
    def column_totals(self) -> pd.Series:
        return self.values.sum(axis=0)

    @property
    def grand_total(self) -> float:
        return float(self.values.to_numpy().sum()) if self.values.size else 0.0

    def period_label(self, year: int, number: int) -> Optional[str]:
        return self._lookup.get((year, number))

    def cell(self, period: str, category: str) -> float:
        if category not in self.values.columns:
            return 0.0
        return float(self.values.at[period, category])

    def copy(self) -> "Grid":
        return replace(self, values=self.values.copy(), _lookup=dict(self._lookup))

    def to_frame(self) -> pd.DataFrame:
        """Values plus a Total column and a Total row, ready for tabular export."""
        out = self.values.copy()
        out[TOTAL_LABEL] = self.row_totals
        totals = out.sum(axis=0)
        out.loc[TOTAL_LABEL] = totals
        out.index.name = "Period"
        return out
