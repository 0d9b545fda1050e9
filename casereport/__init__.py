"""Case aggregation and reporting engine."""

from casereport.adjustments import apply_adjustments, move_between_months, search_adjustments
from casereport.aggregation import (
    aggregate,
    compare_years,
    compute_billing_summary,
    compute_region_summary,
    compute_team_summary,
)
from casereport.classification import BillingCategory, Classification, classify, classify_cases
from casereport.filters import FilterSpec, apply_filters, filter_cases
from casereport.grid import Grid
from casereport.matrix import OfficeMatrix, build_office_matrix
from casereport.normalize import Canonical, Unrecognized, normalize_priority, normalize_status
from casereport.records import BillingAdjustment, CaseRecord
from casereport.views import ViewBuilder

__all__ = [
    "BillingAdjustment",
    "BillingCategory",
    "Canonical",
    "CaseRecord",
    "Classification",
    "FilterSpec",
    "Grid",
    "OfficeMatrix",
    "Unrecognized",
    "ViewBuilder",
    "aggregate",
    "apply_adjustments",
    "apply_filters",
    "build_office_matrix",
    "classify",
    "classify_cases",
    "compare_years",
    "compute_billing_summary",
    "compute_region_summary",
    "compute_team_summary",
    "filter_cases",
    "move_between_months",
    "normalize_priority",
    "normalize_status",
    "search_adjustments",
]
