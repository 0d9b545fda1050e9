"""Spreadsheet export of grids, matrices and case views (openpyxl engine)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Union

import pandas as pd

from casereport.adjustments import AdjustmentInput, adjustments_frame
from casereport.filters import alert_counts, count_by
from casereport.grid import Grid
from casereport.matrix import OfficeMatrix
from casereport.records import CaseRecord
from casereport.settings import UNKNOWN_TEAM
from casereport.views import ViewBuilder

logger = logging.getLogger(__name__)

ENGINE = "openpyxl"

PathLike = Union[str, Path]


def ensure_output_dir(output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)


def write_sheets(sheets: Dict[str, pd.DataFrame], path: PathLike, index: Optional[Dict[str, bool]] = None) -> Path:
    """Write each frame to its own sheet, in order. Returns the written path."""
    out = Path(path)
    ensure_output_dir(out)
    index = index or {}
    with pd.ExcelWriter(out, engine=ENGINE) as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=name, index=index.get(name, False))
    logger.info("Wrote %s (%s)", out, ", ".join(sheets))
    return out


def export_billing_workbook(grid: Grid, adjustments: Iterable[AdjustmentInput], path: PathLike) -> Path:
    sheets = {"Summary": grid.to_frame()}
    adj = adjustments_frame(adjustments)
    if len(adj):
        sheets["Adjustments"] = adj
    return write_sheets(sheets, path, index={"Summary": True})


def export_team_workbook(grid: Grid, path: PathLike) -> Path:
    return write_sheets({"Team Summary": grid.to_frame()}, path, index={"Team Summary": True})


def export_matrix_workbook(matrix: OfficeMatrix, path: PathLike) -> Path:
    title = "Office Counts" if matrix.value == "count" else "Office Amounts"
    return write_sheets({title: matrix.to_frame()}, path, index={title: True})


def export_cases_workbook(
    records: Sequence[CaseRecord],
    path: PathLike,
    view: Optional[ViewBuilder] = None,
    now: Optional[pd.Timestamp] = None,
) -> Path:
    view = view or ViewBuilder.preset("full")
    return write_sheets({"Cases": view.build(records, now)}, path)


def export_summary_workbook(
    records: Sequence[CaseRecord],
    path: PathLike,
    now: Optional[pd.Timestamp] = None,
) -> Path:
    """Overview KPIs plus status and team breakdowns with percentages."""
    counts = alert_counts(records, now)
    overview = pd.DataFrame(
        [
            ("Total Cases", counts["total"]),
            ("Open Cases", counts["open"]),
            ("Overdue", counts["overdue"]),
            ("Due Soon", counts["due_soon"]),
        ],
        columns=["Metric", "Value"],
    )
    status = count_by(records, "Status_Label", unknown=UNKNOWN_TEAM).rename(columns={"Status_Label": "Status"})
    team = count_by(records, "team", unknown=UNKNOWN_TEAM).rename(columns={"team": "Team"})
    return write_sheets(
        {"Overview": overview, "Status Breakdown": status, "Team Breakdown": team},
        path,
    )
