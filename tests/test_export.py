"""Spreadsheet export writes the expected sheets and totals."""
from pathlib import Path

import pandas as pd
from openpyxl import load_workbook

from casereport.aggregation import compute_billing_summary, compute_team_summary
from casereport.export import (
    export_billing_workbook,
    export_cases_workbook,
    export_matrix_workbook,
    export_summary_workbook,
    export_team_workbook,
)
from casereport.matrix import build_office_matrix
from casereport.views import ViewBuilder


def test_billing_workbook_with_adjustments(tmp_path: Path, march_case, correction):
    grid = compute_billing_summary(march_case, 2024, adjustments=[correction])
    path = export_billing_workbook(grid, [correction], tmp_path / "out" / "billing.xlsx")

    assert load_workbook(path).sheetnames == ["Summary", "Adjustments"]
    summary = pd.read_excel(path, sheet_name="Summary", index_col=0)
    assert summary.loc["Mar 2024", "Full"] == 49500
    assert summary.loc["Total", "Total"] == 49500
    adjustments = pd.read_excel(path, sheet_name="Adjustments")
    assert adjustments.loc[0, "Reason"] == "correction"


def test_billing_workbook_without_adjustments(tmp_path: Path, march_case):
    grid = compute_billing_summary(march_case, 2024)
    path = export_billing_workbook(grid, [], tmp_path / "billing.xlsx")
    assert load_workbook(path).sheetnames == ["Summary"]


def test_team_workbook(tmp_path: Path, sample_cases):
    path = export_team_workbook(compute_team_summary(sample_cases, 2024), tmp_path / "teams.xlsx")
    frame = pd.read_excel(path, sheet_name="Team Summary", index_col=0)
    assert list(frame.columns) == ["Alpha", "Beta", "Gamma", "Total"]
    assert frame.loc["Total", "Total"] == 51300


def test_matrix_workbook(tmp_path: Path, sample_cases):
    matrix = build_office_matrix(sample_cases, "quarterly", 2024)
    path = export_matrix_workbook(matrix, tmp_path / "matrix.xlsx")
    assert load_workbook(path).sheetnames == ["Office Counts"]


def test_cases_workbook_uses_view_labels(tmp_path: Path, sample_cases):
    view = ViewBuilder.preset("billing")
    path = export_cases_workbook(sample_cases, tmp_path / "cases.xlsx", view)
    frame = pd.read_excel(path, sheet_name="Cases")
    assert list(frame.columns) == view.labels
    assert len(frame) == 5


def test_summary_workbook(tmp_path: Path, sample_cases, now, caplog):
    caplog.set_level("INFO")
    path = export_summary_workbook(sample_cases, tmp_path / "summary.xlsx", now)

    assert load_workbook(path).sheetnames == ["Overview", "Status Breakdown", "Team Breakdown"]
    overview = pd.read_excel(path, sheet_name="Overview").set_index("Metric")
    assert overview.loc["Total Cases", "Value"] == 5
    assert overview.loc["Overdue", "Value"] == 1
    status = pd.read_excel(path, sheet_name="Status Breakdown").set_index("Status")
    assert status.loc["Cancelled", "Count"] == 1
    assert any("summary.xlsx" in message for message in caplog.messages)
