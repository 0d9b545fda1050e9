"""Region -> office matrix with subtotals and a grand total."""
import pytest

from casereport.matrix import build_office_matrix, order_regions
from casereport.records import CaseRecord


def test_quarterly_counts_for_selected_year(sample_cases):
    matrix = build_office_matrix(sample_cases, "quarterly", 2024)

    assert matrix.columns == ["Q1", "Q2", "Q3", "Q4"]
    assert matrix.region_names == ["Americas", "EMEA", "LATAM"]
    assert matrix.block("EMEA").offices.at["London", "Q1"] == 1
    assert matrix.column_totals["Q1"] == 2
    assert matrix.column_totals["Q2"] == 1
    assert matrix.grand_total == 3
    assert matrix.case_count == 3


def test_defaults_to_most_recent_year(sample_cases):
    matrix = build_office_matrix(sample_cases, "monthly")
    assert matrix.year == 2024
    assert matrix.columns[0] == "Jan"
    assert matrix.block("Americas").offices.at["New York", "May"] == 1


def test_yearly_uses_placeholders_and_recent_years(sample_cases):
    matrix = build_office_matrix(sample_cases, "yearly")

    assert matrix.columns == ["2024", "2023"]
    assert matrix.region_names == ["Americas", "EMEA", "(Unassigned Region)", "LATAM"]
    block = matrix.block("(Unassigned Region)")
    assert block.offices.at["(Blank Office)", "2023"] == 1
    assert matrix.grand_total == 4


def test_yearly_caps_year_window():
    cases = [
        CaseRecord(id=str(y), date_received=f"{y}-06-01", region="EMEA", office="Paris")
        for y in range(2018, 2025)
    ]
    matrix = build_office_matrix(cases, "yearly")
    assert matrix.columns == ["2024", "2023", "2022", "2021"]
    assert matrix.grand_total == 4


def test_amount_values(sample_cases):
    matrix = build_office_matrix(sample_cases, "yearly", value="amount")
    assert matrix.block("EMEA").total == 50000
    assert matrix.block("Americas").subtotal["2024"] == 1200


def test_offices_sorted_within_region():
    cases = [
        CaseRecord(id="1", date_received="2024-01-01", region="EMEA", office="Paris"),
        CaseRecord(id="2", date_received="2024-01-01", region="EMEA", office="Berlin"),
        CaseRecord(id="3", date_received="2024-01-01", region="EMEA", office=""),
    ]
    matrix = build_office_matrix(cases, "yearly")
    assert list(matrix.block("EMEA").offices.index) == ["(Blank Office)", "Berlin", "Paris"]
    assert matrix.office_count == 3


def test_to_frame_has_subtotals_and_grand_total(sample_cases):
    frame = build_office_matrix(sample_cases, "quarterly", 2024).to_frame()

    assert ("EMEA", "Subtotal") in frame.index
    assert frame.loc[("EMEA", "London"), "Total"] == 1
    assert frame.loc[("Total", ""), "Total"] == 3
    assert frame.loc[("Total", ""), "Q1"] == 2
    assert frame.index[-1] == ("Total", "")


def test_empty_matrix_is_zero():
    matrix = build_office_matrix([], "quarterly", 2024)
    assert matrix.regions == []
    assert matrix.grand_total == 0
    assert (matrix.column_totals == 0).all()


def test_order_regions():
    assert order_regions(["Zeta", "EMEA", "Americas", "Alpha"]) == ["Americas", "EMEA", "Alpha", "Zeta"]


def test_unknown_value_raises(sample_cases):
    with pytest.raises(ValueError):
        build_office_matrix(sample_cases, value="median")
