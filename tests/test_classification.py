"""Billing categorization: type-only, bundled, add-ons-only."""
import pytest

from casereport.classification import (
    BillingCategory,
    add_categories,
    classify,
    classify_by_year,
    classify_cases,
    classify_record,
)
from casereport.records import CaseRecord, clean_and_parse, records_to_frame


def test_type_only_and_bundled_scenario():
    cases = [
        CaseRecord(id="a", type="Full", amount="100", add_ons_billing=""),
        CaseRecord(id="b", type="Full", amount="100", add_ons_billing="200", add_ons_only=""),
    ]
    result = classify_cases(cases)

    assert result.type_only_count == 1
    assert result.type_only_revenue == 100
    assert result.bundled_count == 1
    assert result.bundled_revenue == 300
    assert result.add_ons_only_count == 0
    assert result.type_only[0] is cases[0]
    assert result.bundled[0] is cases[1]
    assert result.attach_rate == 50.0
    assert result.average_add_on_value == 200.0


@pytest.mark.parametrize(
    "billing_type, add_ons, flag, expected",
    [
        ("Full", "", "", BillingCategory.TYPE_ONLY),
        ("Full", "200", "no", BillingCategory.BUNDLED),
        ("Full", "200", "Yes", BillingCategory.ADD_ONS_ONLY),
        ("", "200", "yes", BillingCategory.ADD_ONS_ONLY),
        ("", "200", "", BillingCategory.ADD_ONS_ONLY),
        ("Full", "", "yes", BillingCategory.TYPE_ONLY),
        ("Full", "200", "true", BillingCategory.BUNDLED),
        ("Full", "200", "1", BillingCategory.BUNDLED),
        ("", "", "yes", BillingCategory.UNCLASSIFIED),
        ("  ", None, None, BillingCategory.UNCLASSIFIED),
    ],
)
def test_classify(billing_type, add_ons, flag, expected):
    assert classify(billing_type, add_ons, flag) is expected


def test_categories_are_exclusive_and_exhaustive(sample_cases):
    extra = CaseRecord(id="x", client="Nobody")
    cases = sample_cases + [extra]
    result = classify_cases(cases)

    ids = [c.id for c in result.type_only + result.bundled + result.add_ons_only]
    assert len(ids) == len(set(ids))
    assert result.classified_count + result.unclassified_count == len(cases)
    assert result.unclassified_count == 1
    assert classify_record(extra) is BillingCategory.UNCLASSIFIED


def test_sample_revenues(sample_cases):
    result = classify_cases(sample_cases)

    assert sorted(c.id for c in result.type_only) == ["1", "4", "5"]
    assert [c.id for c in result.bundled] == ["2"]
    assert [c.id for c in result.add_ons_only] == ["3"]
    assert result.type_only_revenue == 50100
    assert result.bundled_revenue == 1500
    assert result.add_ons_only_revenue == 500
    assert result.total_revenue == 52100
    # each add-on amount counted once
    assert result.add_on_revenue == 800
    assert result.attach_rate == pytest.approx(25.0)
    assert result.average_add_on_value == 400


def test_component_revenue_is_split_evenly(sample_cases):
    components = classify_cases(sample_cases).components.set_index("Add_On")

    assert components.loc["Survey", "Case_Count"] == 2
    assert components.loc["Survey", "Revenue"] == 150 + 500
    assert components.loc["Benchmark", "Revenue"] == 150
    assert components.index[0] == "Survey"


def test_year_filter(sample_cases):
    result = classify_cases(sample_cases, 2023)
    assert result.classified_count == 1
    assert result.add_ons_only[0].id == "3"


def test_classify_by_year(sample_cases):
    results = classify_by_year(sample_cases, [2024, 2023])
    assert list(results) == [2023, 2024]
    assert results[2024].type_only_count == 2


def test_empty_input_metrics_are_zero():
    result = classify_cases([])
    assert result.attach_rate == 0.0
    assert result.average_add_on_value == 0.0
    assert result.components.empty


def test_subset_lookup(sample_cases):
    result = classify_cases(sample_cases)
    assert result.subset("bundled") == result.bundled
    assert result.summary()["add_ons_only_count"] == 1


def test_category_column_holds_plain_values(sample_cases):
    frame, _ = clean_and_parse(records_to_frame(sample_cases))
    frame = add_categories(frame)

    assert (frame["Billing_Category"] == "type-only").sum() == 3
    assert (frame["Billing_Category"] == "bundled").sum() == 1
    assert (frame["Billing_Category"] == "add-ons-only").sum() == 1
    assert frame["Billing_Category"].isin(["bundled", "add-ons-only"]).sum() == 2
    assert frame["Category_Revenue"].sum() == 52100


def test_counts_hold_for_parsed_frame_input(sample_cases):
    frame, _ = clean_and_parse(records_to_frame(sample_cases))
    result = classify_cases(frame)

    assert (result.type_only_count, result.bundled_count, result.add_ons_only_count) == (3, 1, 1)
    assert result.bundled_revenue == 1500
    assert [c.id for c in result.add_ons_only] == ["3"]
    assert not result.components.empty


def test_flagged_case_without_add_ons_earns_nothing():
    cases = [
        CaseRecord(id="a", type="Full", amount="100", add_ons_only="yes"),
        CaseRecord(id="b", type="Full", amount="100", add_ons_only="no"),
    ]
    result = classify_cases(cases)

    assert result.type_only_count == 2
    assert result.type_only_revenue == 100
    assert result.attach_rate == 0.0
