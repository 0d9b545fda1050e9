"""Cell-level parsing never raises and resolves bad input to safe defaults."""
import math
from datetime import date, datetime

import numpy as np
import pandas as pd
import pytest

from casereport.parsing import (
    fuzzy_match,
    is_present,
    is_yes,
    parse_amount,
    parse_date,
    pct,
    safe_div,
    split_components,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$1,200", 1200.0),
        ("", 0.0),
        ("abc", 0.0),
        (None, 0.0),
        ("  -250.5 ", -250.5),
        (75, 75.0),
        (float("nan"), 0.0),
        ("inf", 0.0),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


def test_parse_amount_is_idempotent_on_junk():
    assert parse_amount("12abc") == parse_amount("12abc") == 0.0


def test_parse_date_accepts_common_inputs():
    expected = pd.Timestamp("2024-03-15")
    assert parse_date("2024-03-15") == expected
    assert parse_date(date(2024, 3, 15)) == expected
    assert parse_date(datetime(2024, 3, 15, 17, 45)) == expected
    assert parse_date(45366) == expected
    assert parse_date("15-Mar-24") == expected


@pytest.mark.parametrize("raw", ["", "NA", "n/a", "not a date", None, np.nan, True])
def test_parse_date_missing_or_junk_is_none(raw):
    assert parse_date(raw) is None


def test_parse_date_drops_timezone():
    parsed = parse_date(pd.Timestamp("2024-03-15 23:00", tz="UTC"))
    assert parsed.tzinfo is None
    assert parsed == pd.Timestamp("2024-03-15")


def test_parse_date_keeps_wall_clock_date_of_offset_strings():
    assert parse_date("2024-03-01T01:00:00+05:00") == pd.Timestamp("2024-03-01")
    assert parse_date("2024-03-31T22:30:00-04:00") == pd.Timestamp("2024-03-31")


@pytest.mark.parametrize(
    "raw, expected",
    [("Yes", True), (" YES ", True), ("no", False), ("y", False), ("true", False), ("1", False), ("", False), (None, False)],
)
def test_is_yes_matches_only_yes(raw, expected):
    assert is_yes(raw) is expected


def test_split_components_on_all_delimiters():
    assert split_components("Benchmark + Survey and Deck, Model") == ["Benchmark", "Survey", "Deck", "Model"]
    assert split_components("Survey AND Deck") == ["Survey", "Deck"]
    assert split_components("") == []
    assert split_components(None) == []


def test_is_present_treats_whitespace_as_blank():
    assert not is_present("   ")
    assert not is_present(None)
    assert is_present(0)


def test_safe_div_and_pct():
    assert safe_div(1, 0) == 0.0
    assert pct(1, 4) == 25.0
    out = safe_div(pd.Series([1.0, 2.0]), pd.Series([0.0, 4.0]))
    assert list(out) == [0.0, 0.5]
    assert not math.isnan(pct(0, 0))


def test_fuzzy_match_substring_and_in_order():
    assert fuzzy_match("Mar Full correction", "corr")
    assert fuzzy_match("Mar Full correction", "mfc")
    assert not fuzzy_match("Mar Full correction", "zzz")
    assert fuzzy_match("anything", "")


def test_clean_and_parse_reports_bad_cells(sample_cases):
    from casereport.records import clean_and_parse, records_to_frame

    frame, report = clean_and_parse(records_to_frame(sample_cases))

    assert report.raw_records == report.parsed_records == 5
    # case 4: "NA" is a missing token, "abc" is junk
    assert report.unparseable_dates == 0
    assert report.unparseable_amounts == 1
    assert frame.loc[0, "Amount_Value"] == 50000
    assert frame.loc[4, "Received_Date"] == pd.Timestamp("2024-03-15")
    assert list(frame["Region_Label"])[2] == "(Unassigned Region)"
    assert list(frame["Status_Label"])[2] == "Cancelled"


def test_clean_and_parse_fills_missing_columns():
    from casereport.records import clean_and_parse

    frame, report = clean_and_parse(pd.DataFrame({"id": ["1"], "amount": ["10"]}))
    assert frame.loc[0, "Amount_Value"] == 10
    assert any("Missing expected columns" in note for note in report.notes)


def test_clean_and_parse_checks_meeting_date_without_keeping_it():
    from casereport.records import clean_and_parse

    frame, report = clean_and_parse(pd.DataFrame({"id": ["1"], "client_meeting_date": ["someday"]}))
    assert report.unparseable_dates == 1
    assert "Meeting_Date" not in frame.columns
    assert not {"Received_Month", "Has_Amount"} & set(frame.columns)
    assert {"Received_Date", "Promised_Date", "Actual_Date"} <= set(frame.columns)
