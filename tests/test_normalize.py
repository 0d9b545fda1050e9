"""Status and priority normalization keeps unknown values instead of dropping them."""
from casereport.normalize import (
    Canonical,
    Unrecognized,
    bucket_label,
    is_active_status,
    normalize_priority,
    normalize_status,
    priority_label,
    status_label,
)


def test_cancelled_with_trailing_space_is_canonical_and_closed():
    assert normalize_status("cancelled ") == Canonical("Cancelled")
    assert not is_active_status("cancelled ")


def test_synonyms_map_to_canonical():
    assert normalize_status("Not Accomodated") == Canonical("Not accommodated")
    assert normalize_status("IN PROGRESS") == Canonical("In Progress")
    assert normalize_priority("high") == Canonical("P1")
    assert normalize_priority("p1a") == Canonical("P1A")


def test_unknown_values_are_preserved():
    norm = normalize_status("Awaiting data")
    assert norm == Unrecognized("Awaiting data")
    assert norm.label == "Awaiting data"
    assert not norm.is_canonical
    assert bucket_label(norm) == "Others"
    assert normalize_priority("MCT") == Unrecognized("MCT")


def test_blank_is_none():
    assert normalize_status("  ") is None
    assert normalize_priority(None) is None
    assert status_label("") == ""
    assert priority_label(" ") == ""
    assert bucket_label(None) == ""


def test_active_statuses():
    assert is_active_status("In Progress")
    assert is_active_status("Escalated")
    assert is_active_status("something new")
    assert not is_active_status("Delivered")
    assert not is_active_status("")
