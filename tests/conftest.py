"""Pytest configuration to make the local package importable without installation."""
import sys
from pathlib import Path
from typing import List

import pandas as pd
import pytest

# Ensure repository root is on sys.path for module resolution
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from casereport.records import BillingAdjustment, CaseRecord


@pytest.fixture
def now() -> pd.Timestamp:
    """Fixed "today" so due-date buckets are deterministic."""

    return pd.Timestamp("2024-06-15")


@pytest.fixture
def sample_cases() -> List[CaseRecord]:
    """Five cases covering the awkward spreadsheet inputs seen in practice."""

    return [
        CaseRecord(
            id="1",
            status="In Progress",
            billing_case_code="BC-001",
            date_received="2024-03-15",
            team="Alpha",
            requestor="Jane Doe",
            office="London",
            region="EMEA",
            client="Acme",
            priority_level="P1",
            scope_of_request="Market sizing",
            promised_date="2024-06-10",
            amount="$50,000",
            type="Full",
        ),
        CaseRecord(
            id="2",
            status="Delivered",
            billing_case_code="BC-002",
            date_received="2024-05-02",
            team="Beta",
            requestor="Sam Lee",
            office="New York",
            region="Americas",
            client="Globex",
            priority_level="high",
            promised_date="2024-05-30",
            amount="1,200",
            type="Short",
            add_ons_billing="300",
            add_on_ip_delivered="Benchmark + Survey",
        ),
        CaseRecord(
            id="3",
            status="cancelled ",
            billing_case_code="BC-003",
            date_received="2023-11-20",
            team="Alpha",
            requestor="Jane Doe",
            client="Initech",
            priority_level="P2",
            promised_date="2024-06-01",
            add_ons_billing="500",
            add_ons_only="Yes",
            add_on_ip_delivered="Survey",
        ),
        CaseRecord(
            id="4",
            status="Escalated",
            billing_case_code="BC-004",
            date_received="NA",
            requestor="Ana Ruiz",
            office="Singapore",
            region="APAC",
            client="Umbrella",
            priority_level="urgent",
            promised_date="2024-06-16",
            amount="abc",
            type="Standard",
            nps_flag="Yes",
        ),
        CaseRecord(
            id="5",
            status="",
            billing_case_code="BC-005",
            date_received=45366,  # Excel serial for 2024-03-15
            team="Gamma",
            requestor="Kim Park",
            office="Sao Paulo",
            region="LATAM",
            client="Hooli",
            amount="100",
            type="Full",
        ),
    ]


@pytest.fixture
def march_case() -> List[CaseRecord]:
    return [CaseRecord(id="m1", date_received="2024-03-15", type="Full", amount="50000")]


@pytest.fixture
def correction() -> BillingAdjustment:
    return BillingAdjustment(month=3, year=2024, type="Full", amount=-500, reason="correction")
