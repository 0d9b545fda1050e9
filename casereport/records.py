"""
Case and billing-adjustment records, and the parsed working frame.

Every computation starts by turning the collaborator-supplied records into a
single ``pandas.DataFrame``: the original fields are kept verbatim (amounts stay
text) and canonical, parsed columns are added alongside them. Consumers read
the parsed columns only; the raw fields are never trusted to be typed.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from casereport.normalize import normalize_priority, normalize_status, is_active_status
from casereport.parsing import MISSING_DATE_TOKENS, as_str, is_present, is_yes, parse_amount, parse_date
from casereport.settings import UNKNOWN_OFFICE, UNKNOWN_REGION

logger = logging.getLogger(__name__)


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class CaseRecord:
    """One tracked request. Text fields are stored exactly as entered."""

    id: str
    status: Optional[str] = None
    billing_case_code: Optional[str] = None
    cd_client: Optional[str] = None
    date_received: Any = None
    team: Optional[str] = None
    requestor: Optional[str] = None
    nps_flag: Optional[str] = None
    level: Optional[str] = None
    office: Optional[str] = None
    region: Optional[str] = None
    client: Optional[str] = None
    priority_level: Optional[str] = None
    industry: Optional[str] = None
    industry_classification: Optional[str] = None
    scope_of_request: Optional[str] = None
    delivered_request: Optional[str] = None
    promised_date: Any = None
    actual_delivery_date: Any = None
    client_meeting_date: Any = None
    currency: Optional[str] = None
    amount: Optional[str] = None
    type: Optional[str] = None
    add_on_ip_delivered: Optional[str] = None
    add_ons_billing: Optional[str] = None
    add_ons_only: Optional[str] = None
    billing: Optional[str] = None
    additional_requestor1: Optional[str] = None
    additional_requestor1_level: Optional[str] = None
    additional_requestor2: Optional[str] = None
    additional_requestor2_level: Optional[str] = None
    post_delivery_reachouts: Optional[str] = None
    response_received: Optional[str] = None
    deck_material_shared: Optional[str] = None
    next_steps: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BillingAdjustment:
    """A manual signed correction to one (year, month, billing type) bucket."""

    month: int
    year: int
    type: str
    amount: float
    reason: str = ""
    id: Optional[str] = None
    created_at: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


CASE_FIELDS: List[str] = [f.name for f in fields(CaseRecord)]
DATE_FIELDS = ("date_received", "promised_date", "actual_delivery_date", "client_meeting_date")
# parsed date columns; the meeting date is only checked for bad input
DATE_COLUMNS = {
    "date_received": "Received_Date",
    "promised_date": "Promised_Date",
    "actual_delivery_date": "Actual_Date",
}

CaseInput = Union[Sequence[CaseRecord], pd.DataFrame]


# =============================================================================
# FRAME CONSTRUCTION
# =============================================================================

@dataclass
class ParseReport:
    raw_records: int
    parsed_records: int
    unparseable_dates: int = 0
    unparseable_amounts: int = 0
    notes: List[str] = field(default_factory=list)


def records_to_frame(records: Sequence[CaseRecord]) -> pd.DataFrame:
    """Raw frame, one column per :class:`CaseRecord` field, positional index."""
    rows = [asdict(r) for r in records]
    return pd.DataFrame(rows, columns=CASE_FIELDS)


def _junk_amount(x) -> bool:
    s = as_str(x).replace("$", "").replace(",", "")
    if not s:
        return False
    try:
        float(s)
    except ValueError:
        return True
    return False


def clean_and_parse(df: pd.DataFrame) -> Tuple[pd.DataFrame, ParseReport]:
    """
    Light cleaning and typing. Keeps all original columns, adds canonical fields.
    """
    notes: List[str] = []
    out = df.copy()

    missing = [c for c in CASE_FIELDS if c not in out.columns]
    if missing:
        notes.append(f"Missing expected columns: {missing}")
        for col in missing:
            out[col] = None

    # Dates
    bad_dates = 0
    for col in DATE_FIELDS:
        parsed = out[col].map(parse_date)
        given = out[col].map(lambda x: as_str(x).lower() not in MISSING_DATE_TOKENS)
        bad_dates += int((given & parsed.isna()).sum())
        if col in DATE_COLUMNS:
            out[DATE_COLUMNS[col]] = pd.to_datetime(parsed)
    out["Received_Year"] = out["Received_Date"].dt.year

    # Numerics (re-parsed from text, never trusted)
    out["Amount_Value"] = out["amount"].map(parse_amount).astype(float)
    out["AddOn_Value"] = out["add_ons_billing"].map(parse_amount).astype(float)
    bad_amounts = int(out["amount"].map(_junk_amount).sum() + out["add_ons_billing"].map(_junk_amount).sum())

    # Presence flags
    out["Has_Type"] = out["type"].map(is_present).astype(bool)
    out["Has_AddOns"] = out["add_ons_billing"].map(is_present).astype(bool)
    out["Is_AddOns_Only"] = out["add_ons_only"].map(is_yes).astype(bool)

    # Vocabulary
    status = out["status"].map(normalize_status)
    out["Status_Label"] = status.map(lambda n: n.label if n else "")
    out["Status_Is_Canonical"] = status.map(lambda n: bool(n and n.is_canonical)).astype(bool)
    out["Is_Active"] = out["status"].map(is_active_status).astype(bool)
    priority = out["priority_level"].map(normalize_priority)
    out["Priority_Label"] = priority.map(lambda n: n.label if n else "")
    out["Priority_Is_Canonical"] = priority.map(lambda n: bool(n and n.is_canonical)).astype(bool)

    # Categorical labels with placeholders
    out["Type_Label"] = out["type"].map(as_str)
    out["Team_Label"] = out["team"].map(as_str)
    out["Region_Label"] = out["region"].map(lambda x: as_str(x) or UNKNOWN_REGION)
    out["Office_Label"] = out["office"].map(lambda x: as_str(x) or UNKNOWN_OFFICE)

    if bad_dates:
        notes.append(f"{bad_dates} date cell(s) could not be parsed")
    if bad_amounts:
        notes.append(f"{bad_amounts} amount cell(s) could not be parsed; treated as 0")
    for note in notes:
        logger.debug(note)

    rep = ParseReport(
        raw_records=len(df),
        parsed_records=len(out),
        unparseable_dates=bad_dates,
        unparseable_amounts=bad_amounts,
        notes=notes,
    )
    return out, rep


def is_parsed(df: pd.DataFrame) -> bool:
    return "Amount_Value" in df.columns and "Received_Date" in df.columns


def case_frame(cases: CaseInput) -> pd.DataFrame:
    """Parsed working frame from records, a raw frame, or an already-parsed frame."""
    if isinstance(cases, pd.DataFrame):
        if is_parsed(cases):
            return cases
        parsed, _ = clean_and_parse(cases)
        return parsed
    parsed, _ = clean_and_parse(records_to_frame(cases))
    return parsed


def frame_to_records(df: pd.DataFrame) -> List[CaseRecord]:
    """Rebuild records from the raw field columns of a (parsed or raw) frame."""
    out: List[CaseRecord] = []
    for row in df[CASE_FIELDS].to_dict(orient="records"):
        clean = {k: (None if _blank(v) else v) for k, v in row.items()}
        clean["id"] = as_str(row.get("id"))
        out.append(CaseRecord(**clean))
    return out


def _blank(v) -> bool:
    try:
        return v is None or bool(pd.isna(v))
    except (TypeError, ValueError):
        return False
