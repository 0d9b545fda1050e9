"""
View presets and the custom column builder.

Columns are drawn from a closed registry of field projectors: a field key, its
display label, and an accessor that renders the value for one case. Building a
view with a key outside the registry is an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import pandas as pd

from casereport.due import overdue_days
from casereport.parsing import as_str, is_present, parse_date
from casereport.records import CaseRecord, DATE_FIELDS

DATE_FORMAT = "%d-%b-%y"


def format_date(value) -> str:
    ts = parse_date(value)
    return ts.strftime(DATE_FORMAT) if ts is not None else ""


# =============================================================================
# FIELD REGISTRY
# =============================================================================

# accessor(case, row_index, today) -> display string
Accessor = Callable[[CaseRecord, int, Optional[pd.Timestamp]], str]


@dataclass(frozen=True)
class FieldProjector:
    key: str
    label: str
    accessor: Accessor


def _text(attr: str) -> Accessor:
    return lambda c, idx, now: as_str(getattr(c, attr))


def _date(attr: str) -> Accessor:
    return lambda c, idx, now: format_date(getattr(c, attr))


def _overdue(c: CaseRecord, idx: int, now: Optional[pd.Timestamp]) -> str:
    days = overdue_days(c.promised_date, c.status, now)
    return str(days) if days else ""


_LABELS = [
    ("date_received", "Date Received"),
    ("team", "Team"),
    ("status", "Status"),
    ("requestor", "Requestor"),
    ("nps_flag", "NPS Flag"),
    ("level", "Level"),
    ("office", "Office"),
    ("region", "Region"),
    ("client", "Client"),
    ("priority_level", "Priority Level"),
    ("industry", "Industry"),
    ("industry_classification", "Industry Classification"),
    ("scope_of_request", "Scope of Request"),
    ("delivered_request", "Delivered Request"),
    ("promised_date", "Promised Date for Delivery"),
    ("actual_delivery_date", "Actual Date for Delivery"),
    ("client_meeting_date", "Date for Client Meeting"),
    ("billing_case_code", "Billing Case Code"),
    ("cd_client", "CD/Client"),
    ("currency", "Currency"),
    ("amount", "Amount"),
    ("type", "Type"),
    ("add_on_ip_delivered", "Add-on IP Delivered"),
    ("add_ons_billing", "Add-ons Billing"),
    ("add_ons_only", "Add-ons Only"),
    ("billing", "Billing"),
    ("additional_requestor1", "Additional Requestor 1"),
    ("additional_requestor1_level", "Additional Requestor 1 Level"),
    ("additional_requestor2", "Additional Requestor 2"),
    ("additional_requestor2_level", "Additional Requestor 2 Level"),
    ("post_delivery_reachouts", "Post-delivery Reachouts?"),
    ("response_received", "Response Received?"),
    ("deck_material_shared", "Deck/Material Shared?"),
    ("next_steps", "Next Steps?"),
]

FIELD_REGISTRY: Dict[str, FieldProjector] = {
    "sno": FieldProjector("sno", "S No.", lambda c, idx, now: str(idx + 1)),
}
for _key, _label in _LABELS:
    _acc = _date(_key) if _key in DATE_FIELDS else _text(_key)
    FIELD_REGISTRY[_key] = FieldProjector(_key, _label, _acc)
FIELD_REGISTRY["overdue"] = FieldProjector("overdue", "Overdue By", _overdue)

# Column-filter text also matches the raw date string, not only the formatted one.
SEARCHABLE_RAW_DATES = set(DATE_FIELDS)


def field_text(case: CaseRecord, key: str, idx: int = 0, now: Optional[pd.Timestamp] = None) -> str:
    """Text a column filter matches against for ``key``."""
    projector = get_field(key)
    rendered = projector.accessor(case, idx, now)
    if key in SEARCHABLE_RAW_DATES:
        return f"{as_str(getattr(case, key))} {rendered}"
    if key == "overdue":
        return f"overdue {rendered}" if rendered else "0"
    return rendered


def get_field(key: str) -> FieldProjector:
    try:
        return FIELD_REGISTRY[key]
    except KeyError:
        raise ValueError(f"Unknown field {key!r}") from None


# =============================================================================
# PRESETS
# =============================================================================

FULL_EXPORT_KEYS: List[str] = ["sno"] + [k for k, _ in _LABELS]

PRESETS: Dict[str, List[str]] = {
    "manager": [
        "sno", "date_received", "status", "client", "requestor", "team",
        "priority_level", "promised_date", "actual_delivery_date", "overdue",
    ],
    "full": FULL_EXPORT_KEYS,
    "delivery": [
        "sno", "client", "scope_of_request", "delivered_request", "promised_date",
        "actual_delivery_date", "client_meeting_date", "status", "overdue",
    ],
    "billing": [
        "sno", "billing_case_code", "client", "date_received", "currency", "amount",
        "type", "add_on_ip_delivered", "add_ons_billing", "add_ons_only", "billing",
    ],
    "region": ["sno", "region", "office", "client", "team", "status", "date_received"],
    "nps": [
        "sno", "client", "requestor", "nps_flag", "post_delivery_reachouts",
        "response_received", "deck_material_shared", "next_steps",
    ],
}

# Presets that also restrict rows.
ROW_SCOPES: Dict[str, Callable[[CaseRecord], bool]] = {
    "nps": lambda c: is_present(c.nps_flag),
}


# =============================================================================
# BUILDER
# =============================================================================

class ViewBuilder:
    """Ordered set of registered columns rendered to a display frame."""

    def __init__(self, keys: Optional[Sequence[str]] = None, row_scope: Optional[Callable[[CaseRecord], bool]] = None):
        self._keys: List[str] = []
        self._row_scope = row_scope
        for key in keys or []:
            self.add_column(key)

    @classmethod
    def preset(cls, name: str) -> "ViewBuilder":
        if name not in PRESETS:
            raise ValueError(f"Unknown view preset {name!r}; expected one of {sorted(PRESETS)}")
        return cls(PRESETS[name], row_scope=ROW_SCOPES.get(name))

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    @property
    def labels(self) -> List[str]:
        return [FIELD_REGISTRY[k].label for k in self._keys]

    def add_column(self, key: str) -> "ViewBuilder":
        get_field(key)
        if key not in self._keys:
            self._keys.append(key)
        return self

    def remove_column(self, key: str) -> "ViewBuilder":
        if key in self._keys:
            self._keys.remove(key)
        return self

    def toggle_column(self, key: str) -> "ViewBuilder":
        return self.remove_column(key) if key in self._keys else self.add_column(key)

    def scope(self, cases: Sequence[CaseRecord]) -> List[CaseRecord]:
        if self._row_scope is None:
            return list(cases)
        return [c for c in cases if self._row_scope(c)]

    def build(self, cases: Sequence[CaseRecord], now: Optional[pd.Timestamp] = None) -> pd.DataFrame:
        rows = []
        for idx, case in enumerate(self.scope(cases)):
            rows.append([FIELD_REGISTRY[k].accessor(case, idx, now) for k in self._keys])
        return pd.DataFrame(rows, columns=self.labels)

    def columns_with_data(self, cases: Sequence[CaseRecord], now: Optional[pd.Timestamp] = None) -> List[str]:
        """Keys whose column is non-blank for at least one case ("sno" always kept)."""
        scoped = self.scope(cases)
        keep = []
        for key in self._keys:
            if key == "sno" or any(FIELD_REGISTRY[key].accessor(c, i, now) for i, c in enumerate(scoped)):
                keep.append(key)
        return keep
