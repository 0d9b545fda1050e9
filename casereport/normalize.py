"""
Status and priority normalization.

Free-text status/priority cells are mapped through a synonym table onto the
canonical vocabulary in :mod:`casereport.settings`. Values outside the
vocabulary are kept as :class:`Unrecognized` so filters can offer an "Others"
bucket without losing the original text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union

from casereport.parsing import as_str
from casereport.settings import (
    CANONICAL_PRIORITIES,
    CANONICAL_STATUSES,
    CLOSED_STATUSES,
    OTHERS_LABEL,
    PRIORITY_SYNONYMS,
    STATUS_SYNONYMS,
)


@dataclass(frozen=True)
class Canonical:
    label: str

    @property
    def is_canonical(self) -> bool:
        return True


@dataclass(frozen=True)
class Unrecognized:
    """A value outside the canonical vocabulary (synonym spelling applied)."""

    original: str

    @property
    def label(self) -> str:
        return self.original

    @property
    def is_canonical(self) -> bool:
        return False


Normalized = Union[Canonical, Unrecognized]


def _normalize(raw, synonyms: Dict[str, str], vocabulary: Iterable[str]) -> Optional[Normalized]:
    trimmed = as_str(raw)
    if not trimmed:
        return None
    lower = trimmed.lower()
    label = synonyms.get(lower, trimmed)
    by_lower = {v.lower(): v for v in vocabulary}
    if label.lower() in by_lower:
        return Canonical(by_lower[label.lower()])
    return Unrecognized(label)


def normalize_status(raw) -> Optional[Normalized]:
    return _normalize(raw, STATUS_SYNONYMS, CANONICAL_STATUSES)


def normalize_priority(raw) -> Optional[Normalized]:
    return _normalize(raw, PRIORITY_SYNONYMS, CANONICAL_PRIORITIES)


def status_label(raw) -> str:
    norm = normalize_status(raw)
    return norm.label if norm else ""


def priority_label(raw) -> str:
    norm = normalize_priority(raw)
    return norm.label if norm else ""


def bucket_label(norm: Optional[Normalized]) -> str:
    """Label used for grouping: canonical label, else "Others"; blank stays blank."""
    if norm is None:
        return ""
    return norm.label if norm.is_canonical else OTHERS_LABEL


_CLOSED = {s.lower() for s in CLOSED_STATUSES}


def is_active_status(raw) -> bool:
    """Active means a non-blank status outside the terminal set."""
    norm = normalize_status(raw)
    if norm is None:
        return False
    return norm.label.lower() not in _CLOSED
