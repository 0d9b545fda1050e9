"""Due-date arithmetic relative to "today" (truncated to midnight)."""

from __future__ import annotations

from typing import Optional

import pandas as pd

from casereport.normalize import is_active_status
from casereport.parsing import parse_date
from casereport.settings import DUE_SOON_DAYS, NEXT_WEEK_DAYS, THIS_WEEK_DAYS

DUE_BUCKETS = ("overdue", "due-soon", "this-week", "next-week", "no-due-date")


def today(now: Optional[pd.Timestamp] = None) -> pd.Timestamp:
    ts = pd.Timestamp.today() if now is None else pd.Timestamp(now)
    return ts.normalize()


def overdue_days(promised, status, now: Optional[pd.Timestamp] = None) -> int:
    """Days past the promised date; 0 unless the case is still active."""
    promised_ts = parse_date(promised)
    if promised_ts is None or not is_active_status(status):
        return 0
    diff = (today(now) - promised_ts).days
    return diff if diff > 0 else 0


def due_bucket_mask(df: pd.DataFrame, bucket: str, now: Optional[pd.Timestamp] = None) -> pd.Series:
    """Boolean mask over a parsed case frame for one due bucket."""
    if bucket not in DUE_BUCKETS:
        raise ValueError(f"Unknown due bucket {bucket!r}; expected one of {DUE_BUCKETS}")

    promised = df["Promised_Date"]
    if bucket == "no-due-date":
        return promised.isna()

    t0 = today(now)
    has_date = promised.notna()
    active = df["Is_Active"].astype(bool)

    if bucket == "overdue":
        window = promised < t0
    elif bucket == "due-soon":
        window = (promised >= t0) & (promised <= t0 + pd.Timedelta(days=DUE_SOON_DAYS))
    elif bucket == "this-week":
        window = (promised >= t0) & (promised <= t0 + pd.Timedelta(days=THIS_WEEK_DAYS))
    else:
        window = (promised > t0 + pd.Timedelta(days=THIS_WEEK_DAYS)) & (
            promised <= t0 + pd.Timedelta(days=NEXT_WEEK_DAYS)
        )
    return (has_date & active & window).fillna(False)
