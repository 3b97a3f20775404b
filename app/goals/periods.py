"""Calendar period helpers: pure, local-time comparisons."""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.goals.models import Frequency

PeriodKey = date | tuple[int, int]


def to_local(ts: datetime, tz: ZoneInfo) -> datetime:
    """Convert an aware timestamp into `tz`; naive timestamps are already local."""
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(tz)


def iso_week(ts: datetime) -> tuple[int, int]:
    """(ISO week-year, ISO week number). Dec 29-31 can fall in week 1 of the next year."""
    cal = ts.isocalendar()
    return cal[0], cal[1]


def period_key(frequency: Frequency | str | None, ts: datetime) -> PeriodKey | None:
    """Identity of the recurrence period containing `ts` (already local).

    Returns None for frequencies that do not recur (Once or unknown values).
    """
    if frequency == Frequency.daily:
        return ts.date()
    if frequency == Frequency.weekly:
        return iso_week(ts)
    if frequency == Frequency.monthly:
        return (ts.year, ts.month)
    return None
