"""Activity completion evaluator.

An activity carries a completion record: the legacy `is_completed` flag
and an optional `last_completed_at` instant. For recurring activities the
instant is authoritative and only counts inside the current period; the
flag is used when there is no instant, or when the activity does not
recur. Rollover into a new period is implicit: nothing is stored when a
recurring activity becomes pending again.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from app.config import settings
from app.goals.models import Activity
from app.goals.periods import period_key, to_local


def _zone(tz: ZoneInfo | str | None) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or settings.default_tz)


def is_currently_completed(
    activity: Activity,
    now: datetime | None = None,
    tz: ZoneInfo | str | None = None,
) -> bool:
    """True if the activity is satisfied for the period containing `now`."""
    if activity.last_completed_at is None:
        return activity.is_completed

    zone = _zone(tz)
    current = to_local(now, zone) if now is not None else datetime.now(zone)
    last = to_local(activity.last_completed_at, zone)

    current_period = period_key(activity.frequency, current)
    if current_period is None:
        # Once, or a frequency this version does not know about
        return activity.is_completed
    return period_key(activity.frequency, last) == current_period


def next_completion_record(
    activity: Activity,
    now: datetime,
    tz: ZoneInfo | str | None = None,
) -> tuple[bool, datetime | None]:
    """Completion record after a toggle: done clears, pending stamps `now`."""
    if is_currently_completed(activity, now, tz):
        return False, None
    return True, now
