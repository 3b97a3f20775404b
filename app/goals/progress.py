"""Goal progress aggregation: derived from the evaluator, never stored input."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from zoneinfo import ZoneInfo

from app.goals.completion import is_currently_completed
from app.goals.models import Activity, GoalStatus


def round_half_up_pct(part: int, whole: int) -> int:
    """round(100 * part / whole) with .5 going up, computed on integers."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def derive_status(progress: int) -> GoalStatus:
    if progress == 100:
        return GoalStatus.completed
    if progress == 0:
        return GoalStatus.not_started
    return GoalStatus.in_progress


def compute_progress(
    activities: Sequence[Activity],
    now: datetime | None = None,
    tz: ZoneInfo | str | None = None,
) -> tuple[int, GoalStatus]:
    """(progress, status) for a goal's full activity list.

    An empty list is 0 / Not Started. Status always follows progress,
    whatever was stored before.
    """
    if not activities:
        return 0, GoalStatus.not_started
    completed = sum(1 for a in activities if is_currently_completed(a, now, tz))
    progress = round_half_up_pct(completed, len(activities))
    return progress, derive_status(progress)
