"""Goal operations: mutate one activity, recompute, persist the aggregate.

Every activity mutation follows the same three steps:

1. write the activity and commit; on failure roll back and raise
   ActivityWriteError (nothing changed, no recompute is attempted);
2. reload the goal's full activity list and check it reflects the write,
   else InconsistentStateError;
3. aggregate and write progress/status; on failure raise
   GoalAggregateWriteError (the activity change stands, the cache is stale).

Input is validated before step 1.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.goals import repository
from app.goals.completion import is_currently_completed, next_completion_record
from app.goals.errors import (
    ActivityWriteError,
    GoalAggregateWriteError,
    InconsistentStateError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
)
from app.goals.models import (
    Activity,
    ActivityCreate,
    ActivityUpdate,
    CategoryCreate,
    CategoryRename,
    Goal,
    GoalCategory,
    GoalCreate,
    GoalUpdate,
)
from app.goals.progress import compute_progress

logger = logging.getLogger(__name__)


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(ZoneInfo(settings.default_tz))


def _validate(model: type, fields: Any):
    if isinstance(fields, model):
        return fields
    try:
        return model.model_validate(fields)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in exc.errors()
        )
        raise InvalidInputError(problems) from exc


def _db_values(payload) -> dict[str, Any]:
    """Explicitly-set fields with enums flattened to their stored strings."""
    values = payload.model_dump(exclude_unset=True)
    return {k: getattr(v, "value", v) for k, v in values.items()}


def _build_goal(row: dict[str, Any], activity_rows: list[dict[str, Any]], now: datetime) -> Goal:
    activities = [Activity.model_validate(a) for a in activity_rows]
    for a in activities:
        a.completed_now = is_currently_completed(a, now)
    return Goal.model_validate({**row, "activities": activities})


async def _load_goal(session: AsyncSession, user_id: str, goal_id: str) -> dict[str, Any]:
    row = await repository.fetch_goal(session, user_id, goal_id)
    if row is None:
        raise NotFoundError(f"Goal {goal_id} not found")
    return row


async def _write_activity(session: AsyncSession, op: str, write) -> Any:
    try:
        result = await write
        await repository.commit(session)
    except PersistenceError as exc:
        await repository.rollback(session)
        raise ActivityWriteError(f"Could not {op}: {exc.message}") from exc
    return result


async def _reload_activities(session: AsyncSession, goal_id: str) -> list[dict[str, Any]]:
    try:
        return await repository.fetch_activities(session, [goal_id])
    except PersistenceError as exc:
        raise InconsistentStateError(
            f"Activities of goal {goal_id} could not be reloaded; progress was not updated"
        ) from exc


async def _persist_aggregate(
    session: AsyncSession,
    goal_row: dict[str, Any],
    activity_rows: list[dict[str, Any]],
    now: datetime,
    subject: str = "Activity saved but progress",
) -> Goal:
    goal_id = goal_row["id"]
    activities = [Activity.model_validate(a) for a in activity_rows]
    progress, status = compute_progress(activities, now)
    try:
        await repository.update_goal_aggregate(session, goal_id, progress, status.value)
        await repository.commit(session)
    except PersistenceError as exc:
        await repository.rollback(session)
        raise GoalAggregateWriteError(
            f"{subject} of goal {goal_id} could not be updated: {exc.message}"
        ) from exc

    logger.info("Goal %s recomputed: %d%% %s", goal_id, progress, status.value)
    return _build_goal({**goal_row, "progress": progress, "status": status}, activity_rows, now)


# ---------------------------------------------------------------------------
# Activity mutations (trigger recomputation)
# ---------------------------------------------------------------------------


async def toggle_activity(
    session: AsyncSession,
    user_id: str,
    goal_id: str,
    activity_id: str,
    now: datetime | None = None,
) -> Goal:
    """Flip an activity for its current period and return the recomputed goal."""
    now = _now(now)
    goal_row = await _load_goal(session, user_id, goal_id)
    row = next((a for a in goal_row["activities"] if a["id"] == activity_id), None)
    if row is None:
        raise NotFoundError(f"Activity {activity_id} not found in goal {goal_id}")

    done, stamp = next_completion_record(Activity.model_validate(row), now)
    await _write_activity(
        session,
        "update activity",
        repository.update_activity(
            session, goal_id, activity_id, {"is_completed": done, "last_completed_at": stamp}
        ),
    )
    logger.info("Activity %s toggled %s", activity_id, "on" if done else "off")

    rows = await _reload_activities(session, goal_id)
    if not any(a["id"] == activity_id for a in rows):
        raise InconsistentStateError(f"Activity {activity_id} missing after toggle")
    return await _persist_aggregate(session, goal_row, rows, now)


async def add_activity(
    session: AsyncSession,
    user_id: str,
    goal_id: str,
    fields: ActivityCreate | dict[str, Any],
    now: datetime | None = None,
) -> Goal:
    payload = _validate(ActivityCreate, fields)
    now = _now(now)
    goal_row = await _load_goal(session, user_id, goal_id)

    created = await _write_activity(
        session,
        "add activity",
        repository.insert_activity(session, goal_id, {**_db_values(payload), "frequency": payload.frequency.value}),
    )
    logger.info("Activity %s added to goal %s", created["id"], goal_id)

    rows = await _reload_activities(session, goal_id)
    if not any(a["id"] == created["id"] for a in rows):
        raise InconsistentStateError(f"Activity {created['id']} missing after insert")
    return await _persist_aggregate(session, goal_row, rows, now)


async def remove_activity(
    session: AsyncSession,
    user_id: str,
    goal_id: str,
    activity_id: str,
    now: datetime | None = None,
) -> Goal:
    now = _now(now)
    goal_row = await _load_goal(session, user_id, goal_id)
    if not any(a["id"] == activity_id for a in goal_row["activities"]):
        raise NotFoundError(f"Activity {activity_id} not found in goal {goal_id}")

    deleted = await _write_activity(
        session, "delete activity", repository.delete_activity(session, goal_id, activity_id)
    )
    if not deleted:
        raise NotFoundError(f"Activity {activity_id} not found in goal {goal_id}")
    logger.info("Activity %s removed from goal %s", activity_id, goal_id)

    rows = await _reload_activities(session, goal_id)
    if any(a["id"] == activity_id for a in rows):
        raise InconsistentStateError(f"Activity {activity_id} still present after delete")
    return await _persist_aggregate(session, goal_row, rows, now)


async def recompute_goal(
    session: AsyncSession,
    user_id: str,
    goal_id: str,
    now: datetime | None = None,
) -> Goal:
    """Refresh the stored progress/status from the current activity list."""
    now = _now(now)
    try:
        goal_row = await _load_goal(session, user_id, goal_id)
    except PersistenceError as exc:
        raise InconsistentStateError(
            f"Activities of goal {goal_id} could not be loaded; progress was not updated", stale=False
        ) from exc
    return await _persist_aggregate(session, goal_row, goal_row["activities"], now, subject="Progress")


async def edit_activity(
    session: AsyncSession,
    user_id: str,
    goal_id: str,
    activity_id: str,
    fields: ActivityUpdate | dict[str, Any],
    now: datetime | None = None,
) -> Goal:
    """Rename or re-schedule an activity.

    The stored aggregate is left alone; a frequency change is picked up by
    the next evaluation against the existing last_completed_at.
    """
    payload = _validate(ActivityUpdate, fields)
    values = _db_values(payload)
    if not values:
        raise InvalidInputError("Nothing to update")
    if "name" in values and values["name"] is None:
        raise InvalidInputError("name: must not be blank")
    if "frequency" in values and values["frequency"] is None:
        raise InvalidInputError("frequency: must be one of Daily, Weekly, Monthly, Once")

    now = _now(now)
    goal_row = await _load_goal(session, user_id, goal_id)
    if not any(a["id"] == activity_id for a in goal_row["activities"]):
        raise NotFoundError(f"Activity {activity_id} not found in goal {goal_id}")

    updated = await _write_activity(
        session, "update activity", repository.update_activity(session, goal_id, activity_id, values)
    )
    if updated is None:
        raise NotFoundError(f"Activity {activity_id} not found in goal {goal_id}")
    logger.info("Activity %s edited (%s)", activity_id, ", ".join(sorted(values)))

    rows = [updated if a["id"] == activity_id else a for a in goal_row["activities"]]
    return _build_goal(goal_row, rows, now)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


async def list_goals(session: AsyncSession, user_id: str, now: datetime | None = None) -> list[Goal]:
    now = _now(now)
    rows = await repository.fetch_goals(session, user_id)
    return [_build_goal(r, r["activities"], now) for r in rows]


async def get_goal(session: AsyncSession, user_id: str, goal_id: str, now: datetime | None = None) -> Goal:
    row = await _load_goal(session, user_id, goal_id)
    return _build_goal(row, row["activities"], _now(now))


async def create_goal(
    session: AsyncSession,
    user_id: str,
    fields: GoalCreate | dict[str, Any],
) -> Goal:
    payload = _validate(GoalCreate, fields)
    try:
        row = await repository.insert_goal(session, user_id, _db_values(payload) | {"priority": payload.priority.value})
        await repository.commit(session)
    except PersistenceError:
        await repository.rollback(session)
        raise
    logger.info("Goal %s created for user %s", row["id"], user_id)
    return Goal.model_validate(row)


async def update_goal(
    session: AsyncSession,
    user_id: str,
    goal_id: str,
    fields: GoalUpdate | dict[str, Any],
    now: datetime | None = None,
) -> Goal:
    payload = _validate(GoalUpdate, fields)
    values = _db_values(payload)
    if not values:
        raise InvalidInputError("Nothing to update")
    for required in ("title", "category", "priority"):
        if required in values and values[required] is None:
            raise InvalidInputError(f"{required}: must not be null")

    goal_row = await _load_goal(session, user_id, goal_id)
    try:
        row = await repository.update_goal_fields(session, user_id, goal_id, values)
        await repository.commit(session)
    except PersistenceError:
        await repository.rollback(session)
        raise
    if row is None:
        raise NotFoundError(f"Goal {goal_id} not found")
    logger.info("Goal %s updated (%s)", goal_id, ", ".join(sorted(values)))
    return _build_goal(row, goal_row["activities"], _now(now))


async def delete_goal(session: AsyncSession, user_id: str, goal_id: str) -> None:
    try:
        deleted = await repository.delete_goal(session, user_id, goal_id)
        await repository.commit(session)
    except PersistenceError:
        await repository.rollback(session)
        raise
    if not deleted:
        raise NotFoundError(f"Goal {goal_id} not found")
    logger.info("Goal %s deleted with its activities", goal_id)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def default_categories() -> list[GoalCategory]:
    return [
        GoalCategory(name=name, color=settings.default_category_color, is_default=True)
        for name in settings.default_categories
    ]


async def list_categories(session: AsyncSession, user_id: str) -> list[GoalCategory]:
    """Built-in categories first, then the user's own (duplicates of a default are skipped)."""
    defaults = default_categories()
    taken = {c.name.casefold() for c in defaults}
    custom = [
        GoalCategory.model_validate(r)
        for r in await repository.fetch_categories(session, user_id)
        if r["name"].casefold() not in taken
    ]
    return defaults + custom


async def create_category(
    session: AsyncSession,
    user_id: str,
    fields: CategoryCreate | dict[str, Any],
) -> GoalCategory:
    payload = _validate(CategoryCreate, fields)
    existing = {c.name.casefold() for c in await list_categories(session, user_id)}
    if payload.name.casefold() in existing:
        raise InvalidInputError(f"Category '{payload.name}' already exists")
    try:
        row = await repository.insert_category(
            session, user_id, payload.name, payload.color or settings.default_category_color
        )
        await repository.commit(session)
    except PersistenceError:
        await repository.rollback(session)
        raise
    return GoalCategory.model_validate(row)


async def rename_category(
    session: AsyncSession,
    user_id: str,
    category_id: str,
    fields: CategoryRename | dict[str, Any],
) -> GoalCategory:
    payload = _validate(CategoryRename, fields)
    taken = {c.name.casefold() for c in await list_categories(session, user_id) if c.id != category_id}
    if payload.name.casefold() in taken:
        raise InvalidInputError(f"Category '{payload.name}' already exists")
    try:
        row = await repository.rename_category(session, user_id, category_id, payload.name)
        if row is None:
            await repository.rollback(session)
            raise NotFoundError(f"Category {category_id} not found")
        await repository.commit(session)
    except PersistenceError:
        await repository.rollback(session)
        raise
    logger.info("Category %s renamed to %r", category_id, payload.name)
    return GoalCategory.model_validate(row)


async def delete_category(session: AsyncSession, user_id: str, category_id: str) -> None:
    try:
        deleted = await repository.delete_category(session, user_id, category_id)
        await repository.commit(session)
    except PersistenceError:
        await repository.rollback(session)
        raise
    if not deleted:
        raise NotFoundError(f"Category {category_id} not found")
