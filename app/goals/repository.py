"""Database access for goals, activities and goal categories.

Raw SQL over AsyncSession. Reads return plain dicts (UUIDs as strings);
missing or foreign rows come back as None. Every driver error is
re-raised as PersistenceError. Transactions are left to the caller:
nothing here commits except through `commit`.
"""

from __future__ import annotations

import functools
import logging
import uuid
from typing import Any, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.goals.errors import PersistenceError

logger = logging.getLogger(__name__)

GOAL_COLUMNS = ("title", "category", "priority", "description", "deadline")
ACTIVITY_COLUMNS = ("name", "frequency", "deadline", "is_completed", "last_completed_at")


def _db_call(fn):
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("%s failed: %s", fn.__name__, exc)
            raise PersistenceError(f"{fn.__name__} failed ({exc.__class__.__name__})") from exc

    return wrapper


def _valid_id(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _clean(row: dict[str, Any]) -> dict[str, Any]:
    return {k: str(v) if isinstance(v, uuid.UUID) else v for k, v in row.items()}


def _rows(result) -> list[dict[str, Any]]:
    columns = result.keys()
    return [_clean(dict(zip(columns, r))) for r in result.fetchall()]


def _first(result) -> dict[str, Any] | None:
    rows = _rows(result)
    return rows[0] if rows else None


def _set_clause(fields: dict[str, Any], allowed: Sequence[str]) -> tuple[str, dict[str, Any]]:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Unsupported columns: {sorted(unknown)}")
    clause = ", ".join(f"{col} = :{col}" for col in fields)
    return clause, dict(fields)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@_db_call
async def commit(session: AsyncSession) -> None:
    await session.commit()


async def rollback(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except SQLAlchemyError as exc:
        logger.warning("rollback failed: %s", exc)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


@_db_call
async def fetch_goals(session: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    """All of a user's goals, newest first, each with its `activities` list."""
    result = await session.execute(
        text("SELECT * FROM public.goals WHERE user_id = :user_id ORDER BY created_at DESC"),
        {"user_id": user_id},
    )
    goals = _rows(result)
    if not goals:
        return []

    activities = await fetch_activities(session, [g["id"] for g in goals])
    by_goal: dict[str, list[dict[str, Any]]] = {g["id"]: [] for g in goals}
    for a in activities:
        if a.get("goal_id") in by_goal:
            by_goal[a["goal_id"]].append(a)
    for g in goals:
        g["activities"] = by_goal[g["id"]]
    return goals


@_db_call
async def fetch_goal(session: AsyncSession, user_id: str, goal_id: str) -> dict[str, Any] | None:
    """One goal with its activities, or None when absent or owned by someone else."""
    if not _valid_id(goal_id):
        return None
    result = await session.execute(
        text("SELECT * FROM public.goals WHERE id = :goal_id AND user_id = :user_id"),
        {"goal_id": goal_id, "user_id": user_id},
    )
    goal = _first(result)
    if goal is None:
        return None
    goal["activities"] = await fetch_activities(session, [goal_id])
    return goal


@_db_call
async def insert_goal(session: AsyncSession, user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    payload = {col: fields.get(col) for col in GOAL_COLUMNS}
    result = await session.execute(
        text(
            "INSERT INTO public.goals "
            "(user_id, title, category, priority, description, deadline, progress, status) "
            "VALUES (:user_id, :title, :category, :priority, :description, :deadline, 0, 'Not Started') "
            "RETURNING *"
        ),
        {"user_id": user_id, **payload},
    )
    goal = _first(result)
    goal["activities"] = []
    return goal


@_db_call
async def update_goal_fields(
    session: AsyncSession,
    user_id: str,
    goal_id: str,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    clause, params = _set_clause(fields, GOAL_COLUMNS)
    result = await session.execute(
        text(
            f"UPDATE public.goals SET {clause} "
            "WHERE id = :goal_id AND user_id = :user_id RETURNING *"
        ),
        {**params, "goal_id": goal_id, "user_id": user_id},
    )
    return _first(result)


@_db_call
async def update_goal_aggregate(session: AsyncSession, goal_id: str, progress: int, status: str) -> None:
    result = await session.execute(
        text("UPDATE public.goals SET progress = :progress, status = :status WHERE id = :goal_id RETURNING id"),
        {"goal_id": goal_id, "progress": progress, "status": status},
    )
    if _first(result) is None:
        raise PersistenceError(f"Goal {goal_id} vanished before its progress could be saved")


@_db_call
async def delete_goal(session: AsyncSession, user_id: str, goal_id: str) -> bool:
    """Delete a goal and its activities. False when the goal is not the user's."""
    if not _valid_id(goal_id):
        return False
    result = await session.execute(
        text("SELECT id FROM public.goals WHERE id = :goal_id AND user_id = :user_id"),
        {"goal_id": goal_id, "user_id": user_id},
    )
    if _first(result) is None:
        return False
    await session.execute(text("DELETE FROM public.activities WHERE goal_id = :goal_id"), {"goal_id": goal_id})
    await session.execute(
        text("DELETE FROM public.goals WHERE id = :goal_id AND user_id = :user_id"),
        {"goal_id": goal_id, "user_id": user_id},
    )
    return True


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


@_db_call
async def fetch_activities(session: AsyncSession, goal_ids: Sequence[str]) -> list[dict[str, Any]]:
    """Activities of the given goals in creation order."""
    if not goal_ids:
        return []
    stmt = text(
        "SELECT * FROM public.activities WHERE goal_id IN :goal_ids ORDER BY created_at, id"
    ).bindparams(bindparam("goal_ids", expanding=True))
    result = await session.execute(stmt, {"goal_ids": list(goal_ids)})
    return _rows(result)


@_db_call
async def insert_activity(session: AsyncSession, goal_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    result = await session.execute(
        text(
            "INSERT INTO public.activities (goal_id, name, frequency, deadline, is_completed) "
            "VALUES (:goal_id, :name, :frequency, :deadline, false) RETURNING *"
        ),
        {
            "goal_id": goal_id,
            "name": fields["name"],
            "frequency": fields["frequency"],
            "deadline": fields.get("deadline"),
        },
    )
    return _first(result)


@_db_call
async def update_activity(
    session: AsyncSession,
    goal_id: str,
    activity_id: str,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    clause, params = _set_clause(fields, ACTIVITY_COLUMNS)
    result = await session.execute(
        text(
            f"UPDATE public.activities SET {clause} "
            "WHERE id = :activity_id AND goal_id = :goal_id RETURNING *"
        ),
        {**params, "activity_id": activity_id, "goal_id": goal_id},
    )
    return _first(result)


@_db_call
async def delete_activity(session: AsyncSession, goal_id: str, activity_id: str) -> bool:
    result = await session.execute(
        text("DELETE FROM public.activities WHERE id = :activity_id AND goal_id = :goal_id RETURNING id"),
        {"activity_id": activity_id, "goal_id": goal_id},
    )
    return _first(result) is not None


# ---------------------------------------------------------------------------
# Goal categories
# ---------------------------------------------------------------------------


@_db_call
async def fetch_categories(session: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    result = await session.execute(
        text("SELECT * FROM public.goal_categories WHERE user_id = :user_id ORDER BY created_at, name"),
        {"user_id": user_id},
    )
    return _rows(result)


@_db_call
async def insert_category(session: AsyncSession, user_id: str, name: str, color: str) -> dict[str, Any]:
    result = await session.execute(
        text(
            "INSERT INTO public.goal_categories (user_id, name, color, is_default) "
            "VALUES (:user_id, :name, :color, false) RETURNING *"
        ),
        {"user_id": user_id, "name": name, "color": color},
    )
    return _first(result)


@_db_call
async def rename_category(
    session: AsyncSession,
    user_id: str,
    category_id: str,
    name: str,
) -> dict[str, Any] | None:
    """Rename a category and every goal of the user filed under the old name."""
    if not _valid_id(category_id):
        return None
    result = await session.execute(
        text("SELECT name FROM public.goal_categories WHERE id = :category_id AND user_id = :user_id"),
        {"category_id": category_id, "user_id": user_id},
    )
    current = _first(result)
    if current is None:
        return None

    result = await session.execute(
        text("UPDATE public.goal_categories SET name = :name WHERE id = :category_id RETURNING *"),
        {"name": name, "category_id": category_id},
    )
    renamed = _first(result)
    await session.execute(
        text("UPDATE public.goals SET category = :new WHERE category = :old AND user_id = :user_id"),
        {"new": name, "old": current["name"], "user_id": user_id},
    )
    return renamed


@_db_call
async def delete_category(session: AsyncSession, user_id: str, category_id: str) -> bool:
    """Delete the category record only; goals keep the name as a free string."""
    if not _valid_id(category_id):
        return False
    result = await session.execute(
        text("DELETE FROM public.goal_categories WHERE id = :category_id AND user_id = :user_id RETURNING id"),
        {"category_id": category_id, "user_id": user_id},
    )
    return _first(result) is not None
