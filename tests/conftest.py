"""Shared fixtures for the test suite."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import settings
from app.db import get_session
from app.goals import repository
from app.goals.errors import PersistenceError
from app.goals.models import Activity, Frequency
from app.main import app

USER_ID = settings.default_user_id
OTHER_USER_ID = "11111111-1111-1111-1111-111111111111"


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession; the fake store does the real work."""

    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


# ---------------------------------------------------------------------------
# In-memory stand-in for app.goals.repository
# ---------------------------------------------------------------------------

class FakeStore:
    """Dict-backed copy of the repository functions.

    Put an operation name in `fail_on` to make that call raise
    PersistenceError before it changes anything.
    """

    FUNCTIONS = (
        "commit",
        "rollback",
        "fetch_goals",
        "fetch_goal",
        "insert_goal",
        "update_goal_fields",
        "update_goal_aggregate",
        "delete_goal",
        "fetch_activities",
        "insert_activity",
        "update_activity",
        "delete_activity",
        "fetch_categories",
        "insert_category",
        "rename_category",
        "delete_category",
    )

    def __init__(self):
        self.goals: dict[str, dict[str, Any]] = {}
        self.activities: dict[str, dict[str, Any]] = {}
        self.categories: dict[str, dict[str, Any]] = {}
        self.fail_on: set[str] = set()
        self.calls: list[str] = []
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail_on:
            raise PersistenceError(f"{op} failed (OperationalError)")

    def writes(self) -> list[str]:
        return [c for c in self.calls if not c.startswith("fetch") and c not in ("commit", "rollback")]

    # -- seeding ------------------------------------------------------------

    def add_goal(self, title: str = "Get fit", user_id: str = USER_ID, **fields) -> dict[str, Any]:
        row = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "title": title,
            "category": "Health",
            "priority": "Medium",
            "description": None,
            "progress": 0,
            "status": "Not Started",
            "deadline": None,
            "created_at": self._tick(),
        }
        row.update(fields)
        self.goals[row["id"]] = row
        return row

    def add_activity(self, goal_id: str, name: str = "Run", **fields) -> dict[str, Any]:
        row = {
            "id": str(uuid.uuid4()),
            "goal_id": goal_id,
            "name": name,
            "frequency": "Once",
            "is_completed": False,
            "last_completed_at": None,
            "deadline": None,
            "created_at": self._tick(),
        }
        row.update(fields)
        self.activities[row["id"]] = row
        return row

    def add_category(self, name: str, user_id: str = USER_ID) -> dict[str, Any]:
        row = {"id": str(uuid.uuid4()), "user_id": user_id, "name": name, "color": "#10b981", "is_default": False}
        self.categories[row["id"]] = row
        return row

    # -- repository surface -------------------------------------------------

    async def commit(self, session):
        self._check("commit")
        await session.commit()

    async def rollback(self, session):
        self.calls.append("rollback")
        await session.rollback()

    async def fetch_goals(self, session, user_id):
        self._check("fetch_goals")
        goals = sorted(
            (g for g in self.goals.values() if g["user_id"] == user_id),
            key=lambda g: g["created_at"],
            reverse=True,
        )
        return [{**g, "activities": self._activities_of(g["id"])} for g in goals]

    async def fetch_goal(self, session, user_id, goal_id):
        self._check("fetch_goal")
        goal = self.goals.get(goal_id)
        if goal is None or goal["user_id"] != user_id:
            return None
        return {**goal, "activities": self._activities_of(goal_id)}

    async def insert_goal(self, session, user_id, fields):
        self._check("insert_goal")
        row = self.add_goal(user_id=user_id, **{k: fields.get(k) for k in repository.GOAL_COLUMNS})
        return {**row, "activities": []}

    async def update_goal_fields(self, session, user_id, goal_id, fields):
        self._check("update_goal_fields")
        goal = self.goals.get(goal_id)
        if goal is None or goal["user_id"] != user_id:
            return None
        goal.update(fields)
        return dict(goal)

    async def update_goal_aggregate(self, session, goal_id, progress, status):
        self._check("update_goal_aggregate")
        self.goals[goal_id].update(progress=progress, status=status)

    async def delete_goal(self, session, user_id, goal_id):
        self._check("delete_goal")
        goal = self.goals.get(goal_id)
        if goal is None or goal["user_id"] != user_id:
            return False
        for aid in [a["id"] for a in self._activities_of(goal_id)]:
            del self.activities[aid]
        del self.goals[goal_id]
        return True

    def _activities_of(self, goal_id):
        rows = [dict(a) for a in self.activities.values() if a["goal_id"] == goal_id]
        return sorted(rows, key=lambda a: a["created_at"])

    async def fetch_activities(self, session, goal_ids):
        self._check("fetch_activities")
        return [a for gid in goal_ids for a in self._activities_of(gid)]

    async def insert_activity(self, session, goal_id, fields):
        self._check("insert_activity")
        return dict(self.add_activity(goal_id, **fields))

    async def update_activity(self, session, goal_id, activity_id, fields):
        self._check("update_activity")
        row = self.activities.get(activity_id)
        if row is None or row["goal_id"] != goal_id:
            return None
        row.update(fields)
        return dict(row)

    async def delete_activity(self, session, goal_id, activity_id):
        self._check("delete_activity")
        row = self.activities.get(activity_id)
        if row is None or row["goal_id"] != goal_id:
            return False
        del self.activities[activity_id]
        return True

    async def fetch_categories(self, session, user_id):
        self._check("fetch_categories")
        return [dict(c) for c in self.categories.values() if c["user_id"] == user_id]

    async def insert_category(self, session, user_id, name, color):
        self._check("insert_category")
        row = self.add_category(name, user_id=user_id)
        row["color"] = color
        return dict(row)

    async def rename_category(self, session, user_id, category_id, name):
        self._check("rename_category")
        row = self.categories.get(category_id)
        if row is None or row["user_id"] != user_id:
            return None
        old = row["name"]
        row["name"] = name
        for goal in self.goals.values():
            if goal["user_id"] == user_id and goal["category"] == old:
                goal["category"] = name
        return dict(row)

    async def delete_category(self, session, user_id, category_id):
        self._check("delete_category")
        row = self.categories.get(category_id)
        if row is None or row["user_id"] != user_id:
            return False
        del self.categories[category_id]
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def fake_session():
    return FakeSession()


@pytest.fixture()
def store(monkeypatch):
    """Swap the repository module's functions for a fresh FakeStore."""
    fake = FakeStore()
    for name in FakeStore.FUNCTIONS:
        monkeypatch.setattr(repository, name, getattr(fake, name))
    return fake


@pytest.fixture()
def override_session(fake_session):
    """Override the FastAPI dependency so no real DB is needed."""
    async def _override():
        yield fake_session

    app.dependency_overrides[get_session] = _override
    yield fake_session
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session, store):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_activity(
    frequency: Frequency | str = Frequency.once,
    is_completed: bool = False,
    last_completed_at: datetime | None = None,
    name: str = "Activity",
) -> Activity:
    """Helper to build an Activity without touching storage."""
    return Activity(
        id=str(uuid.uuid4()),
        name=name,
        frequency=frequency,
        is_completed=is_completed,
        last_completed_at=last_completed_at,
    )
