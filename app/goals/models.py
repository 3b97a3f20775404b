"""Goal and activity contracts: Pydantic v2 models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, field_validator


class Frequency(str, Enum):
    daily = "Daily"
    weekly = "Weekly"
    monthly = "Monthly"
    once = "Once"


class Priority(str, Enum):
    high = "High"
    medium = "Medium"
    low = "Low"


class GoalStatus(str, Enum):
    not_started = "Not Started"
    in_progress = "In Progress"
    completed = "Completed"


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class Activity(BaseModel):
    id: str
    goal_id: str | None = None
    name: str
    # Rows written by older clients may carry values outside Frequency; they
    # are kept verbatim and evaluated like "Once".
    frequency: Frequency | str | None = Field(default=Frequency.once, union_mode="left_to_right")
    is_completed: bool = False
    last_completed_at: datetime | None = None
    deadline: date | None = None
    created_at: datetime | None = None

    completed_now: bool | None = None  # Filled in by the service on read

    @field_validator("is_completed", mode="before")
    @classmethod
    def null_flag_is_false(cls, v):
        return False if v is None else v


class Goal(BaseModel):
    id: str
    user_id: str | None = None
    title: str
    category: str
    priority: Priority = Priority.medium
    description: str | None = None
    progress: int = Field(default=0, ge=0, le=100)
    status: GoalStatus = GoalStatus.not_started
    deadline: date | None = None
    created_at: datetime | None = None
    activities: list[Activity] = Field(default_factory=list)


class GoalCategory(BaseModel):
    id: str | None = None  # None for built-in defaults
    name: str
    color: str
    is_default: bool = False


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


def _strip_non_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


NonBlank = Annotated[str, AfterValidator(_strip_non_blank)]


class ActivityCreate(BaseModel):
    name: NonBlank
    frequency: Frequency = Frequency.weekly
    deadline: date | None = None


class ActivityUpdate(BaseModel):
    name: NonBlank | None = None
    frequency: Frequency | None = None
    deadline: date | None = None


class GoalCreate(BaseModel):
    title: NonBlank
    category: NonBlank
    priority: Priority = Priority.medium
    description: str | None = None
    deadline: date | None = None


class GoalUpdate(BaseModel):
    title: NonBlank | None = None
    category: NonBlank | None = None
    priority: Priority | None = None
    description: str | None = None
    deadline: date | None = None


class CategoryCreate(BaseModel):
    name: NonBlank
    color: str | None = None


class CategoryRename(BaseModel):
    name: NonBlank
