"""Goals HTTP router: goals, activities and categories."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import current_user_id
from app.db import get_session
from app.goals import service
from app.goals.models import (
    ActivityCreate,
    ActivityUpdate,
    CategoryCreate,
    CategoryRename,
    Goal,
    GoalCategory,
    GoalCreate,
    GoalUpdate,
)

router = APIRouter(prefix="/goals", tags=["goals"])
categories_router = APIRouter(prefix="/categories", tags=["categories"])


# ---------------------------------------------------------------------------
# /goals
# ---------------------------------------------------------------------------


@router.get("", response_model=list[Goal])
async def goals_list(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> list[Goal]:
    return await service.list_goals(session, user_id)


@router.post("", response_model=Goal, status_code=201)
async def goal_create(
    body: GoalCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Goal:
    return await service.create_goal(session, user_id, body)


@router.get("/{goal_id}", response_model=Goal)
async def goal_detail(
    goal_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Goal:
    return await service.get_goal(session, user_id, goal_id)


@router.patch("/{goal_id}", response_model=Goal)
async def goal_update(
    goal_id: str,
    body: GoalUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Goal:
    return await service.update_goal(session, user_id, goal_id, body)


@router.delete("/{goal_id}", status_code=204)
async def goal_delete(
    goal_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Response:
    await service.delete_goal(session, user_id, goal_id)
    return Response(status_code=204)


@router.post("/{goal_id}/recompute", response_model=Goal)
async def goal_recompute(
    goal_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Goal:
    return await service.recompute_goal(session, user_id, goal_id)


# ---------------------------------------------------------------------------
# /goals/{goal_id}/activities
# ---------------------------------------------------------------------------


@router.post("/{goal_id}/activities", response_model=Goal, status_code=201)
async def activity_add(
    goal_id: str,
    body: ActivityCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Goal:
    return await service.add_activity(session, user_id, goal_id, body)


@router.patch("/{goal_id}/activities/{activity_id}", response_model=Goal)
async def activity_edit(
    goal_id: str,
    activity_id: str,
    body: ActivityUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Goal:
    return await service.edit_activity(session, user_id, goal_id, activity_id, body)


@router.post("/{goal_id}/activities/{activity_id}/toggle", response_model=Goal)
async def activity_toggle(
    goal_id: str,
    activity_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Goal:
    return await service.toggle_activity(session, user_id, goal_id, activity_id)


@router.delete("/{goal_id}/activities/{activity_id}", response_model=Goal)
async def activity_remove(
    goal_id: str,
    activity_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Goal:
    return await service.remove_activity(session, user_id, goal_id, activity_id)


# ---------------------------------------------------------------------------
# /categories
# ---------------------------------------------------------------------------


@categories_router.get("", response_model=list[GoalCategory])
async def categories_list(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> list[GoalCategory]:
    return await service.list_categories(session, user_id)


@categories_router.post("", response_model=GoalCategory, status_code=201)
async def category_create(
    body: CategoryCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> GoalCategory:
    return await service.create_category(session, user_id, body)


@categories_router.put("/{category_id}", response_model=GoalCategory)
async def category_rename(
    category_id: str,
    body: CategoryRename,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> GoalCategory:
    return await service.rename_category(session, user_id, category_id, body)


@categories_router.delete("/{category_id}", status_code=204)
async def category_delete(
    category_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Response:
    await service.delete_category(session, user_id, category_id)
    return Response(status_code=204)
