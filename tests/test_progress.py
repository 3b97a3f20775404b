"""Tests for goal progress aggregation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.goals.models import Frequency, GoalStatus
from app.goals.progress import compute_progress, derive_status, round_half_up_pct
from tests.conftest import make_activity

NOW = datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)


def _done(frequency=Frequency.once):
    return make_activity(frequency, is_completed=True, last_completed_at=NOW)


def _pending(frequency=Frequency.once):
    return make_activity(frequency)


class TestRoundHalfUpPct:
    def test_one_of_three(self):
        assert round_half_up_pct(1, 3) == 33

    def test_two_of_three(self):
        assert round_half_up_pct(2, 3) == 67

    def test_half(self):
        assert round_half_up_pct(1, 2) == 50

    def test_exact_half_rounds_up(self):
        assert round_half_up_pct(1, 8) == 13  # 12.5
        assert round_half_up_pct(3, 8) == 38  # 37.5

    def test_zero_total(self):
        assert round_half_up_pct(0, 0) == 0

    def test_all(self):
        assert round_half_up_pct(7, 7) == 100


class TestDeriveStatus:
    @pytest.mark.parametrize(
        "progress, expected",
        [
            (0, GoalStatus.not_started),
            (1, GoalStatus.in_progress),
            (99, GoalStatus.in_progress),
            (100, GoalStatus.completed),
        ],
    )
    def test_mapping(self, progress, expected):
        assert derive_status(progress) == expected


class TestComputeProgress:
    def test_no_activities(self):
        assert compute_progress([], NOW, "UTC") == (0, GoalStatus.not_started)

    def test_one_of_three(self):
        activities = [_done(), _pending(), _pending()]
        assert compute_progress(activities, NOW, "UTC") == (33, GoalStatus.in_progress)

    def test_all_three(self):
        activities = [_done(), _done(Frequency.daily), _done(Frequency.weekly)]
        assert compute_progress(activities, NOW, "UTC") == (100, GoalStatus.completed)

    def test_none_done(self):
        assert compute_progress([_pending(), _pending()], NOW, "UTC") == (0, GoalStatus.not_started)

    def test_uses_evaluator_not_flag(self):
        stale = make_activity(Frequency.daily, is_completed=True, last_completed_at=datetime(2026, 3, 10, tzinfo=timezone.utc))
        assert compute_progress([stale, _done()], NOW, "UTC") == (50, GoalStatus.in_progress)

    def test_idempotent(self):
        activities = [_done(Frequency.monthly), _pending(Frequency.weekly), _done()]
        first = compute_progress(activities, NOW, "UTC")
        assert compute_progress(activities, NOW, "UTC") == first

    def test_adding_pending_to_complete_goal(self):
        activities = [_done(), _done(), _done()]
        assert compute_progress(activities + [_pending()], NOW, "UTC") == (75, GoalStatus.in_progress)
