"""Per-operation failures raised by the goals service and repository.

None of these are fatal to the process. The HTTP layer turns them into
`{"error": {...}}` bodies; `stale` tells a caller whether an activity
change committed while the goal aggregate did not.
"""

from __future__ import annotations


class GoalsError(Exception):
    code = "goals_error"
    http_status = 500
    stale = False

    def __init__(self, message: str, stale: bool | None = None):
        super().__init__(message)
        self.message = message
        if stale is not None:
            self.stale = stale

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "stale": self.stale}


class InvalidInputError(GoalsError):
    code = "invalid_input"
    http_status = 422


class NotFoundError(GoalsError):
    code = "not_found"
    http_status = 404


class PersistenceError(GoalsError):
    """The data store rejected a read or write (transport, constraint, driver)."""

    code = "persistence_error"
    http_status = 503


class ActivityWriteError(PersistenceError):
    """The activity write failed and was rolled back; nothing changed."""

    code = "activity_write_failed"


class GoalAggregateWriteError(PersistenceError):
    """The activity change committed but the goal's progress/status did not."""

    code = "goal_aggregate_stale"
    http_status = 500
    stale = True


class InconsistentStateError(GoalsError):
    """A goal's activity list could not be fully loaded for recomputation."""

    code = "inconsistent_state"
    stale = True
