"""Domain errors raised by the services and mapped to JSON responses by the error handler."""

from __future__ import annotations


class SimplySecureError(Exception):
    """Base class for every error the service reports to callers."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# --- Lookups ---


class NotFoundError(SimplySecureError, LookupError):
    status_code = 404
    code = "not_found"


class UnknownTaskError(NotFoundError):
    code = "unknown_task"

    def __init__(self, ref: str) -> None:
        super().__init__(f"Unknown task: {ref!r}")
        self.ref = ref


class UnknownDayError(NotFoundError):
    code = "unknown_day"

    def __init__(self, day: int) -> None:
        super().__init__(f"No challenge set for day {day}")
        self.day = day


class UnknownUserError(NotFoundError):
    code = "unknown_user"

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class UnknownMissionError(NotFoundError):
    code = "unknown_mission"

    def __init__(self, mission_id: str) -> None:
        super().__init__(f"Mission {mission_id!r} not found")
        self.mission_id = mission_id


# --- Task state machine ---


class TransitionError(SimplySecureError):
    """A task was asked to move between states out of order."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, message: str, task_id: str, status: str) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.status = status


class NotStartedError(TransitionError):
    code = "not_started"

    def __init__(self, task_id: str, status: str) -> None:
        super().__init__(f"Task {task_id!r} must be in progress first (status: {status})", task_id, status)


class NotCompletedError(TransitionError):
    code = "not_completed"

    def __init__(self, task_id: str, status: str) -> None:
        super().__init__(f"Task {task_id!r} must be completed before verification (status: {status})", task_id, status)


class InvalidTransitionError(TransitionError):
    pass


class PrerequisitesNotMetError(SimplySecureError):
    status_code = 409
    code = "prerequisites_not_met"

    def __init__(self, task_id: str, missing: list[str]) -> None:
        super().__init__(f"Task {task_id!r} has unmet prerequisites: {', '.join(missing)}")
        self.task_id = task_id
        self.missing = missing


# --- XP ---


class InvalidXPAmountError(SimplySecureError, ValueError):
    status_code = 422
    code = "invalid_xp_amount"

    def __init__(self, amount: object) -> None:
        super().__init__(f"XP amount must be a positive integer, got {amount!r}")
        self.amount = amount


# --- Storage ---


class PersistenceError(SimplySecureError):
    """The store rejected a write; nothing from the operation was kept."""

    status_code = 503
    code = "persistence_failure"
