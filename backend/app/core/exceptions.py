"""
Custom exceptions for the application.
"""

from datetime import date
from typing import Any, Optional
from uuid import UUID


class SchedulerAppError(Exception):
    """Base exception for the scheduling backend."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(SchedulerAppError):
    """Resource not found."""

    pass


class ValidationError(SchedulerAppError):
    """Validation error."""

    pass


class InfrastructureError(SchedulerAppError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class BusinessLogicError(SchedulerAppError):
    """Business logic constraint violation."""

    pass


class SchedulingFailureError(BusinessLogicError):
    """Backward cascade ran out of days before the remaining work was placed."""

    def __init__(self, task_id: UUID, unplaced_minutes: int, days_tried: int, earliest_date: date):
        super().__init__(
            f"Task {task_id} could not be placed: {unplaced_minutes} min left "
            f"after {days_tried} day(s) back to {earliest_date.isoformat()}",
            details={
                "task_id": str(task_id),
                "unplaced_minutes": unplaced_minutes,
                "days_tried": days_tried,
                "earliest_date": earliest_date.isoformat(),
            },
        )
        self.task_id = task_id
        self.unplaced_minutes = unplaced_minutes
        self.days_tried = days_tried


class ConcurrencyConflictError(SchedulerAppError):
    """Version check failed on write; the row changed since it was read."""

    def __init__(self, task_id: UUID, expected_version: int):
        super().__init__(
            f"Task {task_id} was modified concurrently (expected version {expected_version})",
            details={"task_id": str(task_id), "expected_version": expected_version},
        )
        self.task_id = task_id
        self.expected_version = expected_version


class RetryExhaustedError(ConcurrencyConflictError):
    """Concurrency conflicts persisted through every retry. Safe to retry later."""

    def __init__(self, task_id: UUID, expected_version: int, attempts: int):
        super().__init__(task_id, expected_version)
        self.message = f"Task {task_id} kept conflicting after {attempts} attempt(s)"
        self.args = (self.message,)
        self.details = {**self.details, "attempts": attempts, "retryable": True}
        self.attempts = attempts


class InvalidPlacementError(BusinessLogicError):
    """Manual placement rejected; nothing was persisted."""

    def __init__(self, message: str, reason: str, conflicts: Optional[list] = None):
        self.reason = reason
        self.conflicts = conflicts or []
        super().__init__(
            message,
            details={
                "reason": reason,
                "conflicts": [c.model_dump(mode="json", by_alias=True) for c in self.conflicts],
            },
        )
