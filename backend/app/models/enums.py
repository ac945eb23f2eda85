"""
Enum definitions for the application.

These enums are used across models and provide type-safe status values.
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Task status."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class IntervalKind(str, Enum):
    """
    Origin of an occupied interval on an assignee's day.

    EVENT = Fixed calendar event (never moved)
    PINNED_TASK = Task placed by a user drag
    TASK = Time claimed by an auto-scheduled task
    """

    EVENT = "EVENT"
    PINNED_TASK = "PINNED_TASK"
    TASK = "TASK"


class UnscheduledReason(str, Enum):
    """Why a task holds no automatic position."""

    MISSING_DUE_DATE = "missing_due_date"
    MISSING_ESTIMATE = "missing_estimate"
    COMPLETED = "completed"
    NO_CAPACITY = "no_capacity"
