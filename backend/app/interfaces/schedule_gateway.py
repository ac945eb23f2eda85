"""
Schedule persistence gateway interface.

The read/write contract the scheduling engine needs: occupancy reads for a
date range and a version-checked write of the placement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from app.models.schedule import OccupiedInterval, ScheduleWrite
from app.models.task import Task


class IScheduleGateway(ABC):
    """Abstract interface for scheduling reads and compare-and-swap writes."""

    @abstractmethod
    async def get_task(self, task_id: UUID) -> Optional[Task]:
        """
        Get a task with its current version and claimed segments.

        Args:
            task_id: Task ID

        Returns:
            Task if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_events_and_pinned_tasks(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        exclude_task_id: Optional[UUID] = None,
    ) -> list[OccupiedInterval]:
        """
        Get the fixed occupancy of an assignee.

        Args:
            assignee_id: Assignee ID
            start_date: First day (inclusive)
            end_date: Last day (inclusive)
            exclude_task_id: Pinned task to leave out (the one being dragged)

        Returns:
            Events and pinned task blocks, sorted by date and start time
        """
        pass

    @abstractmethod
    async def get_claimed_segments(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        exclude_task_id: Optional[UUID] = None,
    ) -> list[OccupiedInterval]:
        """
        Get blocks held by auto-scheduled (non-pinned) tasks.

        Args:
            assignee_id: Assignee ID
            start_date: First day (inclusive)
            end_date: Last day (inclusive)
            exclude_task_id: Task whose own blocks are ignored (the one being re-planned)

        Returns:
            Claimed blocks, sorted by date and start time
        """
        pass

    @abstractmethod
    async def write_schedule(
        self,
        task_id: UUID,
        expected_version: int,
        update: ScheduleWrite,
    ) -> int:
        """
        Write the placement if the task is still at ``expected_version``.

        Segments are replaced in the same transaction.

        Returns:
            The new version (expected_version + 1)

        Raises:
            ConcurrencyConflictError: If the stored version differs
            NotFoundError: If the task no longer exists
        """
        pass

    @abstractmethod
    async def list_tasks_with_segments_on(self, assignee_id: str, day: date) -> list[Task]:
        """List non-pinned tasks of an assignee holding a block on ``day``."""
        pass
