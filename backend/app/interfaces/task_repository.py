"""
Task repository interface.

Defines the contract for task persistence operations.
Implementations: SQLite
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from app.models.task import Task, TaskCreate, TaskUpdate, TimeEntry, TimeEntryCreate


class ITaskRepository(ABC):
    """Abstract interface for task persistence."""

    @abstractmethod
    async def create(self, task: TaskCreate) -> Task:
        """
        Create a new task.

        Args:
            task: Task creation data

        Returns:
            Created task with generated ID, timestamps and version 1
        """
        pass

    @abstractmethod
    async def get(self, task_id: UUID) -> Optional[Task]:
        """
        Get a task by ID.

        Args:
            task_id: Task ID

        Returns:
            Task (with its claimed segments) if found, None otherwise
        """
        pass

    @abstractmethod
    async def list(
        self,
        assignee_id: Optional[str] = None,
        include_done: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        """
        List tasks with optional filters.

        Args:
            assignee_id: Filter by assignee
            include_done: Include completed tasks
            limit: Maximum number of results
            offset: Pagination offset

        Returns:
            List of tasks matching filters
        """
        pass

    @abstractmethod
    async def update(self, task_id: UUID, update: TaskUpdate) -> Task:
        """
        Update an existing task. Bumps the version.

        Args:
            task_id: Task ID to update
            update: Fields to update

        Returns:
            Updated task

        Raises:
            NotFoundError: If task not found
        """
        pass

    @abstractmethod
    async def delete(self, task_id: UUID) -> bool:
        """
        Delete a task together with its segments and time entries.

        Args:
            task_id: Task ID to delete

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def add_time_entry(self, task_id: UUID, entry: TimeEntryCreate) -> TimeEntry:
        """
        Log time against a task.

        Increments the task's logged minutes and version in the same transaction.

        Raises:
            NotFoundError: If task not found
        """
        pass

    @abstractmethod
    async def list_time_entries(self, task_id: UUID) -> list[TimeEntry]:
        """List time entries of a task, oldest first."""
        pass
