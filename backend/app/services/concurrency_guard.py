"""
Serialization and retry policy for scheduling writes.

Two layers: a per-(assignee, date) lock around "read occupancy -> choose
slot -> write", and a bounded retry of the whole operation when the
version check on the task row fails.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Awaitable, Callable, Iterable, TypeVar
from uuid import UUID

from app.core.exceptions import ConcurrencyConflictError, RetryExhaustedError
from app.core.logger import setup_logger

logger = setup_logger(__name__)

T = TypeVar("T")

LockKey = tuple[str, date]


class ConcurrencyGuard:
    """Process-wide lock registry keyed by (assignee_id, date)."""

    def __init__(self, max_retries: int = 3):
        self.max_retries = max_retries
        self._locks: dict[LockKey, asyncio.Lock] = {}
        self._holders: dict[LockKey, int] = {}

    def _checkout(self, key: LockKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._holders[key] = self._holders.get(key, 0) + 1
        return lock

    def _checkin(self, key: LockKey) -> None:
        remaining = self._holders.get(key, 0) - 1
        if remaining <= 0:
            self._holders.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._holders[key] = remaining

    @asynccontextmanager
    async def hold(self, assignee_id: str, dates: Iterable[date]) -> AsyncIterator[None]:
        """
        Hold every (assignee_id, date) lock for the duration of the block.

        Keys are acquired in sorted order so overlapping ranges cannot deadlock.
        """
        keys = sorted({(assignee_id, day) for day in dates})
        locks = [self._checkout(key) for key in keys]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in keys:
                self._checkin(key)

    def active_keys(self) -> list[LockKey]:
        return sorted(self._locks)

    async def run(self, operation: Callable[[], Awaitable[T]], task_id: UUID) -> T:
        """
        Run ``operation``, re-running it from scratch on a version conflict.

        Raises:
            RetryExhaustedError: If every attempt hit a conflict
        """
        last_conflict: ConcurrencyConflictError | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return await operation()
            except RetryExhaustedError:
                raise
            except ConcurrencyConflictError as e:
                last_conflict = e
                logger.warning(
                    f"Concurrent update on task {task_id} "
                    f"(attempt {attempt}/{self.max_retries}), re-reading"
                )
        raise RetryExhaustedError(
            task_id,
            last_conflict.expected_version if last_conflict else 0,
            self.max_retries,
        )
