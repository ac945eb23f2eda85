"""
Calendar event repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from app.models.event import Event, EventCreate, EventUpdate


class IEventRepository(ABC):
    """Abstract interface for event persistence."""

    @abstractmethod
    async def create(self, event: EventCreate) -> Event:
        """Create a new event."""
        pass

    @abstractmethod
    async def get(self, event_id: UUID) -> Optional[Event]:
        """Get an event by ID."""
        pass

    @abstractmethod
    async def list(
        self,
        assignee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Event]:
        """List events, optionally restricted to an assignee and an inclusive date range."""
        pass

    @abstractmethod
    async def update(self, event_id: UUID, update: EventUpdate) -> Event:
        """
        Update an event.

        Raises:
            NotFoundError: If event not found
            ValidationError: If the merged time range is invalid
        """
        pass

    @abstractmethod
    async def delete(self, event_id: UUID) -> bool:
        """Delete an event. Returns False if not found."""
        pass
