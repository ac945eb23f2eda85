"""Abstract interfaces for infrastructure abstraction."""

from app.interfaces.event_repository import IEventRepository
from app.interfaces.schedule_gateway import IScheduleGateway
from app.interfaces.task_repository import ITaskRepository

__all__ = [
    "ITaskRepository",
    "IEventRepository",
    "IScheduleGateway",
]
