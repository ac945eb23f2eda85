"""API routers."""

from app.api import events, schedule, tasks

__all__ = [
    "tasks",
    "events",
    "schedule",
]
