"""Ports - interfaces/protocols for external dependencies."""

from .task_repo import TaskRepository
from .calendar_repo import CalendarRepository
from .snapshot_store import SnapshotStore

__all__ = [
    "TaskRepository",
    "CalendarRepository",
    "SnapshotStore",
]
