"""Adapters - I/O implementations of ports."""

from .json_rows import JsonCalendarRepository, JsonTaskRepository
from .file_snapshot import FileSnapshotStore

__all__ = [
    "JsonCalendarRepository",
    "JsonTaskRepository",
    "FileSnapshotStore",
]
