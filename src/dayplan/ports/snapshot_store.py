"""Snapshot storage interface."""

from datetime import date
from typing import Protocol


class SnapshotStore(Protocol):
    """Interface for persisting calendar fingerprints per requested range."""

    def latest(self, range_start: date, range_end: date) -> object | None:
        """Raw payload of the most recent fingerprint, or None."""
        ...

    def save(self, range_start: date, range_end: date, payload: list[dict]) -> None:
        """Store a new fingerprint for the range."""
        ...
