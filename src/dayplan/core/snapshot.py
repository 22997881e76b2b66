"""Calendar snapshot fingerprints and change detection - no I/O dependencies."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime

from .timestamps import parse_timestamp, to_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotEntry:
    """Identity and content hash of one event in a fingerprint."""

    external_event_id: str
    start_at: datetime
    end_at: datetime
    content_hash: str

    def to_payload(self) -> dict:
        return {
            "external_event_id": self.external_event_id,
            "start_at": to_iso(self.start_at),
            "end_at": to_iso(self.end_at),
            "hash": self.content_hash,
        }


@dataclass
class Delta:
    """Event ids added, removed or changed between two fingerprints."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def to_dict(self) -> dict:
        return {"added": list(self.added), "removed": list(self.removed), "changed": list(self.changed)}


@dataclass(frozen=True)
class ChangedEntry:
    """Before/after view of an event present in both fingerprints."""

    external_event_id: str
    previous_start_at: datetime
    previous_end_at: datetime
    start_at: datetime
    end_at: datetime
    time_changed: bool
    content_changed: bool

    def to_dict(self) -> dict:
        return {
            "external_event_id": self.external_event_id,
            "previous_start_at": to_iso(self.previous_start_at),
            "previous_end_at": to_iso(self.previous_end_at),
            "start_at": to_iso(self.start_at),
            "end_at": to_iso(self.end_at),
            "timeChanged": self.time_changed,
            "contentChanged": self.content_changed,
        }


def build_snapshot(entries) -> list[SnapshotEntry]:
    """
    Fingerprint a calendar range.

    Accepts SnapshotEntry objects or anything exposing external_event_id,
    start_at, end_at and content_hash (such as CalendarEvent). Duplicate ids
    keep the last occurrence. Sorted by external_event_id.
    """
    by_id: dict[str, SnapshotEntry] = {}
    for entry in entries:
        by_id[entry.external_event_id] = SnapshotEntry(
            external_event_id=entry.external_event_id,
            start_at=entry.start_at,
            end_at=entry.end_at,
            content_hash=entry.content_hash,
        )
    return [by_id[key] for key in sorted(by_id)]


def snapshot_payload(snapshot: list[SnapshotEntry]) -> list[dict]:
    """Serializable form of a fingerprint for the collaborator to store."""
    return [entry.to_payload() for entry in snapshot]


def _parse_entry(item) -> SnapshotEntry | None:
    if not isinstance(item, dict):
        return None

    external_event_id = item.get("external_event_id")
    content_hash = item.get("hash")
    start_raw = item.get("start_at")
    end_raw = item.get("end_at")
    if not all(isinstance(v, str) for v in (external_event_id, content_hash, start_raw, end_raw)):
        return None

    start = parse_timestamp(start_raw)
    end = parse_timestamp(end_raw)
    if start is None or end is None:
        return None

    return SnapshotEntry(external_event_id, start, end, content_hash)


def parse_snapshot_payload(payload) -> list[SnapshotEntry]:
    """
    Read a previously stored fingerprint.

    Never raises: a missing or malformed payload means there is no prior
    state, so it reads as an empty fingerprint. Malformed items are dropped.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Snapshot payload is not UTF-8, treating as empty")
            return []

    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except (ValueError, RecursionError):
            logger.debug("Snapshot payload is not valid JSON, treating as empty")
            return []

    if not isinstance(payload, list):
        return []

    entries = [e for e in (_parse_entry(item) for item in payload) if e is not None]
    dropped = len(payload) - len(entries)
    if dropped:
        logger.debug(f"Dropped {dropped} malformed snapshot entries")
    return build_snapshot(entries)


def _time_changed(previous: SnapshotEntry, current: SnapshotEntry) -> bool:
    return previous.start_at != current.start_at or previous.end_at != current.end_at


def compute_delta(previous: list[SnapshotEntry], current: list[SnapshotEntry]) -> Delta:
    """
    Compare two fingerprints keyed by external_event_id.

    Pure function - no I/O. Each list in the result is sorted by id.
    """
    previous_by_id = {e.external_event_id: e for e in previous}
    current_by_id = {e.external_event_id: e for e in current}

    delta = Delta()
    for event_id, entry in current_by_id.items():
        before = previous_by_id.get(event_id)
        if before is None:
            delta.added.append(event_id)
        elif _time_changed(before, entry) or before.content_hash != entry.content_hash:
            delta.changed.append(event_id)

    delta.removed = [event_id for event_id in previous_by_id if event_id not in current_by_id]

    delta.added.sort()
    delta.removed.sort()
    delta.changed.sort()
    return delta


def describe_changes(previous: list[SnapshotEntry], current: list[SnapshotEntry]) -> list[ChangedEntry]:
    """Detailed view of the changed entries, sorted by id."""
    previous_by_id = {e.external_event_id: e for e in previous}
    current_by_id = {e.external_event_id: e for e in current}

    details = []
    for event_id in compute_delta(previous, current).changed:
        before = previous_by_id[event_id]
        after = current_by_id[event_id]
        details.append(
            ChangedEntry(
                external_event_id=event_id,
                previous_start_at=before.start_at,
                previous_end_at=before.end_at,
                start_at=after.start_at,
                end_at=after.end_at,
                time_changed=_time_changed(before, after),
                content_changed=before.content_hash != after.content_hash,
            )
        )
    return details
