"""File-based calendar snapshot storage adapter."""

import json
import logging
from datetime import date
from pathlib import Path

logger = logging.getLogger(__name__)


class FileSnapshotStore:
    """
    File-based fingerprint storage.

    Implements SnapshotStore protocol. Each requested range gets one JSON
    file holding its most recent fingerprint.
    """

    def __init__(self, snapshot_dir: Path | str):
        self.snapshot_dir = Path(snapshot_dir).expanduser()
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)

    def _path_for_range(self, range_start: date, range_end: date) -> Path:
        return self.snapshot_dir / f"{range_start.isoformat()}_{range_end.isoformat()}.json"

    def latest(self, range_start: date, range_end: date) -> bytes | None:
        """Raw stored bytes; decoding and parsing are left to the differ."""
        path = self._path_for_range(range_start, range_end)
        if not path.exists():
            return None
        return path.read_bytes()

    def save(self, range_start: date, range_end: date, payload: list[dict]) -> None:
        path = self._path_for_range(range_start, range_end)
        path.write_text(json.dumps(payload, indent=2))
        logger.debug(f"Saved {len(payload)} snapshot entries to {path}")
