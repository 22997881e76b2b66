"""JSON file adapters for event and task rows."""

import json
import logging
from pathlib import Path

from dayplan.core.calendar import CalendarEvent, events_in_range
from dayplan.core.dependencies import DependencyRow, DependencyTarget
from dayplan.core.tasks import Task
from dayplan.core.timestamps import parse_timestamp
from dayplan.core.windows import RangeWindows

logger = logging.getLogger(__name__)


def _read_json(path: Path):
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e


def _rows(data, key: str) -> list[dict]:
    """Accept either a bare list or an object holding the list under key."""
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


class JsonCalendarRepository:
    """
    Reads event rows exported by the ingestion side.

    Implements CalendarRepository protocol. The file holds a list of rows,
    or an object with an "events" list.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load_all(self) -> list[CalendarEvent]:
        events = []
        for row in _rows(_read_json(self.path), "events"):
            event = CalendarEvent.from_row(row)
            if event is None:
                logger.warning(f"Skipping event row without valid start/end: {row.get('external_event_id')!r}")
                continue
            events.append(event)
        return events

    def fetch_events(self, range_windows: RangeWindows) -> list[CalendarEvent]:
        return events_in_range(self.load_all(), range_windows)


class JsonTaskRepository:
    """
    Reads task, dependency and commitment rows from one JSON document.

    Implements TaskRepository protocol. The file holds a list of task rows,
    or an object with "tasks", "dependencies" and "commitments" lists.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._data = None

    def _load(self):
        if self._data is None:
            self._data = _read_json(self.path)
        return self._data

    def fetch_all(self) -> list[Task]:
        tasks = []
        for row in _rows(self._load(), "tasks"):
            if not row.get("id"):
                logger.warning(f"Skipping task row without id: {row.get('title')!r}")
                continue
            tasks.append(Task.from_row(row))
        return tasks

    def fetch_dependency_rows(self, task_ids: list[str]) -> list[DependencyRow]:
        wanted = set(task_ids)
        rows = []
        for row in _rows(self._load(), "dependencies"):
            if not row.get("id") or row.get("task_id") not in wanted:
                continue
            rows.append(
                DependencyRow(
                    id=str(row["id"]),
                    task_id=str(row["task_id"]),
                    depends_on_task_id=row.get("depends_on_task_id") or None,
                    depends_on_commitment_id=row.get("depends_on_commitment_id") or None,
                    created_at=parse_timestamp(row.get("created_at")),
                )
            )
        return rows

    def fetch_targets(
        self, task_ids: list[str], commitment_ids: list[str]
    ) -> tuple[dict[str, DependencyTarget], dict[str, DependencyTarget]]:
        def index(rows: list[dict], ids: list[str]) -> dict[str, DependencyTarget]:
            wanted = set(ids)
            return {
                str(row["id"]): DependencyTarget(str(row["id"]), row.get("title") or "", row.get("status") or "")
                for row in rows
                if row.get("id") in wanted
            }

        data = self._load()
        return index(_rows(data, "tasks"), task_ids), index(_rows(data, "commitments"), commitment_ids)
