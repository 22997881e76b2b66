"""Tests for the JSON row and snapshot file adapters."""

import json
import logging
from datetime import date

import pytest

from dayplan.adapters.file_snapshot import FileSnapshotStore
from dayplan.adapters.json_rows import JsonCalendarRepository, JsonTaskRepository
from dayplan.core.windows import build_day_windows


@pytest.fixture
def events_file(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(
        json.dumps(
            {
                "events": [
                    {
                        "source_id": "outlook",
                        "external_event_id": "standup",
                        "start_at": "2026-02-17T14:00:00Z",
                        "end_at": "2026-02-17T14:30:00Z",
                        "title": "Standup",
                        "content_hash": "h1",
                    },
                    {
                        "source_id": "outlook",
                        "external_event_id": "next-week",
                        "start_at": "2026-02-24T14:00:00Z",
                        "end_at": "2026-02-24T15:00:00Z",
                        "title": "Later",
                        "content_hash": "h2",
                    },
                    {"external_event_id": "broken", "start_at": "whenever"},
                ]
            }
        )
    )
    return path


@pytest.fixture
def tasks_file(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(
        json.dumps(
            {
                "tasks": [
                    {"id": "t1", "title": "Write report", "priority_score": 80},
                    {"id": "t2", "title": "Design", "status": "Done"},
                    {"title": "No id"},
                ],
                "dependencies": [
                    {"id": "d1", "task_id": "t1", "depends_on_task_id": "t2"},
                    {"id": "d2", "task_id": "t1", "depends_on_commitment_id": "c1"},
                    {"id": "d3", "task_id": "other", "depends_on_task_id": "t2"},
                ],
                "commitments": [{"id": "c1", "title": "Budget approval", "status": "Open"}],
            }
        )
    )
    return path


class TestJsonCalendarRepository:
    def test_load_all_skips_broken_rows(self, events_file, caplog):
        with caplog.at_level(logging.WARNING):
            events = JsonCalendarRepository(events_file).load_all()
        assert [e.external_event_id for e in events] == ["standup", "next-week"]
        assert "broken" in caplog.text

    def test_fetch_events_filters_range(self, events_file):
        range_windows = build_day_windows("2026-02-17", "2026-02-17")
        events = JsonCalendarRepository(events_file).fetch_events(range_windows)
        assert [e.external_event_id for e in events] == ["standup"]

    def test_bare_list(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text(
            json.dumps([{"external_event_id": "a", "start_at": "2026-02-17T14:00:00Z", "end_at": "2026-02-17T15:00:00Z"}])
        )
        assert len(JsonCalendarRepository(path).load_all()) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text("{oops")
        with pytest.raises(ValueError, match="not valid JSON"):
            JsonCalendarRepository(path).load_all()


class TestJsonTaskRepository:
    def test_fetch_all(self, tasks_file):
        tasks = JsonTaskRepository(tasks_file).fetch_all()
        assert [t.id for t in tasks] == ["t1", "t2"]
        assert tasks[0].priority_score == 80

    def test_dependency_rows_for_requested_tasks(self, tasks_file):
        rows = JsonTaskRepository(tasks_file).fetch_dependency_rows(["t1"])
        assert [r.id for r in rows] == ["d1", "d2"]
        assert rows[1].depends_on_commitment_id == "c1"

    def test_fetch_targets(self, tasks_file):
        task_targets, commitment_targets = JsonTaskRepository(tasks_file).fetch_targets(["t2", "missing"], ["c1"])
        assert task_targets["t2"].status == "Done"
        assert "missing" not in task_targets
        assert commitment_targets["c1"].title == "Budget approval"

    def test_bare_task_list_has_no_dependencies(self, tmp_path):
        path = tmp_path / "tasks.json"
        path.write_text(json.dumps([{"id": "t1", "title": "Only task"}]))
        repo = JsonTaskRepository(path)
        assert len(repo.fetch_all()) == 1
        assert repo.fetch_dependency_rows(["t1"]) == []


class TestFileSnapshotStore:
    def test_creates_directory(self, tmp_path):
        store = FileSnapshotStore(tmp_path / "snapshots")
        assert store.snapshot_dir.is_dir()

    def test_latest_missing(self, tmp_path):
        store = FileSnapshotStore(tmp_path)
        assert store.latest(date(2026, 2, 17), date(2026, 2, 24)) is None

    def test_save_and_latest(self, tmp_path):
        store = FileSnapshotStore(tmp_path)
        payload = [{"external_event_id": "a", "start_at": "x", "end_at": "y", "hash": "h"}]
        store.save(date(2026, 2, 17), date(2026, 2, 24), payload)

        assert (tmp_path / "2026-02-17_2026-02-24.json").exists()
        assert json.loads(store.latest(date(2026, 2, 17), date(2026, 2, 24))) == payload

    def test_latest_returns_raw_bytes(self, tmp_path):
        store = FileSnapshotStore(tmp_path)
        (tmp_path / "2026-02-17_2026-02-24.json").write_bytes(b"\xff\xfe\x00garbage")
        assert store.latest(date(2026, 2, 17), date(2026, 2, 24)) == b"\xff\xfe\x00garbage"

    def test_ranges_are_separate(self, tmp_path):
        store = FileSnapshotStore(tmp_path)
        store.save(date(2026, 2, 17), date(2026, 2, 24), [])
        assert store.latest(date(2026, 2, 17), date(2026, 2, 18)) is None
