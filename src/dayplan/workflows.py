"""Shared workflow layer between the CLI and the core.

Each function loads rows through the ports, captures one `now` for the whole
computation, calls the pure core and returns its result.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from .adapters.file_snapshot import FileSnapshotStore
from .config import Config
from .core.briefing import DayPlan, assemble_day_plan
from .core.calendar import BusyBlock, BusyStats, CalendarEvent, calculate_busy_stats, merge_busy_blocks
from .core.capacity import CapacityResult, calculate_capacity
from .core.dependencies import dependency_blocked_task_ids, summarize_dependencies
from .core.planner import FocusDirective, Plan, RankedTask, build_plan, rank_tasks
from .core.snapshot import (
    ChangedEntry,
    Delta,
    build_snapshot,
    compute_delta,
    describe_changes,
    parse_snapshot_payload,
    snapshot_payload,
)
from .core.tasks import Task, filter_open, top_priority_tasks
from .core.windows import RangeWindows, build_day_windows, local_date, normalize_requested_range
from .ports import CalendarRepository, SnapshotStore, TaskRepository

logger = logging.getLogger(__name__)


@dataclass
class CalendarReport:
    range_start: date
    range_end: date
    range_windows: RangeWindows
    events: list[CalendarEvent]
    busy_blocks: list[BusyBlock]
    stats: BusyStats


@dataclass
class ChangesReport:
    range_start: date
    range_end: date
    delta: Delta
    details: list[ChangedEntry]
    had_previous: bool


def get_snapshot_store(config: Config) -> FileSnapshotStore:
    """Resolve snapshot directory from config."""
    return FileSnapshotStore(config.snapshot_path())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_calendar_report(
    repo: CalendarRepository,
    config: Config,
    range_start: str | None = None,
    range_end: str | None = None,
    now: datetime | None = None,
) -> CalendarReport:
    """Busy blocks and stats for a requested range (default: the coming week)."""
    workday = config.workday()
    now = now or _utcnow()
    start, end = normalize_requested_range(range_start, range_end, local_date(now, workday.timezone))
    range_windows = build_day_windows(start, end, workday)
    events = repo.fetch_events(range_windows)

    return CalendarReport(
        range_start=start,
        range_end=end,
        range_windows=range_windows,
        events=events,
        busy_blocks=merge_busy_blocks(events, range_windows.windows),
        stats=calculate_busy_stats(events, range_windows.windows),
    )


def detect_calendar_changes(
    repo: CalendarRepository,
    store: SnapshotStore,
    config: Config,
    range_start: str | None = None,
    range_end: str | None = None,
    now: datetime | None = None,
) -> ChangesReport:
    """Diff the range against its stored fingerprint, then store the new one."""
    report = build_calendar_report(repo, config, range_start, range_end, now)
    current = build_snapshot(report.events)

    raw_previous = store.latest(report.range_start, report.range_end)
    previous = parse_snapshot_payload(raw_previous)
    delta = compute_delta(previous, current)

    store.save(report.range_start, report.range_end, snapshot_payload(current))
    logger.info(
        f"Calendar {report.range_start}..{report.range_end}: "
        f"{len(delta.added)} added, {len(delta.removed)} removed, {len(delta.changed)} changed"
    )

    return ChangesReport(
        range_start=report.range_start,
        range_end=report.range_end,
        delta=delta,
        details=describe_changes(previous, current),
        had_previous=raw_previous is not None,
    )


def load_open_tasks(repo: TaskRepository) -> tuple[list[Task], set[str]]:
    """Open tasks plus the ids blocked by an unresolved dependency."""
    tasks = filter_open(repo.fetch_all())
    task_ids = [t.id for t in tasks]

    rows = repo.fetch_dependency_rows(task_ids)
    target_task_ids = sorted({r.depends_on_task_id for r in rows if r.depends_on_task_id})
    target_commitment_ids = sorted({r.depends_on_commitment_id for r in rows if r.depends_on_commitment_id})
    task_targets, commitment_targets = repo.fetch_targets(target_task_ids, target_commitment_ids)

    summaries = summarize_dependencies(rows, task_targets, commitment_targets)
    return tasks, dependency_blocked_task_ids(task_ids, summaries)


def rank_open_tasks(
    repo: TaskRepository,
    config: Config,
    now: datetime | None = None,
    directive: FocusDirective | None = None,
) -> list[RankedTask]:
    """Rank every open task against one shared now."""
    tasks, blocked_ids = load_open_tasks(repo)
    return rank_tasks(
        tasks,
        now=now or _utcnow(),
        directive=directive,
        config=config.planner(),
        dependency_blocked_ids=blocked_ids,
        high_priority_stakeholders=config.high_priority_stakeholders,
    )


def plan_tasks(
    repo: TaskRepository,
    config: Config,
    mode: str = "today",
    now: datetime | None = None,
    directive: FocusDirective | None = None,
) -> Plan:
    return build_plan(rank_open_tasks(repo, config, now, directive), mode, directive)


def project_capacity(
    task_repo: TaskRepository,
    config: Config,
    calendar_repo: CalendarRepository | None = None,
    top_task_ids: set[str] | None = None,
    now: datetime | None = None,
) -> CapacityResult:
    """
    Today's capacity. Meeting minutes come from today's busy stats when a
    calendar is given; top tasks default to the three highest priorities.
    """
    now = now or _utcnow()
    workday = config.workday()
    tasks = task_repo.fetch_all()

    meeting_minutes = 0
    if calendar_repo is not None:
        today = local_date(now, workday.timezone).isoformat()
        meeting_minutes = build_calendar_report(calendar_repo, config, today, today, now).stats.busy_minutes

    if top_task_ids is None:
        top_task_ids = {t.id for t in top_priority_tasks(tasks)}

    return calculate_capacity(
        tasks,
        top_task_ids,
        meeting_minutes,
        config.capacity(),
        as_of=now,
        tz_name=workday.timezone,
    )


def build_day_plan(
    task_repo: TaskRepository,
    calendar_repo: CalendarRepository | None,
    config: Config,
    target: str = "today",
    now: datetime | None = None,
    directive: FocusDirective | None = None,
) -> DayPlan:
    """Assemble the plan for today or tomorrow."""
    now = now or _utcnow()
    workday = config.workday()
    tasks, blocked_ids = load_open_tasks(task_repo)

    events: list[CalendarEvent] = []
    if calendar_repo is not None:
        # today..tomorrow covers both targets
        today = local_date(now, workday.timezone)
        range_windows = build_day_windows(today, today + timedelta(days=1), workday)
        events = calendar_repo.fetch_events(range_windows)

    return assemble_day_plan(
        events,
        tasks,
        target=target,
        now=now,
        workday=workday,
        capacity_config=config.capacity(),
        planner_config=config.planner(),
        directive=directive,
        dependency_blocked_ids=blocked_ids,
        high_priority_stakeholders=config.high_priority_stakeholders,
    )
