"""Daily capacity projection - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum

from .tasks import Task, top_priority_tasks
from .windows import DEFAULT_TIMEZONE, local_date, local_day_bounds

YELLOW_OVERAGE_LIMIT = 60


class Rag(Enum):
    """Capacity health."""

    GREEN = "Green"
    YELLOW = "Yellow"
    RED = "Red"


@dataclass(frozen=True)
class CapacityConfig:
    work_minutes: int = 510  # 8:00-16:30
    lunch_minutes: int = 30
    daily_overhead_minutes: int = 90  # context switching, pings, admin
    max_buffer_minutes: int = 60
    buffer_per_task: int = 10


DEFAULT_CAPACITY_CONFIG = CapacityConfig()


@dataclass
class CapacityBreakdown:
    work_minutes: int
    lunch_minutes: int
    daily_overhead_minutes: int
    buffer_minutes: int
    meeting_minutes: int

    def to_dict(self) -> dict:
        return {
            "work_minutes": self.work_minutes,
            "lunch_minutes": self.lunch_minutes,
            "daily_overhead_minutes": self.daily_overhead_minutes,
            "buffer_minutes": self.buffer_minutes,
            "meeting_minutes": self.meeting_minutes,
        }


@dataclass
class CapacityResult:
    available_minutes: int
    required_minutes: int
    rag: Rag
    breakdown: CapacityBreakdown

    @property
    def overage_minutes(self) -> int:
        return self.required_minutes - self.available_minutes

    def to_dict(self) -> dict:
        return {
            "available_minutes": self.available_minutes,
            "required_minutes": self.required_minutes,
            "rag": self.rag.value,
            "breakdown": self.breakdown.to_dict(),
        }


def calculate_buffer_minutes(focus_task_count: int, config: CapacityConfig = DEFAULT_CAPACITY_CONFIG) -> int:
    """Buffer between focus blocks: buffer_per_task per gap, capped."""
    return min(config.max_buffer_minutes, config.buffer_per_task * max(0, focus_task_count - 1))


def calculate_available_minutes(
    focus_task_count: int,
    meeting_minutes: int = 0,
    config: CapacityConfig = DEFAULT_CAPACITY_CONFIG,
) -> int:
    """available = work - lunch - overhead - buffers - meetings"""
    return (
        config.work_minutes
        - config.lunch_minutes
        - config.daily_overhead_minutes
        - calculate_buffer_minutes(focus_task_count, config)
        - meeting_minutes
    )


def _day_bounds(as_of: datetime | None, tz_name: str) -> tuple[datetime, datetime]:
    as_of = as_of or datetime.now(timezone.utc)
    return local_day_bounds(local_date(as_of, tz_name), tz_name)


def _is_today_candidate(task: Task, top_task_ids: set[str], day_start: datetime, day_end: datetime) -> bool:
    return task.id in top_task_ids or task.is_due_between(day_start, day_end)


def count_focus_tasks(
    tasks: list[Task],
    top_task_ids: set[str],
    as_of: datetime | None = None,
    tz_name: str = DEFAULT_TIMEZONE,
) -> int:
    """Planned/In Progress tasks that are top-3 or due today."""
    day_start, day_end = _day_bounds(as_of, tz_name)
    return sum(
        1 for t in tasks if t.is_active and _is_today_candidate(t, top_task_ids, day_start, day_end)
    )


def calculate_required_minutes(
    tasks: list[Task],
    top_task_ids: set[str] | None = None,
    as_of: datetime | None = None,
    tz_name: str = DEFAULT_TIMEZONE,
) -> int:
    """Sum of estimates for open tasks that are top-3 or due today."""
    top_task_ids = top_task_ids or set()
    day_start, day_end = _day_bounds(as_of, tz_name)
    return sum(
        t.estimated_minutes
        for t in tasks
        if not t.is_done and _is_today_candidate(t, top_task_ids, day_start, day_end)
    )


def determine_rag_status(required_minutes: int, available_minutes: int) -> Rag:
    """Green when it fits, Yellow up to an hour over, Red beyond."""
    overage = required_minutes - available_minutes
    if overage <= 0:
        return Rag.GREEN
    if overage <= YELLOW_OVERAGE_LIMIT:
        return Rag.YELLOW
    return Rag.RED


def calculate_capacity(
    tasks: list[Task],
    top_task_ids: set[str] | None = None,
    meeting_minutes: int = 0,
    config: CapacityConfig = DEFAULT_CAPACITY_CONFIG,
    as_of: datetime | None = None,
    tz_name: str = DEFAULT_TIMEZONE,
) -> CapacityResult:
    """
    Capacity projection for the local day containing as_of.

    Pure function - no I/O.
    """
    top_task_ids = top_task_ids or set()
    focus_count = count_focus_tasks(tasks, top_task_ids, as_of, tz_name)
    buffer_minutes = calculate_buffer_minutes(focus_count, config)
    available = calculate_available_minutes(focus_count, meeting_minutes, config)
    required = calculate_required_minutes(tasks, top_task_ids, as_of, tz_name)

    return CapacityResult(
        available_minutes=available,
        required_minutes=required,
        rag=determine_rag_status(required, available),
        breakdown=CapacityBreakdown(
            work_minutes=config.work_minutes,
            lunch_minutes=config.lunch_minutes,
            daily_overhead_minutes=config.daily_overhead_minutes,
            buffer_minutes=buffer_minutes,
            meeting_minutes=meeting_minutes,
        ),
    )


def format_capacity_display(result: CapacityResult) -> str:
    diff = result.available_minutes - result.required_minutes
    label = f"{diff} min buffer" if diff >= 0 else f"{-diff} min over"
    return f"{result.required_minutes}/{result.available_minutes} min ({label})"


def capacity_breakdown_lines(result: CapacityResult) -> list[str]:
    """Human-readable breakdown; the meeting line only appears when non-zero."""
    b = result.breakdown
    lines = [
        f"Work day: {b.work_minutes} min",
        f"Lunch: -{b.lunch_minutes} min",
        f"Overhead: -{b.daily_overhead_minutes} min",
        f"Buffers: -{b.buffer_minutes} min",
    ]
    if b.meeting_minutes > 0:
        lines.append(f"Meetings: -{b.meeting_minutes} min")
    lines.append(f"= Available: {result.available_minutes} min")
    lines.append(f"Required: {result.required_minutes} min")
    return lines


def calculate_week_capacity(
    tasks_by_day: dict[date, list[Task]],
    config: CapacityConfig = DEFAULT_CAPACITY_CONFIG,
    tz_name: str = DEFAULT_TIMEZONE,
) -> dict[date, CapacityResult]:
    """
    Capacity per day, using each day's own top three tasks.

    Meetings are not counted.
    """
    results = {}
    for day, tasks in tasks_by_day.items():
        top_ids = {t.id for t in top_priority_tasks(tasks)}
        day_start, _ = local_day_bounds(day, tz_name)
        results[day] = calculate_capacity(tasks, top_ids, 0, config, as_of=day_start, tz_name=tz_name)
    return results
