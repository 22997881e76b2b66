"""Pure day plan assembly logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from .calendar import BusyBlock, BusyStats, CalendarEvent, calculate_busy_stats, free_blocks, merge_busy_blocks
from .capacity import (
    DEFAULT_CAPACITY_CONFIG,
    CapacityConfig,
    CapacityResult,
    calculate_capacity,
    capacity_breakdown_lines,
    format_capacity_display,
)
from .planner import (
    FocusDirective,
    ImplementationSignal,
    Plan,
    RankedTask,
    build_plan,
    is_directive_active,
    rank_tasks,
    why_lines,
)
from .scoring import DEFAULT_PLANNER_CONFIG, PlannerConfig
from .tasks import Task, filter_waiting
from .windows import (
    WorkdayConfig,
    build_day_windows,
    local_date,
    local_day_bounds,
    normalize_timezone_name,
)

TARGETS = ("today", "tomorrow")
MIN_FREE_SLOT_MINUTES = 30


@dataclass
class DayPlan:
    """Assembled plan for one local day, ready for formatting."""

    date: date
    day_of_week: str
    busy_blocks: list[BusyBlock]
    free_slots: list[BusyBlock]
    stats: BusyStats
    capacity: CapacityResult
    plan: Plan
    waiting: list[Task]
    directive: FocusDirective | None
    timezone: str

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "busyBlocks": [b.to_dict() for b in self.busy_blocks],
            "stats": self.stats.to_dict(),
            "capacity": self.capacity.to_dict(),
            "plan": self.plan.to_dict(),
        }


def resolve_target_date(target: str, now: datetime, tz_name: str) -> date:
    """Local date for 'today' or 'tomorrow'."""
    if target not in TARGETS:
        raise ValueError(f"target must be one of {', '.join(TARGETS)}")
    today = local_date(now, tz_name)
    return today if target == "today" else today + timedelta(days=1)


def assemble_day_plan(
    events: list[CalendarEvent],
    tasks: list[Task],
    target: str = "today",
    now: datetime | None = None,
    workday: WorkdayConfig | None = None,
    capacity_config: CapacityConfig = DEFAULT_CAPACITY_CONFIG,
    planner_config: PlannerConfig = DEFAULT_PLANNER_CONFIG,
    directive: FocusDirective | None = None,
    implementation_signals: dict[str, ImplementationSignal] | None = None,
    dependency_blocked_ids: set[str] | None = None,
    high_priority_stakeholders: list[str] | None = None,
    mode: str = "today",
) -> DayPlan:
    """
    Assemble the plan for today or tomorrow from raw events and tasks.

    Pure function - no I/O. All scoring uses the same now. Capacity for
    tomorrow is projected as of the start of that local day.
    """
    now = now or datetime.now(timezone.utc)
    workday = workday or WorkdayConfig()
    day = resolve_target_date(target, now, workday.timezone)

    windows = build_day_windows(day, day, workday).windows
    blocks = merge_busy_blocks(events, windows)
    stats = calculate_busy_stats(events, windows)

    ranked = rank_tasks(
        tasks,
        now=now,
        directive=directive,
        implementation_signals=implementation_signals,
        config=planner_config,
        dependency_blocked_ids=dependency_blocked_ids,
        high_priority_stakeholders=high_priority_stakeholders,
    )
    if directive is not None and not is_directive_active(directive, now):
        directive = None
    plan = build_plan(ranked, mode, directive)

    top_ids = {r.task.id for r in _top_three(ranked)}
    capacity_as_of = now if target == "today" else local_day_bounds(day, workday.timezone)[0]
    capacity = calculate_capacity(
        tasks,
        top_ids,
        stats.busy_minutes,
        capacity_config,
        as_of=capacity_as_of,
        tz_name=workday.timezone,
    )

    return DayPlan(
        date=day,
        day_of_week=day.strftime("%A"),
        busy_blocks=blocks,
        free_slots=free_blocks(events, windows, MIN_FREE_SLOT_MINUTES),
        stats=stats,
        capacity=capacity,
        plan=plan,
        waiting=filter_waiting(tasks),
        directive=directive,
        timezone=workday.timezone,
    )


def _top_three(ranked: list[RankedTask]) -> list[RankedTask]:
    return [r for r in ranked if r.task.is_active][:3]


def format_ranked_line(ranked: RankedTask, as_of: date | None = None, tz=None) -> str:
    """
    Format a single ranked task for display.

    Pure function - no I/O.
    """
    due = ""
    if ranked.task.due_at is not None:
        due_at = ranked.task.due_at.astimezone(tz) if tz else ranked.task.due_at
        due_day = due_at.date()
        if as_of is not None and due_day < as_of:
            due = f", OVERDUE by {(as_of - due_day).days}d"
        else:
            due = f", due {due_day.isoformat()}"
    flag = " [!]" if ranked.exception_eligible else ""
    return f"- {ranked.final_score:6.2f} {ranked.task.title} ({ranked.task.estimated_minutes} min{due}){flag}"


def format_plan_sections(data: DayPlan) -> dict[str, str]:
    """
    Format a day plan into markdown sections.

    Pure function - no I/O.
    Returns dict with keys: capacity, calendar, now_next, next3, exceptions, waiting
    """
    tz = ZoneInfo(normalize_timezone_name(data.timezone))

    capacity_md = "\n".join(
        [f"{data.capacity.rag.value}: {format_capacity_display(data.capacity)}"]
        + [f"- {line}" for line in capacity_breakdown_lines(data.capacity)]
    )

    busy_md = "\n".join(f"- Busy {b.format(tz)}" for b in data.busy_blocks) or "- No meetings."
    free_md = "\n".join(f"- Free {s.format(tz)}" for s in data.free_slots) or "- No free slots."
    calendar_md = (
        f"{data.stats.busy_minutes} min busy in {data.stats.block_count} blocks, "
        f"largest focus block {data.stats.largest_focus_block_minutes} min\n{busy_md}\n{free_md}"
    )

    if data.plan.now_next is not None:
        reasons = "\n".join(f"  - {line}" for line in why_lines(data.plan.now_next, data.directive))
        now_next_md = f"{format_ranked_line(data.plan.now_next, data.date, tz)}\n{reasons}"
    else:
        now_next_md = "Nothing to do."

    next3_md = "\n".join(format_ranked_line(r, data.date, tz) for r in data.plan.next3) or "None"
    exceptions_md = (
        "\n".join(f"- {e.title} ({e.reason})" for e in data.plan.exceptions) or "None"
    )

    waiting_lines = []
    for t in data.waiting:
        follow_up = f" (follow up {t.follow_up_at.date().isoformat()})" if t.follow_up_at else ""
        waiting_lines.append(f"- {t.title}{follow_up}")
    waiting_md = "\n".join(waiting_lines) or "None"

    return {
        "capacity": capacity_md,
        "calendar": calendar_md,
        "now_next": now_next_md,
        "next3": next3_md,
        "exceptions": exceptions_md,
        "waiting": waiting_md,
    }


def render_day_plan(data: DayPlan) -> str:
    """Full markdown document for a day plan."""
    sections = format_plan_sections(data)
    return f"""# Plan for {data.day_of_week}, {data.date.isoformat()}

## Capacity
{sections['capacity']}

## Calendar
{sections['calendar']}

## Now / Next
{sections['now_next']}

## Up Next
{sections['next3']}

## Exceptions
{sections['exceptions']}

## Waiting
{sections['waiting']}
"""
