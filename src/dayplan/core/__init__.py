"""Functional core - pure business logic with no I/O."""

from .windows import DayWindow, InvalidRange, RangeWindows, WorkdayConfig, build_day_windows
from .calendar import BusyBlock, BusyStats, CalendarEvent, calculate_busy_stats, merge_busy_blocks
from .snapshot import Delta, SnapshotEntry, build_snapshot, compute_delta, parse_snapshot_payload
from .tasks import Task
from .scoring import (
    PlannerConfig,
    PlannerTask,
    ScoreBreakdown,
    ScoreInputs,
    calculate_planner_score,
    is_exception_task,
)
from .capacity import CapacityConfig, CapacityResult, Rag, calculate_capacity
from .dependencies import DependencySummary, dependency_blocked_task_ids, summarize_dependencies
from .planner import FocusDirective, Plan, RankedTask, build_plan, rank_tasks
from .briefing import DayPlan, assemble_day_plan

__all__ = [
    # Windows
    "DayWindow",
    "InvalidRange",
    "RangeWindows",
    "WorkdayConfig",
    "build_day_windows",
    # Calendar
    "BusyBlock",
    "BusyStats",
    "CalendarEvent",
    "calculate_busy_stats",
    "merge_busy_blocks",
    # Snapshots
    "Delta",
    "SnapshotEntry",
    "build_snapshot",
    "compute_delta",
    "parse_snapshot_payload",
    # Tasks & scoring
    "Task",
    "PlannerConfig",
    "PlannerTask",
    "ScoreBreakdown",
    "ScoreInputs",
    "calculate_planner_score",
    "is_exception_task",
    # Capacity
    "CapacityConfig",
    "CapacityResult",
    "Rag",
    "calculate_capacity",
    # Dependencies
    "DependencySummary",
    "dependency_blocked_task_ids",
    "summarize_dependencies",
    # Planning
    "FocusDirective",
    "Plan",
    "RankedTask",
    "build_plan",
    "rank_tasks",
    "DayPlan",
    "assemble_day_plan",
]
