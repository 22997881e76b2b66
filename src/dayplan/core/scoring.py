"""Planner scoring and exception classification - no I/O dependencies.

Score composition:

    pre = priority_blend + urgency + stakeholder + status_adjust + staleness + fit
    final = max(0, pre * implementation_multiplier * directive_multiplier)

Urgency is added before the multipliers are applied, so a focus directive or
implementation weight scales it along with everything else.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .tasks import BLOCKED_WAITING, Task

PRIORITY_BLEND_WEIGHT = 0.15
BLOCKED_PENALTY = -25
WAITING_PENALTY = -15
FOLLOW_UP_READY_BOOST = 10
STALENESS_BOOST = 5
STALE_AFTER = timedelta(days=5)
DEFAULT_CRITICAL_THRESHOLD = 90.0


@dataclass(frozen=True)
class PlannerTask:
    """The subset of a task that scoring reads."""

    priority_score: float | None = None
    due_at: datetime | None = None
    follow_up_at: datetime | None = None
    blocked: bool = False
    waiting: bool | None = None
    waiting_on: str | None = None
    status: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_task(cls, task: Task, dependency_blocked: bool = False) -> "PlannerTask":
        return cls(
            priority_score=task.priority_score,
            due_at=task.due_at,
            follow_up_at=task.follow_up_at,
            blocked=task.blocker or dependency_blocked,
            waiting_on=task.waiting_on,
            status=task.status,
            updated_at=task.updated_at,
        )


@dataclass(frozen=True)
class ExceptionsConfig:
    include_critical: bool = False
    critical_threshold: float = DEFAULT_CRITICAL_THRESHOLD


@dataclass(frozen=True)
class PlannerConfig:
    exceptions: ExceptionsConfig = field(default_factory=ExceptionsConfig)


DEFAULT_PLANNER_CONFIG = PlannerConfig()


@dataclass(frozen=True)
class StatusAdjust:
    status_adjust: int
    follow_up_due: bool
    blocked: bool
    waiting: bool


@dataclass
class ScoreInputs:
    """
    Caller-supplied score components.

    urgency_boost and staleness_boost are computed from the task when None.
    """

    stakeholder_boost: float = 0
    urgency_boost: float | None = None
    staleness_boost: float | None = None
    fit_bonus: float = 0
    implementation_multiplier: float = 1.0
    directive_multiplier: float = 1.0


@dataclass
class ScoreBreakdown:
    priority_blend: float
    urgency_boost: float
    stakeholder_boost: float
    staleness_boost: float
    fit_bonus: float
    status_adjust: int
    follow_up_due: bool
    pre_multiplier_score: float
    final_score: float

    def to_dict(self) -> dict:
        return {
            "priorityBlend": self.priority_blend,
            "urgencyBoost": self.urgency_boost,
            "stakeholderBoost": self.stakeholder_boost,
            "stalenessBoost": self.staleness_boost,
            "fitBonus": self.fit_bonus,
            "statusAdjust": self.status_adjust,
            "followUpDue": self.follow_up_due,
            "preMultiplierScore": self.pre_multiplier_score,
            "finalScore": self.final_score,
        }


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def finite_or_default(value, fallback: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return value
    return fallback


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def _clamped_priority(task: PlannerTask) -> float:
    return clamp(finite_or_default(task.priority_score, 0), 0, 100)


def calculate_priority_blend(task: PlannerTask) -> float:
    """Stored priority (clamped 0-100) scaled to 0-15."""
    return _clamped_priority(task) * PRIORITY_BLEND_WEIGHT


def is_waiting(task: PlannerTask) -> bool:
    """An explicit waiting flag wins; otherwise status or a waiting_on note."""
    if task.waiting is not None:
        return task.waiting
    if task.status == BLOCKED_WAITING:
        return True
    return bool(task.waiting_on and task.waiting_on.strip())


def is_follow_up_due(task: PlannerTask, now: datetime | None = None) -> bool:
    return task.follow_up_at is not None and task.follow_up_at <= _now(now)


def calculate_status_adjust(task: PlannerTask, now: datetime | None = None) -> StatusAdjust:
    """
    Penalties for blocked/waiting tasks.

    A blocked task whose follow-up is due loses the blocked penalty and gets
    a follow-up-ready boost instead.
    """
    blocked = bool(task.blocked)
    waiting = is_waiting(task)
    follow_up_due = is_follow_up_due(task, now)

    adjust = 0
    if blocked:
        adjust += BLOCKED_PENALTY
    if waiting:
        adjust += WAITING_PENALTY
    if blocked and follow_up_due:
        adjust -= BLOCKED_PENALTY
        adjust += FOLLOW_UP_READY_BOOST

    return StatusAdjust(
        status_adjust=adjust,
        follow_up_due=follow_up_due,
        blocked=blocked,
        waiting=waiting,
    )


def calculate_urgency_boost(due_at: datetime | None, now: datetime | None = None) -> int:
    """+30 within 24h (including overdue), +20 within 48h, +8 within a week."""
    if due_at is None:
        return 0

    hours_until_due = (due_at - _now(now)).total_seconds() / 3600
    if hours_until_due <= 24:
        return 30
    if hours_until_due <= 48:
        return 20
    if hours_until_due <= 7 * 24:
        return 8
    return 0


def calculate_staleness_boost(updated_at: datetime | None, now: datetime | None = None) -> int:
    if updated_at is None:
        return 0
    return STALENESS_BOOST if _now(now) - updated_at >= STALE_AFTER else 0


def is_due_within_hours(due_at: datetime | None, now: datetime | None = None, hours: float = 24) -> bool:
    if due_at is None:
        return False
    return due_at - _now(now) <= timedelta(hours=hours)


def is_exception_task(
    task: PlannerTask,
    now: datetime | None = None,
    config: PlannerConfig = DEFAULT_PLANNER_CONFIG,
) -> bool:
    """
    Whether a task must surface regardless of its score.

    Due within 24h, or blocked with a due follow-up. With include_critical
    set, a stored priority at or above the threshold also qualifies.
    """
    status = calculate_status_adjust(task, now)
    if is_due_within_hours(task.due_at, now, 24) or (status.blocked and status.follow_up_due):
        return True

    if not config.exceptions.include_critical:
        return False

    threshold = clamp(
        finite_or_default(config.exceptions.critical_threshold, DEFAULT_CRITICAL_THRESHOLD), 0, 100
    )
    return _clamped_priority(task) >= threshold


def calculate_planner_score(
    task: PlannerTask,
    inputs: ScoreInputs | None = None,
    now: datetime | None = None,
) -> ScoreBreakdown:
    """
    Full score breakdown for one task.

    Pure function - no I/O. Non-finite multipliers fall back to 1.
    """
    inputs = inputs or ScoreInputs()
    now = _now(now)

    priority_blend = calculate_priority_blend(task)
    status = calculate_status_adjust(task, now)
    urgency_boost = (
        inputs.urgency_boost
        if inputs.urgency_boost is not None
        else calculate_urgency_boost(task.due_at, now)
    )
    staleness_boost = (
        inputs.staleness_boost
        if inputs.staleness_boost is not None
        else calculate_staleness_boost(task.updated_at, now)
    )
    stakeholder_boost = finite_or_default(inputs.stakeholder_boost, 0)
    fit_bonus = finite_or_default(inputs.fit_bonus, 0)

    pre_multiplier_score = (
        priority_blend
        + urgency_boost
        + stakeholder_boost
        + status.status_adjust
        + staleness_boost
        + fit_bonus
    )

    implementation_multiplier = finite_or_default(inputs.implementation_multiplier, 1.0)
    directive_multiplier = finite_or_default(inputs.directive_multiplier, 1.0)
    final_score = max(0, pre_multiplier_score * implementation_multiplier * directive_multiplier)

    return ScoreBreakdown(
        priority_blend=priority_blend,
        urgency_boost=urgency_boost,
        stakeholder_boost=stakeholder_boost,
        staleness_boost=staleness_boost,
        fit_bonus=fit_bonus,
        status_adjust=status.status_adjust,
        follow_up_due=status.follow_up_due,
        pre_multiplier_score=pre_multiplier_score,
        final_score=final_score,
    )
