"""Task ranking and plan assembly - no I/O dependencies."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .scoring import (
    DEFAULT_PLANNER_CONFIG,
    PlannerConfig,
    PlannerTask,
    ScoreBreakdown,
    ScoreInputs,
    calculate_planner_score,
    clamp,
    finite_or_default,
    is_exception_task,
)
from .tasks import BLOCKED_WAITING, Task

NEXT_WINDOW_MINUTES = 60
MAX_QUEUE_ITEMS = 50
MAX_EXCEPTIONS = 10
STAKEHOLDER_BOOST = 10
STEADY_STATE_PHASE = "Steady State"
STEADY_STATE_FACTOR = 0.75
DEFAULT_PRIORITY_WEIGHT = 5

# Implementation priority weight 0-10 -> score multiplier
WEIGHT_MULTIPLIER_TABLE = (0.6, 0.7, 0.8, 0.9, 0.95, 1.0, 1.1, 1.25, 1.4, 1.6, 1.8)

# strength -> (match, non-match)
DIRECTIVE_STRENGTH_MULTIPLIERS = {
    "nudge": (1.2, 0.95),
    "strong": (1.6, 0.85),
    "hard": (2.0, 0.7),
}

SCOPE_TYPES = ("implementation", "stakeholder", "task_type", "query")
PLAN_MODES = ("today", "now")


@dataclass(frozen=True)
class ImplementationSignal:
    priority_weight: float | None = DEFAULT_PRIORITY_WEIGHT
    phase: str | None = None
    rag: str | None = None


@dataclass(frozen=True)
class FocusDirective:
    """A user-set focus that boosts matching tasks and damps the rest."""

    id: str
    text: str
    scope_type: str
    strength: str = "strong"
    scope_id: str | None = None
    scope_value: str | None = None
    is_active: bool = True
    starts_at: datetime | None = None
    ends_at: datetime | None = None


@dataclass
class RankedTask:
    task: Task
    score: ScoreBreakdown
    final_score: float
    directive_matched: bool
    implementation_multiplier: float
    directive_multiplier: float
    window_fit_bonus: int
    dependency_blocked: bool
    steady_state_penalty_applied: bool
    exception_eligible: bool

    def to_dict(self) -> dict:
        return {
            "taskId": self.task.id,
            "title": self.task.title,
            "finalScore": self.final_score,
            "directiveMatched": self.directive_matched,
            "implementationMultiplier": self.implementation_multiplier,
            "directiveMultiplier": self.directive_multiplier,
            "windowFitBonus": self.window_fit_bonus,
            "dependencyBlocked": self.dependency_blocked,
            "steadyStatePenaltyApplied": self.steady_state_penalty_applied,
            "exceptionEligible": self.exception_eligible,
            "score": self.score.to_dict(),
        }


@dataclass
class PlanException:
    task_id: str
    title: str
    score: float
    reason: str


@dataclass
class Plan:
    mode: str
    now_next: RankedTask | None
    next3: list[RankedTask] = field(default_factory=list)
    queue: list[RankedTask] = field(default_factory=list)
    exceptions: list[PlanException] = field(default_factory=list)
    dependency_fallback_used: bool = False

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "nowNext": self.now_next.to_dict() if self.now_next else None,
            "next3": [r.to_dict() for r in self.next3],
            "queue": [
                {"taskId": r.task.id, "rank": i + 1, "score": r.final_score, "title": r.task.title}
                for i, r in enumerate(self.queue)
            ],
            "exceptions": [
                {"taskId": e.task_id, "score": e.score, "title": e.title, "reason": e.reason}
                for e in self.exceptions
            ],
            "dependencyFallbackUsed": self.dependency_fallback_used,
        }


def stakeholder_boost(mentions: list[str], high_priority: list[str]) -> int:
    """Flat boost when any mention names a high-priority stakeholder."""
    names = [n.lower() for n in high_priority if n]
    lowered = [m.lower() for m in mentions]
    if any(name in mention for name in names for mention in lowered):
        return STAKEHOLDER_BOOST
    return 0


def priority_weight_to_multiplier(weight) -> float:
    normalized = int(clamp(math.floor(finite_or_default(weight, DEFAULT_PRIORITY_WEIGHT) + 0.5), 0, 10))
    return WEIGHT_MULTIPLIER_TABLE[normalized]


def implementation_multiplier(signal: ImplementationSignal | None, blocker: bool) -> tuple[float, bool]:
    """
    Multiplier from the task's implementation, and whether the steady-state
    damping applied.
    """
    weight = signal.priority_weight if signal else DEFAULT_PRIORITY_WEIGHT
    multiplier = priority_weight_to_multiplier(weight)

    steady_state = (
        signal is not None
        and signal.phase == STEADY_STATE_PHASE
        and not blocker
        and signal.rag != "Red"
    )
    if steady_state:
        multiplier *= STEADY_STATE_FACTOR
    return multiplier, steady_state


def is_directive_active(directive: FocusDirective, now: datetime) -> bool:
    if not directive.is_active:
        return False
    if directive.starts_at is not None and directive.starts_at > now:
        return False
    if directive.ends_at is not None and directive.ends_at <= now:
        return False
    return True


def matches_directive(task: Task, directive: FocusDirective | None) -> bool:
    if directive is None:
        return False

    scope = (directive.scope_value or "").strip().lower()
    match directive.scope_type:
        case "implementation":
            return bool(directive.scope_id) and task.implementation_id == directive.scope_id
        case "stakeholder":
            return bool(scope) and any(scope in m.lower() for m in task.stakeholder_mentions)
        case "task_type":
            return bool(scope) and bool(task.task_type) and task.task_type.lower() == scope
        case "query":
            if not scope:
                return False
            return scope in task.title.lower() or scope in (task.pinned_excerpt or "").lower()
        case _:
            return False


def directive_multiplier(directive: FocusDirective | None, matched: bool) -> float:
    if directive is None:
        return 1.0
    match_mult, non_match_mult = DIRECTIVE_STRENGTH_MULTIPLIERS.get(
        directive.strength, DIRECTIVE_STRENGTH_MULTIPLIERS["strong"]
    )
    return match_mult if matched else non_match_mult


def window_fit_bonus(estimated_minutes: int) -> int:
    """Small tasks fit the next window; long ones are pushed down."""
    return 5 if estimated_minutes <= NEXT_WINDOW_MINUTES else -10


def rank_task(
    task: Task,
    now: datetime,
    directive: FocusDirective | None = None,
    implementation_signals: dict[str, ImplementationSignal] | None = None,
    config: PlannerConfig = DEFAULT_PLANNER_CONFIG,
    dependency_blocked: bool = False,
    high_priority_stakeholders: list[str] | None = None,
) -> RankedTask:
    signal = (implementation_signals or {}).get(task.implementation_id) if task.implementation_id else None
    impl_mult, steady_state = implementation_multiplier(signal, task.blocker)
    matched = matches_directive(task, directive)
    dir_mult = directive_multiplier(directive, matched)
    fit = window_fit_bonus(task.estimated_minutes)

    planner_task = PlannerTask.from_task(task, dependency_blocked)
    score = calculate_planner_score(
        planner_task,
        ScoreInputs(
            stakeholder_boost=stakeholder_boost(task.stakeholder_mentions, high_priority_stakeholders or []),
            fit_bonus=fit,
            implementation_multiplier=impl_mult,
            directive_multiplier=dir_mult,
        ),
        now,
    )

    return RankedTask(
        task=task,
        score=score,
        final_score=round(score.final_score, 2),
        directive_matched=matched,
        implementation_multiplier=impl_mult,
        directive_multiplier=dir_mult,
        window_fit_bonus=fit,
        dependency_blocked=dependency_blocked,
        steady_state_penalty_applied=steady_state,
        exception_eligible=is_exception_task(planner_task, now, config),
    )


def _rank_sort_key(ranked: RankedTask) -> tuple:
    due = ranked.task.due_at
    return (-ranked.final_score, due is None, due.timestamp() if due else 0.0, ranked.task.title)


def rank_tasks(
    tasks: list[Task],
    now: datetime | None = None,
    directive: FocusDirective | None = None,
    implementation_signals: dict[str, ImplementationSignal] | None = None,
    config: PlannerConfig = DEFAULT_PLANNER_CONFIG,
    dependency_blocked_ids: set[str] | None = None,
    high_priority_stakeholders: list[str] | None = None,
) -> list[RankedTask]:
    """
    Score and sort open tasks against a single now.

    Pure function - no I/O. Ties on score break by due date (undated last),
    then title. An inactive directive is ignored.
    """
    now = now or datetime.now(timezone.utc)
    if directive is not None and not is_directive_active(directive, now):
        directive = None
    blocked_ids = dependency_blocked_ids or set()

    ranked = [
        rank_task(
            task,
            now,
            directive,
            implementation_signals,
            config,
            task.id in blocked_ids,
            high_priority_stakeholders,
        )
        for task in tasks
        if not task.is_done
    ]
    return sorted(ranked, key=_rank_sort_key)


def _exception_reason(ranked: RankedTask) -> str:
    if ranked.score.follow_up_due and ranked.task.blocker:
        return "Blocked and follow-up is due"
    return "Due within 24 hours"


def build_plan(
    ranked: list[RankedTask],
    mode: str = "today",
    directive: FocusDirective | None = None,
) -> Plan:
    """
    Pick now/next, the next three and the queue from ranked tasks.

    "now" mode keeps only tasks that fit the next hour and are not
    Blocked/Waiting. Dependency-blocked tasks are dropped unless nothing else
    is left. Exceptions are only listed while a directive is active.
    """
    if mode not in PLAN_MODES:
        raise ValueError(f"mode must be one of {', '.join(PLAN_MODES)}")

    candidates = ranked
    if mode == "now":
        candidates = [
            r
            for r in ranked
            if r.task.estimated_minutes <= NEXT_WINDOW_MINUTES and r.task.status != BLOCKED_WAITING
        ]

    ready = [r for r in candidates if not r.dependency_blocked]
    fallback = not ready and bool(candidates)
    pool = ready or candidates

    fitting = [r for r in pool if r.task.estimated_minutes <= NEXT_WINDOW_MINUTES]
    now_next = fitting[0] if fitting else (pool[0] if pool else None)
    next3 = [r for r in pool if now_next is None or r.task.id != now_next.task.id][:3]

    exceptions = []
    if directive is not None:
        exceptions = [
            PlanException(r.task.id, r.task.title, r.final_score, _exception_reason(r))
            for r in pool
            if not r.directive_matched and r.exception_eligible
        ][:MAX_EXCEPTIONS]

    return Plan(
        mode=mode,
        now_next=now_next,
        next3=next3,
        queue=pool[:MAX_QUEUE_ITEMS],
        exceptions=exceptions,
        dependency_fallback_used=fallback,
    )


def why_lines(ranked: RankedTask, directive: FocusDirective | None = None) -> list[str]:
    """Short explanation of what moved a task's score."""
    lines = []
    if directive is not None:
        label = "Focus match" if ranked.directive_matched else "Outside focus"
        lines.append(f"{label} ({directive.scope_type}, x{ranked.directive_multiplier:.2f})")

    score = ranked.score
    if score.urgency_boost > 0:
        lines.append(f"Urgency +{score.urgency_boost}")
    if score.stakeholder_boost > 0:
        lines.append(f"Stakeholder boost +{score.stakeholder_boost}")
    if score.staleness_boost > 0:
        lines.append(f"Staleness boost +{score.staleness_boost}")
    if score.status_adjust != 0:
        lines.append(f"Status adjust {score.status_adjust:+d}")
    if ranked.dependency_blocked:
        lines.append("Blocked by dependency")
    if ranked.steady_state_penalty_applied:
        lines.append("Steady state implementation x0.75")
    lines.append(f"Implementation multiplier x{ranked.implementation_multiplier:.2f}")
    return lines
