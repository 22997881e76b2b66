"""Pure task domain logic - no I/O dependencies."""

import math
from dataclasses import dataclass, field
from datetime import datetime

from .timestamps import parse_timestamp

PLANNED = "Planned"
IN_PROGRESS = "In Progress"
BLOCKED_WAITING = "Blocked/Waiting"
DONE = "Done"

ACTIVE_STATUSES = (PLANNED, IN_PROGRESS)
DEFAULT_ESTIMATED_MINUTES = 30


def _finite_or_none(value) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _text_or_none(value) -> str | None:
    return value if isinstance(value, str) else None


@dataclass
class Task:
    """A task row as stored by the collaborator."""

    id: str
    title: str
    status: str = PLANNED
    priority_score: float | None = None
    estimated_minutes: int = DEFAULT_ESTIMATED_MINUTES
    due_at: datetime | None = None
    follow_up_at: datetime | None = None
    updated_at: datetime | None = None
    waiting_on: str | None = None
    blocker: bool = False
    implementation_id: str | None = None
    task_type: str | None = None
    stakeholder_mentions: list[str] = field(default_factory=list)
    pinned_excerpt: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status == DONE

    @property
    def is_active(self) -> bool:
        """Planned or in progress."""
        return self.status in ACTIVE_STATUSES

    def is_due_between(self, start: datetime, end: datetime) -> bool:
        """Due in [start, end)."""
        return self.due_at is not None and start <= self.due_at < end

    @classmethod
    def from_row(cls, row: dict) -> "Task":
        """
        Create Task from a stored row.

        Timestamps that fail to parse and non-finite numbers become None.
        """
        estimate = _finite_or_none(row.get("estimated_minutes"))
        mentions = row.get("stakeholder_mentions") or []
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            status=row.get("status") or PLANNED,
            priority_score=_finite_or_none(row.get("priority_score")),
            estimated_minutes=int(estimate) if estimate is not None else DEFAULT_ESTIMATED_MINUTES,
            due_at=parse_timestamp(row.get("due_at")),
            follow_up_at=parse_timestamp(row.get("follow_up_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            waiting_on=_text_or_none(row.get("waiting_on")),
            blocker=bool(row.get("blocker") or row.get("blocked")),
            implementation_id=_text_or_none(row.get("implementation_id")),
            task_type=_text_or_none(row.get("task_type")),
            stakeholder_mentions=[m for m in mentions if isinstance(m, str)] if isinstance(mentions, list) else [],
            pinned_excerpt=_text_or_none(row.get("pinned_excerpt")),
        )


def top_priority_tasks(tasks: list[Task], limit: int = 3) -> list[Task]:
    """
    Highest stored priority among Planned/In Progress tasks.

    Pure function - no I/O.
    """
    active = [t for t in tasks if t.is_active]
    return sorted(active, key=lambda t: -(t.priority_score or 0))[:limit]


def filter_open(tasks: list[Task]) -> list[Task]:
    """Tasks that are not Done."""
    return [t for t in tasks if not t.is_done]


def filter_waiting(tasks: list[Task]) -> list[Task]:
    """
    Blocked/Waiting tasks, soonest follow-up first.

    Tasks without a follow-up date sort last.
    """
    waiting = [t for t in tasks if t.status == BLOCKED_WAITING]
    return sorted(waiting, key=lambda t: (t.follow_up_at is None, t.follow_up_at or datetime.max))
