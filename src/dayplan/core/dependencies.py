"""Task dependency resolution - no I/O dependencies.

A dependency whose target cannot be found stays unresolved. Treating a
deleted target as done would silently unblock the dependent task.
"""

from dataclasses import dataclass
from datetime import datetime

from .tasks import BLOCKED_WAITING, DONE

TASK = "task"
COMMITMENT = "commitment"

UNKNOWN_TASK_TITLE = "Unknown task"
UNKNOWN_COMMITMENT_TITLE = "Unknown commitment"
UNKNOWN_TASK_STATUS = BLOCKED_WAITING
UNKNOWN_COMMITMENT_STATUS = "Open"


@dataclass(frozen=True)
class DependencyRow:
    id: str
    task_id: str
    depends_on_task_id: str | None = None
    depends_on_commitment_id: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class DependencyTarget:
    """A task or commitment that something depends on."""

    id: str
    title: str
    status: str


@dataclass
class DependencySummary:
    id: str
    task_id: str
    type: str
    target_id: str
    title: str
    status: str
    unresolved: bool
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "depends_on_task_id": self.target_id if self.type == TASK else None,
            "depends_on_commitment_id": self.target_id if self.type == COMMITMENT else None,
            "type": self.type,
            "title": self.title,
            "status": self.status,
            "unresolved": self.unresolved,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def is_dependency_resolved(status: str) -> bool:
    """Only Done resolves a dependency."""
    return status == DONE


def _summarize(row: DependencyRow, dep_type: str, target_id: str, target: DependencyTarget | None) -> DependencySummary:
    if dep_type == TASK:
        title, status = UNKNOWN_TASK_TITLE, UNKNOWN_TASK_STATUS
    else:
        title, status = UNKNOWN_COMMITMENT_TITLE, UNKNOWN_COMMITMENT_STATUS
    if target is not None:
        title, status = target.title, target.status

    return DependencySummary(
        id=row.id,
        task_id=row.task_id,
        type=dep_type,
        target_id=target_id,
        title=title,
        status=status,
        unresolved=not is_dependency_resolved(status),
        created_at=row.created_at,
    )


def _sort_key(summary: DependencySummary) -> tuple:
    # unresolved first, newest first, then title
    created = -summary.created_at.timestamp() if summary.created_at else 0.0
    return (not summary.unresolved, created, summary.title.lower())


def summarize_dependencies(
    rows: list[DependencyRow],
    task_targets: dict[str, DependencyTarget],
    commitment_targets: dict[str, DependencyTarget],
) -> dict[str, list[DependencySummary]]:
    """
    Resolve dependency rows against their targets, grouped by dependent task.

    Pure function - no I/O. The collaborator fetches targets in batch and
    passes them keyed by id. Rows naming neither a task nor a commitment are
    skipped.
    """
    by_task: dict[str, list[DependencySummary]] = {}
    for row in rows:
        if row.depends_on_task_id:
            summary = _summarize(row, TASK, row.depends_on_task_id, task_targets.get(row.depends_on_task_id))
        elif row.depends_on_commitment_id:
            summary = _summarize(
                row,
                COMMITMENT,
                row.depends_on_commitment_id,
                commitment_targets.get(row.depends_on_commitment_id),
            )
        else:
            continue
        by_task.setdefault(row.task_id, []).append(summary)

    return {task_id: sorted(items, key=_sort_key) for task_id, items in by_task.items()}


def dependency_blocked_task_ids(
    task_ids: list[str],
    summaries: dict[str, list[DependencySummary]],
) -> set[str]:
    """Tasks with at least one unresolved dependency."""
    return {
        task_id
        for task_id in task_ids
        if any(s.unresolved for s in summaries.get(task_id, []))
    }
