"""Task repository interface."""

from typing import Protocol

from dayplan.core.dependencies import DependencyRow, DependencyTarget
from dayplan.core.tasks import Task


class TaskRepository(Protocol):
    """Interface for fetching tasks and their dependencies from any backend."""

    def fetch_all(self) -> list[Task]:
        """Fetch all tasks."""
        ...

    def fetch_dependency_rows(self, task_ids: list[str]) -> list[DependencyRow]:
        """Fetch dependency rows for the given dependent tasks."""
        ...

    def fetch_targets(
        self, task_ids: list[str], commitment_ids: list[str]
    ) -> tuple[dict[str, DependencyTarget], dict[str, DependencyTarget]]:
        """Fetch dependency targets in one batch, keyed by id."""
        ...
