"""Task store interface."""

from typing import Protocol

from alltag.core.recurrence import TaskChange
from alltag.core.tasks import Location, Task, TaskLocation


class TaskStore(Protocol):
    """
    Interface for persisting one user's tasks and locations.

    Every method is scoped to `user`; records owned by someone else behave as
    if they did not exist.
    """

    def list_tasks(self, user: str) -> list[Task]:
        """All tasks of the user, classified or not, ordered by ID."""
        ...

    def get_task(self, user: str, task_id: int) -> Task:
        """Fetch one task. Raises NotFound."""
        ...

    def add_task(self, user: str, label: str) -> Task:
        """Create an unclassified task."""
        ...

    def list_locations(self, user: str) -> list[Location]:
        """All locations of the user, ordered by ID."""
        ...

    def get_location(self, user: str, location_id: int) -> Location:
        """Fetch one location. Raises NotFound."""
        ...

    def add_location(self, user: str, label: str) -> Location:
        """Create a location."""
        ...

    def rename_location(self, user: str, location_id: int, label: str) -> Location:
        """Change a location's label. Raises NotFound."""
        ...

    def delete_location(self, user: str, location_id: int) -> None:
        """Delete a location together with its task associations."""
        ...

    def list_task_locations(self, user: str) -> list[TaskLocation]:
        """Task-location associations for the user's tasks."""
        ...

    def apply(
        self,
        user: str,
        change: TaskChange,
        location_ids: set[int] | None = None,
    ) -> None:
        """
        Apply a task update or deletion as one atomic write.

        With `location_ids`, the task's associations are replaced by that set
        in the same write.
        """
        ...
