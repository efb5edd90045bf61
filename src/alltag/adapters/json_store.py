"""JSON file task store adapter."""

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from alltag.core.errors import NotFound, PreconditionViolated, StoreError
from alltag.core.recurrence import Delete, TaskChange
from alltag.core.tasks import Location, Task, TaskLocation, check_label

logger = logging.getLogger(__name__)


def _empty_document() -> dict:
    return {
        "next_ids": {"tasks": 1, "locations": 1},
        "tasks": [],
        "locations": [],
        "task_locations": [],
    }


class JsonTaskStore:
    """
    JSON file task store.

    Implements TaskStore protocol. All state lives in one document which is
    rewritten through a temporary file and os.replace(), so a write is either
    fully visible or not at all.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    # ============== Document I/O ==============

    def _load(self) -> dict:
        if not self.path.exists():
            return _empty_document()
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"cannot read task store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"cannot read task store {self.path}: not a JSON object")
        for key, default in _empty_document().items():
            data.setdefault(key, default)
        return data

    def _save(self, data: dict) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @contextmanager
    def _read(self) -> Iterator[dict]:
        with self._lock:
            yield self._load()

    @contextmanager
    def _transaction(self) -> Iterator[dict]:
        """Load, let the caller modify, then write back. Nothing is written on error."""
        with self._lock:
            data = self._load()
            yield data
            self._save(data)

    # ============== Record helpers ==============

    def _parse_tasks(self, data: dict, user: str) -> list[Task]:
        try:
            tasks = [Task.from_record(r) for r in data["tasks"] if r["username"] == user]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"malformed task record in {self.path}: {e}") from e
        return sorted(tasks, key=lambda t: t.id)

    def _parse_locations(self, data: dict, user: str) -> list[Location]:
        try:
            locations = [
                Location.from_record(r) for r in data["locations"] if r["username"] == user
            ]
        except (KeyError, TypeError) as e:
            raise StoreError(f"malformed location record in {self.path}: {e}") from e
        return sorted(locations, key=lambda loc: loc.id)

    @staticmethod
    def _index_of(records: list[dict], user: str, record_id: int, kind: str) -> int:
        for i, record in enumerate(records):
            if record["id"] == record_id and record["username"] == user:
                return i
        raise NotFound(f"{kind} #{record_id} not found")

    @staticmethod
    def _next_id(data: dict, table: str) -> int:
        next_id = data["next_ids"].get(table, 1)
        data["next_ids"][table] = next_id + 1
        return next_id

    # ============== Tasks ==============

    def list_tasks(self, user: str) -> list[Task]:
        with self._read() as data:
            return self._parse_tasks(data, user)

    def get_task(self, user: str, task_id: int) -> Task:
        for task in self.list_tasks(user):
            if task.id == task_id:
                return task
        raise NotFound(f"task #{task_id} not found")

    def add_task(self, user: str, label: str) -> Task:
        label = check_label(label)
        with self._transaction() as data:
            task = Task(id=self._next_id(data, "tasks"), label=label, user=user)
            data["tasks"].append(task.to_record())
        logger.debug(f"Created task #{task.id} for {user}")
        return task

    def apply(
        self,
        user: str,
        change: TaskChange,
        location_ids: set[int] | None = None,
    ) -> None:
        with self._transaction() as data:
            index = self._index_of(data["tasks"], user, change.task_id, "task")
            remaining = [a for a in data["task_locations"] if a["task_id"] != change.task_id]

            if isinstance(change, Delete):
                del data["tasks"][index]
                data["task_locations"] = remaining
            else:
                if change.task.user != user:
                    raise PreconditionViolated(f"task #{change.task_id} belongs to another user")
                data["tasks"][index] = change.task.to_record()
                if location_ids is not None:
                    owned = {r["id"] for r in data["locations"] if r["username"] == user}
                    unknown = set(location_ids) - owned
                    if unknown:
                        raise NotFound(f"location #{min(unknown)} not found")
                    data["task_locations"] = remaining + [
                        {"task_id": change.task_id, "location_id": location_id}
                        for location_id in sorted(location_ids)
                    ]
        logger.debug(f"Applied {type(change).__name__} to task #{change.task_id} for {user}")

    # ============== Locations ==============

    def list_locations(self, user: str) -> list[Location]:
        with self._read() as data:
            return self._parse_locations(data, user)

    def get_location(self, user: str, location_id: int) -> Location:
        for location in self.list_locations(user):
            if location.id == location_id:
                return location
        raise NotFound(f"location #{location_id} not found")

    def add_location(self, user: str, label: str) -> Location:
        label = check_label(label)
        with self._transaction() as data:
            location = Location(id=self._next_id(data, "locations"), label=label, user=user)
            data["locations"].append(location.to_record())
        logger.debug(f"Created location #{location.id} for {user}")
        return location

    def rename_location(self, user: str, location_id: int, label: str) -> Location:
        label = check_label(label)
        with self._transaction() as data:
            index = self._index_of(data["locations"], user, location_id, "location")
            location = Location(id=location_id, label=label, user=user)
            data["locations"][index] = location.to_record()
        return location

    def delete_location(self, user: str, location_id: int) -> None:
        with self._transaction() as data:
            index = self._index_of(data["locations"], user, location_id, "location")
            del data["locations"][index]
            data["task_locations"] = [
                a for a in data["task_locations"] if a["location_id"] != location_id
            ]
        logger.debug(f"Deleted location #{location_id} for {user}")

    # ============== Associations ==============

    def list_task_locations(self, user: str) -> list[TaskLocation]:
        with self._read() as data:
            task_ids = {r["id"] for r in data["tasks"] if r["username"] == user}
            return [
                TaskLocation(task_id=a["task_id"], location_id=a["location_id"])
                for a in data["task_locations"]
                if a["task_id"] in task_ids
            ]
