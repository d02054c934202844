"""In-memory task registry, scoped to the lifetime of the server process."""

from __future__ import annotations

import time
from uuid import uuid4

from agent_task_server.storage.models import TaskConfig, TaskRecord


class InMemoryTaskStorage:
    """Holds every task submitted since startup. Nothing is evicted.

    Records are returned by reference: the workflow engine mutates them in
    place and readers see the latest fields without a separate update call.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, TaskRecord] = {}

    def create_task(self, config: TaskConfig) -> TaskRecord:
        task_id = _new_task_id()
        while task_id in self._tasks:
            task_id = _new_task_id()
        record = TaskRecord(id=task_id, config=config)
        self._tasks[task_id] = record
        return record

    def get_task(self, task_id: str) -> TaskRecord | None:
        return self._tasks.get(task_id)

    def list_tasks(self) -> list[TaskRecord]:
        return list(self._tasks.values())

    def count_active(self) -> int:
        return sum(1 for record in self._tasks.values() if not record.is_terminal)


def _new_task_id() -> str:
    return f"task_{int(time.time() * 1000)}_{uuid4().hex[:9]}"
