"""Storage interface for the task registry."""

from __future__ import annotations

from typing import Protocol

from agent_task_server.storage.models import TaskConfig, TaskRecord


class TaskStorage(Protocol):
    def create_task(self, config: TaskConfig) -> TaskRecord: ...

    def get_task(self, task_id: str) -> TaskRecord | None: ...

    def list_tasks(self) -> list[TaskRecord]: ...

    def count_active(self) -> int: ...
