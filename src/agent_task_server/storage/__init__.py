"""Task registry backends and models."""

from agent_task_server.storage.base import TaskStorage
from agent_task_server.storage.journal import TaskJournal
from agent_task_server.storage.memory import InMemoryTaskStorage
from agent_task_server.storage.models import (
    TaskConfig,
    TaskRecord,
    TaskResult,
    TaskStatus,
    TaskSummary,
    derive_repo_name,
    is_usable_repo_name,
)

__all__ = [
    "InMemoryTaskStorage",
    "TaskConfig",
    "TaskJournal",
    "TaskRecord",
    "TaskResult",
    "TaskStatus",
    "TaskStorage",
    "TaskSummary",
    "derive_repo_name",
    "is_usable_repo_name",
]
