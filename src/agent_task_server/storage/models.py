"""Task record models shared by the API, the workflow engine and storage."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

TaskStatus = Literal[
    "queued",
    "cloning",
    "checkout",
    "developing",
    "testing",
    "committing",
    "pushing",
    "completed",
    "failed",
]

# Forward order of the workflow. `failed` sits outside it and is reachable
# from every non-terminal status.
STATUS_ORDER: tuple[TaskStatus, ...] = (
    "queued",
    "cloning",
    "checkout",
    "developing",
    "testing",
    "committing",
    "pushing",
    "completed",
)
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})


class CamelModel(BaseModel):
    """JSON bodies use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskConfig(CamelModel):
    """Immutable snapshot of a task request, validated once at the boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    repo: str = Field(min_length=1)
    task: str = Field(min_length=1)
    branch: str = Field(default="main", min_length=1)
    create_branch: bool = False
    test_command: str | None = None
    commit_message: str | None = None
    commit_on_test_failure: bool = False
    # Subdirectory of the working copy the agent runs in.
    path: str | None = None
    model: str | None = None

    @model_validator(mode="after")
    def _repo_names_a_directory(self) -> TaskConfig:
        if not is_usable_repo_name(derive_repo_name(self.repo)):
            raise ValueError(f"Cannot derive a repository directory name from '{self.repo}'")
        return self

    @property
    def repo_name(self) -> str:
        return derive_repo_name(self.repo)


class TaskResult(CamelModel):
    success: bool
    message: str
    commit: str | None = None
    branch: str | None = None
    repo: str | None = None
    error_code: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    exit_code: int | None = None


class TaskRecord(CamelModel):
    """Mutable task state. The workflow engine updates it in place."""

    id: str
    config: TaskConfig
    status: TaskStatus = "queued"
    step: str = "Initializing"
    logs: list[str] = Field(default_factory=list)
    agent_output: str | None = Field(default=None, alias="claudeOutput")
    test_output: str | None = None
    result: TaskResult | None = None
    error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def advance(self, status: TaskStatus, step: str) -> None:
        """Move forward along STATUS_ORDER. Staying on the same status is allowed."""
        if self.is_terminal:
            raise ValueError(f"Task {self.id} is already {self.status}")
        if status == "failed":
            raise ValueError("Use fail() to mark a task as failed")
        if STATUS_ORDER.index(status) < STATUS_ORDER.index(self.status):
            raise ValueError(f"Task {self.id} cannot move from {self.status} back to {status}")
        self.status = status
        self.step = step

    def complete(self, result: TaskResult, step: str = "Completed") -> None:
        self.advance("completed", step)
        self.result = result

    def fail(self, message: str, result: TaskResult) -> None:
        if self.is_terminal:
            raise ValueError(f"Task {self.id} is already {self.status}")
        self.status = "failed"
        self.step = f"Failed: {self.step}"
        self.error = message
        self.result = result

    def summary(self) -> TaskSummary:
        return TaskSummary(
            id=self.id,
            status=self.status,
            step=self.step,
            repo=self.config.repo_name,
            created_at=self.created_at,
        )


class TaskSummary(CamelModel):
    """List projection: no logs and no captured output."""

    id: str
    status: TaskStatus
    step: str
    repo: str
    created_at: datetime


def derive_repo_name(repo_url: str) -> str:
    """Working-copy directory name: URL basename without `.git`, lower-cased."""
    name = PurePosixPath(repo_url.strip().rstrip("/")).name
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name.lower()


def is_usable_repo_name(name: str) -> bool:
    """A working copy must be a direct child of the workspace."""
    return name not in ("", ".", "..")
