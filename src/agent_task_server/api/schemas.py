"""Request and response bodies of the HTTP API. All keys are camelCase."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from agent_task_server.storage.models import (
    CamelModel,
    TaskConfig,
    TaskRecord,
    TaskResult,
    TaskStatus,
    TaskSummary,
)


class TaskRequest(CamelModel):
    """Submission body.

    `repo` and `task` are optional here so the route can answer a missing
    field with 400 instead of FastAPI's 422.
    """

    repo: str | None = None
    task: str | None = None
    branch: str | None = None
    create_branch: bool = False
    test_command: str | None = None
    commit_message: str | None = None
    commit_on_test_failure: bool = False
    path: str | None = None
    model: str | None = None

    def missing_field(self) -> str | None:
        for name in ("repo", "task"):
            value = getattr(self, name)
            if value is None or not value.strip():
                return name
        return None

    def to_config(self, *, default_branch: str) -> TaskConfig:
        return TaskConfig(
            repo=self.repo.strip(),
            task=self.task,
            branch=self.branch or default_branch,
            create_branch=self.create_branch,
            test_command=self.test_command or None,
            commit_message=self.commit_message or None,
            commit_on_test_failure=self.commit_on_test_failure,
            path=self.path or None,
            model=self.model or None,
        )


class TaskAccepted(CamelModel):
    task_id: str
    status: Literal["queued"] = "queued"
    message: str = "Task started"
    status_url: str


class TaskDetail(CamelModel):
    id: str
    status: TaskStatus
    step: str
    created_at: datetime
    logs: list[str]
    agent_output: str | None = Field(default=None, alias="claudeOutput")
    test_output: str | None = None
    result: TaskResult | None = None
    error: str | None = None

    @classmethod
    def from_record(cls, record: TaskRecord) -> TaskDetail:
        return cls(
            id=record.id,
            status=record.status,
            step=record.step,
            created_at=record.created_at,
            logs=list(record.logs),
            agent_output=record.agent_output,
            test_output=record.test_output,
            result=record.result,
            error=record.error,
        )


class TaskList(CamelModel):
    tasks: list[TaskSummary]


class RepoList(CamelModel):
    repos: list[dict[str, Any]]


class HealthResponse(CamelModel):
    status: str = "healthy"
    version: str
    timestamp: datetime
    active_tasks: int
    auth_enabled: bool


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class LoginResponse(CamelModel):
    # Session fields keep the provider's snake_case names.
    access_token: str = Field(alias="access_token")
    refresh_token: str | None = Field(default=None, alias="refresh_token")
    expires_in: int | None = Field(default=None, alias="expires_in")
    user: dict[str, Any] | None = None


class AuthCheck(CamelModel):
    authenticated: bool
    is_admin: bool
    user: dict[str, Any] | None = None
