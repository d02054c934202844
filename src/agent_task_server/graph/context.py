"""Collaborators shared by every workflow node."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from agent_task_server.config.settings import Settings
from agent_task_server.graph.state import WorkflowState
from agent_task_server.runner import ProcessResult, ProcessRunner
from agent_task_server.runner import git
from agent_task_server.storage import TaskJournal, TaskRecord, TaskStatus, TaskStorage


@dataclass
class WorkflowDeps:
    runner: ProcessRunner
    storage: TaskStorage
    settings: Settings

    def task(self, state: WorkflowState) -> TaskRecord:
        record = self.storage.get_task(state["task_id"])
        if record is None:
            raise KeyError(f"Task {state['task_id']} does not exist")
        return record

    def journal(self, task: TaskRecord) -> TaskJournal:
        return TaskJournal(task, self.settings.resolved_log_dir())

    def begin(self, task: TaskRecord, status: TaskStatus, step: str, message: str) -> TaskJournal:
        """Publish the new status and step, then log, before any process runs."""
        task.advance(status, step)
        journal = self.journal(task)
        journal.log(message)
        return journal

    def process_env(self) -> dict[str, str]:
        return git.identity_env(
            self.settings.resolved_git_user_name(),
            self.settings.resolved_git_user_email(),
        )

    async def run(self, command: str, cwd: Path, input_text: str | None = None) -> ProcessResult:
        return await self.runner.run(command, cwd, env=self.process_env(), input_text=input_text)
