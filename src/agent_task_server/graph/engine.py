"""Workflow engine: runs one task to a terminal state.

The engine is the only place that turns exceptions into terminal task state.
Nodes raise; the engine records `error`, `result` and the final log line.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from agent_task_server.config.settings import Settings
from agent_task_server.errors import INTERNAL_ERROR, PROCESS_FAILED, WorkflowError
from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.state import initial_state
from agent_task_server.graph.workflow import build_graph
from agent_task_server.runner import ProcessError, ProcessRunner
from agent_task_server.storage import TaskRecord, TaskResult, TaskStorage

logger = logging.getLogger(__name__)


class WorkflowEngine:
    def __init__(self, *, runner: ProcessRunner, storage: TaskStorage, settings: Settings) -> None:
        self.deps = WorkflowDeps(runner=runner, storage=storage, settings=settings)
        self.graph = build_graph(self.deps)
        self._repo_locks: dict[str, asyncio.Lock] = {}

    async def run(self, task_id: str) -> TaskRecord:
        task = self.deps.storage.get_task(task_id)
        if task is None:
            raise KeyError(f"Task {task_id} does not exist")

        logger.info(
            "task_run event=start task_id=%s repo=%s branch=%s",
            task_id,
            task.config.repo_name,
            task.config.branch,
        )
        try:
            async with self._repo_lock(task):
                await self.graph.ainvoke(initial_state(task_id))
        except WorkflowError as exc:
            self._fail(
                task,
                exc.message,
                error_code=exc.code,
                stdout=exc.stdout,
                stderr=exc.stderr,
                exit_code=exc.exit_code,
                commit=exc.commit,
            )
        except ProcessError as exc:
            self._fail(
                task,
                f"{task.step} failed: {exc.message}",
                error_code=PROCESS_FAILED,
                stdout=exc.stdout,
                stderr=exc.stderr,
                exit_code=exc.exit_code,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("task_run event=crash task_id=%s step=%s", task_id, task.step)
            self._fail(task, str(exc) or exc.__class__.__name__, error_code=INTERNAL_ERROR)

        logger.info(
            "task_run event=finished task_id=%s status=%s step=%s",
            task_id,
            task.status,
            task.step,
        )
        return task

    def _repo_lock(self, task: TaskRecord) -> contextlib.AbstractAsyncContextManager:
        """Serialize tasks sharing a working copy, unless disabled in settings."""
        if not self.deps.settings.serialize_repo_tasks:
            return contextlib.nullcontext()
        name = task.config.repo_name
        lock = self._repo_locks.setdefault(name, asyncio.Lock())
        if lock.locked():
            task.advance("queued", "Waiting for repository")
            self.deps.journal(task).log(f"Waiting for another task using repository {name}")
        return lock

    def _fail(
        self,
        task: TaskRecord,
        message: str,
        *,
        error_code: str,
        stdout: str | None = None,
        stderr: str | None = None,
        exit_code: int | None = None,
        commit: str | None = None,
    ) -> None:
        task.fail(
            message,
            TaskResult(
                success=False,
                message=message,
                error_code=error_code,
                stdout=stdout,
                stderr=stderr,
                exit_code=exit_code,
                commit=commit,
                branch=task.config.branch,
                repo=task.config.repo_name,
            ),
        )
        # The terminal state is already published; a broken log dir must not undo it.
        try:
            self.deps.journal(task).log(f"Error: {message}")
        except OSError:
            logger.exception("task_run event=journal_failed task_id=%s", task.id)
