"""Finalize node: publish the terminal success payload."""

from __future__ import annotations

from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.state import WorkflowState
from agent_task_server.storage import TaskResult


async def run(state: WorkflowState, deps: WorkflowDeps) -> WorkflowState:
    task = deps.task(state)
    config = task.config
    journal = deps.journal(task)

    if not state.get("has_changes"):
        journal.log("Workflow completed, no changes were made")
        task.complete(
            TaskResult(
                success=True,
                message="Task completed but no changes were made",
                commit=None,
                branch=config.branch,
                repo=config.repo_name,
            ),
            step="Completed (no changes)",
        )
        return {}

    journal.log("Workflow completed successfully")
    task.complete(
        TaskResult(
            success=True,
            message="Workflow completed successfully",
            commit=state.get("commit_hash"),
            branch=config.branch,
            repo=config.repo_name,
        )
    )
    return {}
