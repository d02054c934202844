"""Commit node: stage everything and record the short commit hash."""

from __future__ import annotations

from pathlib import Path

from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.state import WorkflowState
from agent_task_server.runner import git
from agent_task_server.storage import TaskConfig

SUBJECT_TASK_CHARS = 50


async def run(state: WorkflowState, deps: WorkflowDeps) -> WorkflowState:
    task = deps.task(state)
    config = task.config
    repo_dir = Path(state["repo_dir"])

    journal = deps.begin(task, "committing", "Committing Changes", "Step 5: Committing changes...")
    message = config.commit_message or default_commit_message(
        config, attribution=deps.settings.commit_attribution
    )
    await deps.run(git.add_all(), repo_dir)
    await deps.run(git.commit(message), repo_dir)
    head = await deps.run(git.short_head(), repo_dir)
    commit_hash = head.stdout.strip()
    journal.log(f"Committed: {commit_hash}")
    return {"commit_hash": commit_hash}


def default_commit_message(config: TaskConfig, *, attribution: str) -> str:
    return (
        f"feat: {config.task[:SUBJECT_TASK_CHARS]}\n"
        "\n"
        f"{attribution}\n"
        "\n"
        f"Task: {config.task}"
    )
