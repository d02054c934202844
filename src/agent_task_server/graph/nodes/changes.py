"""Change detection: decides between committing and finishing with no changes."""

from __future__ import annotations

from pathlib import Path

from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.state import WorkflowState
from agent_task_server.runner import git


async def run(state: WorkflowState, deps: WorkflowDeps) -> WorkflowState:
    task = deps.task(state)
    repo_dir = Path(state["repo_dir"])

    journal = deps.begin(task, "developing", "Checking for Changes", "Checking for changes...")
    result = await deps.run(git.status_porcelain(), repo_dir)
    # Staged, unstaged and untracked entries all show up in porcelain output.
    has_changes = bool(result.stdout.strip())
    journal.log("Changes detected" if has_changes else "No changes to commit")
    return {"has_changes": has_changes}
