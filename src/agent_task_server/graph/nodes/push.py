"""Push node: publish the branch with upstream tracking."""

from __future__ import annotations

from pathlib import Path

from agent_task_server.errors import PushFailedError
from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.state import WorkflowState
from agent_task_server.runner import ProcessError, git


async def run(state: WorkflowState, deps: WorkflowDeps) -> WorkflowState:
    task = deps.task(state)
    branch = task.config.branch
    repo_dir = Path(state["repo_dir"])
    commit_hash = state.get("commit_hash")

    journal = deps.begin(task, "pushing", "Pushing to Remote", f"Step 6: Pushing to origin/{branch}")
    try:
        await deps.run(git.push(branch), repo_dir)
    except ProcessError as exc:
        raise PushFailedError(
            f"Push failed: commit {commit_hash} exists locally on branch {branch} "
            f"but is not on the remote ({exc.message})",
            stdout=exc.stdout,
            stderr=exc.stderr,
            exit_code=exc.exit_code,
            commit=commit_hash,
        ) from exc
    journal.log("Push successful")
    return {}
