"""Checkout node: resolve the requested branch and the agent's working directory."""

from __future__ import annotations

from pathlib import Path

from agent_task_server.errors import InvalidPathError
from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.state import WorkflowState
from agent_task_server.runner import ProcessError, git


async def run(state: WorkflowState, deps: WorkflowDeps) -> WorkflowState:
    task = deps.task(state)
    config = task.config
    branch = config.branch
    repo_dir = Path(state["repo_dir"])

    journal = deps.begin(task, "checkout", "Checkout Branch", f"Step 2: Checking out branch {branch}")

    if config.create_branch:
        try:
            await deps.run(git.create_branch(branch), repo_dir)
            journal.log(f"Created and checked out new branch: {branch}")
        except ProcessError:
            await deps.run(git.checkout(branch), repo_dir)
            journal.log(f"Checked out existing branch: {branch}")
    else:
        try:
            await deps.run(git.checkout(branch), repo_dir)
        except ProcessError:
            await deps.run(git.create_branch(branch, f"origin/{branch}"), repo_dir)
        journal.log(f"Checked out branch: {branch}")

    work_dir = repo_dir
    if config.path:
        work_dir = (repo_dir / config.path).resolve()
        if not work_dir.is_relative_to(repo_dir.resolve()) or not work_dir.is_dir():
            raise InvalidPathError(f"Subpath '{config.path}' does not exist in repository")
        journal.log(f"Working directory: {work_dir}")

    return {"work_dir": str(work_dir)}
