"""Clone node: fresh clone, or fetch and hard-reset an existing working copy."""

from __future__ import annotations

from agent_task_server.errors import InvalidPathError
from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.state import WorkflowState
from agent_task_server.runner import ProcessError, git
from agent_task_server.storage import is_usable_repo_name


async def run(state: WorkflowState, deps: WorkflowDeps) -> WorkflowState:
    task = deps.task(state)
    config = task.config
    workspace = deps.settings.resolved_workspace()
    repo_dir = workspace / config.repo_name

    journal = deps.begin(
        task, "cloning", "Clone/Update Repository", f"Step 1: Cloning/updating {config.repo}"
    )
    if repo_dir.parent != workspace or not is_usable_repo_name(repo_dir.name):
        raise InvalidPathError(f"Repository directory {repo_dir} is outside workspace {workspace}")
    workspace.mkdir(parents=True, exist_ok=True)

    if (repo_dir / ".git").exists():
        # Local divergence is discarded so the agent always starts from the remote tip.
        journal.log("Repository exists, fetching updates...")
        await deps.run(git.fetch_all(), repo_dir)
        try:
            await deps.run(git.hard_reset(f"origin/{config.branch}"), repo_dir)
        except ProcessError:
            if not config.create_branch:
                raise
            journal.log(
                f"origin/{config.branch} does not exist yet, resetting to the remote default branch"
            )
            await deps.run(git.hard_reset("origin/HEAD"), repo_dir)
        journal.log("Repository updated")
    else:
        journal.log("Cloning repository...")
        await deps.run(git.clone(config.repo, repo_dir), workspace)
        journal.log("Repository cloned")

    return {"repo_dir": str(repo_dir), "work_dir": str(repo_dir)}
