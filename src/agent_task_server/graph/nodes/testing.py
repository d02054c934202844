"""Testing node: run the caller's test command, if one was given."""

from __future__ import annotations

from pathlib import Path

from agent_task_server.errors import TestsFailedError
from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.state import WorkflowState
from agent_task_server.runner import ProcessError, combine_output


async def run(state: WorkflowState, deps: WorkflowDeps) -> WorkflowState:
    task = deps.task(state)
    config = task.config
    repo_dir = Path(state["repo_dir"])
    test_command = config.test_command or ""

    journal = deps.begin(task, "testing", "Running Tests", f"Step 4: Running tests: {test_command}")
    try:
        result = await deps.run(test_command, repo_dir)
    except ProcessError as exc:
        task.test_output = combine_output(exc.stdout, exc.stderr)
        journal.log(f"Tests failed: {exc.message}")
        if not config.commit_on_test_failure:
            raise TestsFailedError(
                "Tests failed, aborting commit",
                stdout=exc.stdout,
                stderr=exc.stderr,
                exit_code=exc.exit_code,
            ) from exc
        journal.log("Continuing despite test failure (commitOnTestFailure=true)")
        return {}

    task.test_output = result.stdout
    journal.log("Tests passed")
    return {}
