"""Develop node: run the coding agent and classify its outcome.

The exit code alone does not decide the outcome. Output that mentions
credits, quota, billing or rate limits ends the task as quota exhaustion
even when the agent exits 0, because the fix is an operator action (add
credit) rather than a code change.
"""

from __future__ import annotations

import shlex
from pathlib import Path

from agent_task_server.config.settings import Settings
from agent_task_server.errors import QuotaExhaustedError, WorkflowError
from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.quota import detect_quota_exhaustion
from agent_task_server.graph.state import WorkflowState
from agent_task_server.runner import ProcessError, combine_output

OUTPUT_PREVIEW_CHARS = 500


async def run(state: WorkflowState, deps: WorkflowDeps) -> WorkflowState:
    task = deps.task(state)
    config = task.config
    work_dir = Path(state["work_dir"])

    journal = deps.begin(
        task,
        "developing",
        "Running Coding Agent",
        f"Step 3: Running coding agent with task: {config.task}",
    )

    command = build_agent_command(deps.settings, model=config.model)
    failure: ProcessError | None = None
    try:
        result = await deps.run(command, work_dir, input_text=config.task)
        stdout, stderr, exit_code = result.stdout, result.stderr, result.exit_code
    except ProcessError as exc:
        failure = exc
        stdout, stderr, exit_code = exc.stdout, exc.stderr, exc.exit_code

    output = combine_output(stdout, stderr)
    task.agent_output = output

    matched = detect_quota_exhaustion(output, deps.settings.quota_patterns)
    if matched is not None:
        journal.log(f"QUOTA EXHAUSTED: agent output matched '{matched}'")
        raise QuotaExhaustedError(
            "Coding agent reported exhausted credits or quota; check account billing and add credits",
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
        )
    if failure is not None:
        journal.log(f"Coding agent exited with code: {failure.exit_code}")
        raise WorkflowError(
            f"Coding agent failed: {failure.message}",
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
        )

    journal.log("Coding agent completed")
    journal.log(f"Output: {output[:OUTPUT_PREVIEW_CHARS]}...")
    return {}


def build_agent_command(settings: Settings, *, model: str | None = None) -> str:
    command = settings.agent_command
    selected_model = model or settings.agent_model
    if selected_model:
        command = f"{command} --model {shlex.quote(selected_model)}"
    return command
