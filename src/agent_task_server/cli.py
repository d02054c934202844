"""Command-line entry points: serve the HTTP API or run one task in the foreground.

`run` exits 0 on success, 1 on any failure and 100 when the coding agent
reported exhausted credits or quota.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

import uvicorn
from pydantic import ValidationError

from agent_task_server.api.main import create_app
from agent_task_server.config.settings import Settings, get_settings
from agent_task_server.errors import EXIT_FAILURE, exit_code_for
from agent_task_server.graph.engine import WorkflowEngine
from agent_task_server.runner import ShellProcessRunner
from agent_task_server.storage import InMemoryTaskStorage, TaskConfig

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="agent-task-server",
        description="Drive a coding agent through clone, develop, test, commit and push.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    run = commands.add_parser("run", help="Run a single task and exit with its outcome.")
    run.add_argument("--repo", required=True, help="Git repository URL.")
    run.add_argument("--task", required=True, help="Task description passed to the coding agent.")
    run.add_argument("--branch", default=None)
    run.add_argument("--create-branch", action="store_true")
    run.add_argument("--path", default=None, help="Subdirectory of the repository the agent works in.")
    run.add_argument("--model", default=None, help="Model passed to the coding agent.")
    run.add_argument("--test-command", default=None)
    run.add_argument("--commit-message", default=None)
    run.add_argument(
        "--commit-on-test-failure",
        action="store_true",
        help="Commit and push even when the test command fails.",
    )
    return parser.parse_args(argv)


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def serve(settings: Settings, *, host: str | None = None, port: int | None = None) -> None:
    app = create_app(settings_override=settings)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.resolved_port(),
        log_level=settings.log_level.lower(),
    )


async def run_task(config: TaskConfig, settings: Settings) -> int:
    storage = InMemoryTaskStorage()
    engine = WorkflowEngine(runner=ShellProcessRunner(), storage=storage, settings=settings)
    task = storage.create_task(config)
    await engine.run(task.id)

    payload = task.result.model_dump(mode="json", by_alias=True, exclude_none=True) if task.result else {}
    print(json.dumps({"taskId": task.id, "status": task.status, **payload}, indent=2))
    if task.status != "completed":
        return exit_code_for(task.result.error_code if task.result else None) or EXIT_FAILURE
    return exit_code_for(None)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = get_settings()
    _configure_logging(settings)

    if args.command == "serve":
        serve(settings, host=args.host, port=args.port)
        return

    try:
        config = TaskConfig(
            repo=args.repo,
            task=args.task,
            branch=args.branch or settings.default_branch,
            create_branch=args.create_branch,
            test_command=args.test_command,
            commit_message=args.commit_message,
            commit_on_test_failure=args.commit_on_test_failure,
            path=args.path,
            model=args.model,
        )
    except ValidationError as exc:
        logger.error("cli event=invalid_task error=%s", exc.errors()[0]["msg"])
        sys.exit(EXIT_FAILURE)
    sys.exit(asyncio.run(run_task(config, settings)))


if __name__ == "__main__":
    main()
