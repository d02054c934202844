"""Shell process execution for workflow steps.

Every externally visible action of a task (git, the coding agent, the test
command) goes through a ProcessRunner. Output is captured in full; there is
no retry and no timeout, callers that need a deadline wrap the call.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    stderr: str
    exit_code: int


class ProcessError(Exception):
    """Non-zero exit or spawn failure.

    `exit_code` is None when the process never started.
    """

    def __init__(
        self,
        message: str,
        *,
        stdout: str = "",
        stderr: str = "",
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code

    @property
    def output(self) -> str:
        return combine_output(self.stdout, self.stderr)


class ProcessRunner(Protocol):
    async def run(
        self,
        command: str,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
    ) -> ProcessResult: ...


class ShellProcessRunner:
    """Run commands through the system shell with asyncio subprocesses."""

    async def run(
        self,
        command: str,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
    ) -> ProcessResult:
        merged_env = {**os.environ, **(env or {})}
        logger.debug("process event=spawn cwd=%s command=%s", cwd, command)
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                env=merged_env,
            )
        except OSError as exc:
            raise ProcessError(f"Failed to start command: {exc}") from exc

        stdin_bytes = input_text.encode("utf-8") if input_text is not None else None
        try:
            stdout_bytes, stderr_bytes = await process.communicate(stdin_bytes)
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        exit_code = process.returncode if process.returncode is not None else -1
        logger.debug("process event=exit cwd=%s exit_code=%s command=%s", cwd, exit_code, command)
        if exit_code != 0:
            raise ProcessError(
                f"Command failed with code {exit_code}",
                stdout=stdout,
                stderr=stderr,
                exit_code=exit_code,
            )
        return ProcessResult(stdout=stdout, stderr=stderr, exit_code=exit_code)


def combine_output(stdout: str, stderr: str) -> str:
    """Join both streams the way a terminal would show them."""
    if stdout and stderr:
        return stdout.rstrip("\n") + "\n" + stderr
    return stdout or stderr
