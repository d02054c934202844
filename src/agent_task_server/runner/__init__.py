"""External process execution."""

from agent_task_server.runner.process import (
    ProcessError,
    ProcessResult,
    ProcessRunner,
    ShellProcessRunner,
    combine_output,
)

__all__ = [
    "ProcessError",
    "ProcessResult",
    "ProcessRunner",
    "ShellProcessRunner",
    "combine_output",
]
