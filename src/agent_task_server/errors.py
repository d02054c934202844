"""Workflow failure types and the error codes reported to operators."""

from __future__ import annotations

PROCESS_FAILED = "PROCESS_FAILED"
TESTS_FAILED = "TESTS_FAILED"
QUOTA_EXHAUSTED = "QUOTA_EXHAUSTED"
PUSH_FAILED = "PUSH_FAILED"
INVALID_PATH = "INVALID_PATH"
INTERNAL_ERROR = "INTERNAL_ERROR"

# CLI exit codes. Quota exhaustion gets its own code so operators can alert on it.
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_QUOTA_EXHAUSTED = 100


class WorkflowError(Exception):
    """A step-local failure that ends the task."""

    code = PROCESS_FAILED

    def __init__(
        self,
        message: str,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
        exit_code: int | None = None,
        commit: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        self.commit = commit


class QuotaExhaustedError(WorkflowError):
    """Agent output reports billing, credit or rate-limit exhaustion."""

    code = QUOTA_EXHAUSTED


class TestsFailedError(WorkflowError):
    """Test command failed and the task did not opt into committing anyway."""

    __test__ = False
    code = TESTS_FAILED


class PushFailedError(WorkflowError):
    """Commit exists locally but could not be pushed."""

    code = PUSH_FAILED


class InvalidPathError(WorkflowError):
    code = INVALID_PATH


def exit_code_for(error_code: str | None) -> int:
    if error_code is None:
        return EXIT_SUCCESS
    if error_code == QUOTA_EXHAUSTED:
        return EXIT_QUOTA_EXHAUSTED
    return EXIT_FAILURE
