from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from agent_task_server.api.main import create_app
from agent_task_server.config.settings import Settings
from agent_task_server.graph.engine import WorkflowEngine
from agent_task_server.runner import ProcessError, ProcessResult
from agent_task_server.storage import InMemoryTaskStorage, TaskConfig

IDENTITY_ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_ANON_KEY",
    "WORKSPACE",
    "API_PORT",
    "GIT_USER_NAME",
    "GIT_USER_EMAIL",
)


@dataclass
class RecordedCall:
    command: str
    cwd: Path
    env: dict[str, str]
    input_text: str | None


@dataclass
class ScriptedOutcome:
    fragment: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    spawn_error: bool = False


@dataclass
class FakeProcessRunner:
    """Test double for ShellProcessRunner.

    Outcomes are matched by substring, most recently added first. Unmatched
    commands succeed with empty output, except `git status --porcelain`
    (reports one modified file) and `git rev-parse --short HEAD` (abc1234).
    When `gate` is set to an unset threading.Event, every call waits for it.
    """

    calls: list[RecordedCall] = field(default_factory=list)
    outcomes: list[ScriptedOutcome] = field(default_factory=list)
    gate: threading.Event | None = None

    def on(self, fragment: str, **outcome) -> FakeProcessRunner:
        self.outcomes.insert(0, ScriptedOutcome(fragment=fragment, **outcome))
        return self

    def commands(self) -> list[str]:
        return [call.command for call in self.calls]

    def ran(self, fragment: str) -> bool:
        return any(fragment in command for command in self.commands())

    async def run(
        self,
        command: str,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
    ) -> ProcessResult:
        self.calls.append(RecordedCall(command, Path(cwd), dict(env or {}), input_text))
        while self.gate is not None and not self.gate.is_set():
            await asyncio.sleep(0.01)

        outcome = self._match(command)
        if outcome.spawn_error:
            raise ProcessError("Failed to start command: [Errno 2] No such file or directory")
        if outcome.exit_code != 0:
            raise ProcessError(
                f"Command failed with code {outcome.exit_code}",
                stdout=outcome.stdout,
                stderr=outcome.stderr,
                exit_code=outcome.exit_code,
            )
        return ProcessResult(stdout=outcome.stdout, stderr=outcome.stderr, exit_code=0)

    def _match(self, command: str) -> ScriptedOutcome:
        for outcome in self.outcomes:
            if outcome.fragment in command:
                return outcome
        if "git status --porcelain" in command:
            return ScriptedOutcome(fragment=command, stdout=" M README.md\n")
        if "git rev-parse --short HEAD" in command:
            return ScriptedOutcome(fragment=command, stdout="abc1234\n")
        return ScriptedOutcome(fragment=command)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in IDENTITY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    return tmp_path / "workspace"


@pytest.fixture
def settings(workspace: Path) -> Settings:
    return Settings(
        _env_file=None,
        workspace=str(workspace),
        agent_command="agent --print",
        allow_unauthenticated=True,
    )


@pytest.fixture
def runner() -> FakeProcessRunner:
    return FakeProcessRunner()


@pytest.fixture
def storage() -> InMemoryTaskStorage:
    return InMemoryTaskStorage()


@pytest.fixture
def engine(runner: FakeProcessRunner, storage: InMemoryTaskStorage, settings: Settings) -> WorkflowEngine:
    return WorkflowEngine(runner=runner, storage=storage, settings=settings)


@pytest.fixture
def make_config():
    def _make(**overrides) -> TaskConfig:
        values = {"repo": "https://example.com/u/r.git", "task": "add README", "branch": "main"}
        values.update(overrides)
        return TaskConfig(**values)

    return _make


@pytest.fixture
def client(
    runner: FakeProcessRunner,
    storage: InMemoryTaskStorage,
    settings: Settings,
) -> Iterator[TestClient]:
    app = create_app(storage=storage, settings_override=settings, runner=runner)
    with TestClient(app) as test_client:
        yield test_client


def wait_for_terminal(client: TestClient, task_id: str, *, timeout_s: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout_s
    while True:
        body = client.get(f"/task/{task_id}").json()
        if body["status"] in ("completed", "failed"):
            return body
        if time.monotonic() > deadline:
            raise AssertionError(f"task {task_id} still {body['status']} after {timeout_s}s")
        time.sleep(0.02)


@pytest.fixture
def poll_task():
    return wait_for_terminal
