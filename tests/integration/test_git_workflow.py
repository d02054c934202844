"""Drives the real workflow against a local bare repository.

The coding agent is replaced by a shell command that writes the task text to
a file, so the run needs nothing beyond `git`.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from agent_task_server.config.settings import Settings
from agent_task_server.graph.engine import WorkflowEngine
from agent_task_server.runner import ShellProcessRunner
from agent_task_server.storage import InMemoryTaskStorage, TaskConfig

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

GIT_IDENTITY = ["-c", "user.name=Seed", "-c", "user.email=seed@example.com"]


def _git(cwd: Path, *args: str) -> str:
    completed = subprocess.run(  # noqa: S603
        ["git", *args],
        cwd=str(cwd),
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout.strip()


@pytest.fixture
def origin(tmp_path: Path) -> Path:
    bare = tmp_path / "remote" / "Widgets.git"
    bare.mkdir(parents=True)
    _git(bare, "init", "--bare")
    _git(bare, "symbolic-ref", "HEAD", "refs/heads/main")

    seed = tmp_path / "seed"
    _git(tmp_path, "clone", str(bare), str(seed))
    (seed / "README.md").write_text("# widgets\n", encoding="utf-8")
    _git(seed, "add", "-A")
    _git(seed, *GIT_IDENTITY, "commit", "-m", "initial")
    _git(seed, "push", "origin", "HEAD:refs/heads/main")
    return bare


@pytest.fixture
def real_engine(tmp_path: Path):
    settings = Settings(
        _env_file=None,
        workspace=str(tmp_path / "workspace"),
        agent_command="cat > AGENT_NOTES.md",
        git_user_name="Task Bot",
        git_user_email="bot@example.com",
    )
    storage = InMemoryTaskStorage()
    return WorkflowEngine(runner=ShellProcessRunner(), storage=storage, settings=settings), storage


async def test_change_is_committed_and_pushed_then_rerun_is_a_no_op(origin: Path, real_engine, tmp_path: Path):
    engine, storage = real_engine
    config = TaskConfig(repo=str(origin), task="document the widgets", branch="main")

    first = storage.create_task(config)
    await engine.run(first.id)

    assert first.status == "completed", first.error
    assert first.result.repo == "widgets"
    assert first.result.commit == _git(origin, "rev-parse", "--short", "main")
    assert _git(origin, "show", "main:AGENT_NOTES.md") == "document the widgets"
    assert _git(origin, "log", "-1", "--format=%an") == "Task Bot"
    assert "Task: document the widgets" in _git(origin, "log", "-1", "--format=%B")

    second = storage.create_task(config)
    await engine.run(second.id)

    assert second.status == "completed", second.error
    assert second.step == "Completed (no changes)"
    assert second.result.commit is None
    assert (tmp_path / "workspace" / "widgets" / ".git").is_dir()


async def test_new_branch_is_pushed_to_origin(origin: Path, real_engine):
    engine, storage = real_engine
    config = TaskConfig(repo=str(origin), task="branch work", branch="feature/notes", create_branch=True)

    task = storage.create_task(config)
    await engine.run(task.id)

    assert task.status == "completed", task.error
    assert _git(origin, "rev-parse", "--short", "feature/notes") == task.result.commit


async def test_failing_tests_leave_origin_untouched(origin: Path, real_engine):
    engine, storage = real_engine
    before = _git(origin, "rev-parse", "main")
    config = TaskConfig(repo=str(origin), task="break things", test_command="exit 1")

    task = storage.create_task(config)
    await engine.run(task.id)

    assert task.status == "failed"
    assert task.result.error_code == "TESTS_FAILED"
    assert _git(origin, "rev-parse", "main") == before
