from __future__ import annotations

import re

import pytest
from pydantic import ValidationError

from agent_task_server.graph.nodes.commit import default_commit_message
from agent_task_server.storage import InMemoryTaskStorage, TaskConfig, TaskResult, derive_repo_name


@pytest.mark.parametrize(
    ("url", "name"),
    [
        ("https://example.com/u/r.git", "r"),
        ("https://github.com/Org/My-Service", "my-service"),
        ("git@github.com:org/Tools.git", "tools"),
        ("https://example.com/u/r.git/", "r"),
    ],
)
def test_repo_name_is_basename_without_extension(url: str, name: str) -> None:
    assert derive_repo_name(url) == name


def test_config_reads_camel_case_and_is_immutable() -> None:
    config = TaskConfig.model_validate(
        {
            "repo": "https://example.com/u/r.git",
            "task": "add README",
            "createBranch": True,
            "testCommand": "npm test",
            "commitOnTestFailure": True,
        }
    )

    assert config.branch == "main"
    assert config.create_branch is True
    assert config.test_command == "npm test"
    with pytest.raises(ValidationError):
        config.branch = "other"


def test_config_requires_repo_and_task() -> None:
    with pytest.raises(ValidationError):
        TaskConfig(repo="", task="add README")


@pytest.mark.parametrize(
    "repo",
    ["https://example.com/u/..", "https://example.com/u/.git", "/"],
)
def test_config_rejects_repos_without_a_directory_name(repo: str) -> None:
    with pytest.raises(ValidationError, match="Cannot derive a repository directory name"):
        TaskConfig(repo=repo, task="add README")


def test_storage_assigns_unique_ids_and_tracks_active_tasks() -> None:
    storage = InMemoryTaskStorage()
    config = TaskConfig(repo="https://example.com/u/r.git", task="add README")

    first = storage.create_task(config)
    second = storage.create_task(config)

    assert first.id != second.id
    assert re.fullmatch(r"task_\d+_[0-9a-f]{9}", first.id)
    assert first.status == "queued"
    assert first.step == "Initializing"
    assert first.logs == []
    assert storage.get_task(first.id) is first
    assert storage.get_task("task_0_nope") is None
    assert storage.count_active() == 2

    first.complete(TaskResult(success=True, message="done"))

    assert storage.count_active() == 1
    assert [task.id for task in storage.list_tasks()] == [first.id, second.id]


def test_status_only_moves_forward() -> None:
    task = InMemoryTaskStorage().create_task(TaskConfig(repo="r.git", task="t"))

    task.advance("cloning", "Clone/Update Repository")
    task.advance("developing", "Running Coding Agent")
    task.advance("developing", "Checking for Changes")

    with pytest.raises(ValueError):
        task.advance("checkout", "Checkout Branch")
    with pytest.raises(ValueError):
        task.advance("failed", "oops")


def test_fail_records_error_and_last_step() -> None:
    task = InMemoryTaskStorage().create_task(TaskConfig(repo="r.git", task="t"))
    task.advance("testing", "Running Tests")

    task.fail("Tests failed, aborting commit", TaskResult(success=False, message="Tests failed, aborting commit"))

    assert task.status == "failed"
    assert task.step == "Failed: Running Tests"
    assert task.error == "Tests failed, aborting commit"
    with pytest.raises(ValueError):
        task.fail("again", TaskResult(success=False, message="again"))


def test_record_serializes_with_camel_case_keys() -> None:
    task = InMemoryTaskStorage().create_task(TaskConfig(repo="r.git", task="t"))
    task.agent_output = "done"

    payload = task.model_dump(mode="json", by_alias=True)

    assert payload["claudeOutput"] == "done"
    assert "createdAt" in payload
    assert payload["config"]["commitOnTestFailure"] is False


def test_default_commit_message_embeds_task_and_attribution() -> None:
    config = TaskConfig(repo="r.git", task="Add a README.md file with project documentation and badges")

    message = default_commit_message(config, attribution="Automated by agent-task-server")

    subject, _, body = message.partition("\n")
    assert subject == f"feat: {config.task[:50]}"
    assert len(subject) < len(f"feat: {config.task}")
    assert "Automated by agent-task-server" in body
    assert body.endswith(f"Task: {config.task}")
