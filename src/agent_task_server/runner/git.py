"""Git command strings issued by the workflow.

Values that come from callers (URLs, branch names, messages) are shell-quoted.
"""

from __future__ import annotations

import shlex
from pathlib import Path


def clone(repo_url: str, destination: Path) -> str:
    return f"git clone {shlex.quote(repo_url)} {shlex.quote(str(destination))}"


def fetch_all() -> str:
    return "git fetch --all --prune"


def hard_reset(ref: str) -> str:
    return f"git reset --hard {shlex.quote(ref)}"


def checkout(branch: str) -> str:
    return f"git checkout {shlex.quote(branch)}"


def create_branch(branch: str, start_point: str | None = None) -> str:
    command = f"git checkout -b {shlex.quote(branch)}"
    if start_point:
        command = f"{command} {shlex.quote(start_point)}"
    return command


def status_porcelain() -> str:
    return "git status --porcelain"


def add_all() -> str:
    return "git add -A"


def commit(message: str) -> str:
    return f"git commit -m {shlex.quote(message)}"


def short_head() -> str:
    return "git rev-parse --short HEAD"


def push(branch: str) -> str:
    return f"git push -u origin {shlex.quote(branch)}"


def identity_env(name: str, email: str) -> dict[str, str]:
    """Commit identity as environment overrides, so no global git config is needed."""
    env: dict[str, str] = {}
    if name:
        env["GIT_AUTHOR_NAME"] = name
        env["GIT_COMMITTER_NAME"] = name
    if email:
        env["GIT_AUTHOR_EMAIL"] = email
        env["GIT_COMMITTER_EMAIL"] = email
    return env
