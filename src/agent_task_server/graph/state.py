"""Typed state contract for the LangGraph workflow.

The task record itself lives in storage; the graph state only carries what
later steps need from earlier ones.
"""

from typing import TypedDict


class WorkflowState(TypedDict, total=False):
    task_id: str
    repo_dir: str
    work_dir: str
    has_changes: bool
    commit_hash: str | None


def initial_state(task_id: str) -> WorkflowState:
    return {
        "task_id": task_id,
        "has_changes": False,
        "commit_hash": None,
    }
