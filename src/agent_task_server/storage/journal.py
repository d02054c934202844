"""Append-only task log, mirrored to a plain-text file per task."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from agent_task_server.storage.models import TaskRecord

logger = logging.getLogger(__name__)


class TaskJournal:
    """Writes `[timestamp] message` lines to the record and to `<log_dir>/<task_id>.log`.

    The file survives a crash of the server process, the in-memory record does not.
    """

    def __init__(self, task: TaskRecord, log_dir: Path) -> None:
        self.task = task
        self.path = log_dir / f"{task.id}.log"
        log_dir.mkdir(parents=True, exist_ok=True)

    def log(self, message: str) -> None:
        line = f"[{datetime.now(tz=UTC).isoformat()}] {message}"
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
        self.task.logs.append(line)
        logger.info("task_log task_id=%s status=%s message=%s", self.task.id, self.task.status, message)
