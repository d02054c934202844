"""Hands workflows to the event loop, detached from the request that submitted them."""

from __future__ import annotations

import asyncio
import logging

from agent_task_server.graph.engine import WorkflowEngine

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Owns the asyncio tasks running workflows.

    `submit` returns before the workflow's first step runs. Strong references
    are kept until each task finishes so the loop cannot drop them.
    """

    def __init__(self, engine: WorkflowEngine) -> None:
        self.engine = engine
        self._running: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._running)

    def submit(self, task_id: str) -> asyncio.Task:
        job = asyncio.create_task(self.engine.run(task_id), name=f"workflow:{task_id}")
        self._running.add(job)
        job.add_done_callback(self._running.discard)
        logger.info("task_dispatch event=submitted task_id=%s in_flight=%d", task_id, len(self._running))
        return job

    async def wait_idle(self) -> None:
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def shutdown(self) -> None:
        if not self._running:
            return
        logger.warning("task_dispatch event=shutdown cancelling=%d", len(self._running))
        for job in list(self._running):
            job.cancel()
        await asyncio.gather(*list(self._running), return_exceptions=True)
