from __future__ import annotations

import asyncio
import threading

from agent_task_server.graph.dispatch import TaskDispatcher


async def test_submit_returns_before_the_first_step(engine, storage, runner, make_config):
    dispatcher = TaskDispatcher(engine)
    task = storage.create_task(make_config())

    dispatcher.submit(task.id)

    assert task.status == "queued"
    assert runner.calls == []
    assert dispatcher.in_flight == 1

    await dispatcher.wait_idle()

    assert task.status == "completed"
    assert dispatcher.in_flight == 0


async def test_tasks_on_different_repositories_interleave(engine, storage, runner, make_config):
    runner.gate = threading.Event()
    dispatcher = TaskDispatcher(engine)
    first = storage.create_task(make_config(repo="https://example.com/u/one.git"))
    second = storage.create_task(make_config(repo="https://example.com/u/two.git"))

    dispatcher.submit(first.id)
    dispatcher.submit(second.id)
    await asyncio.sleep(0.05)

    assert first.status == "cloning"
    assert second.status == "cloning"
    assert storage.count_active() == 2

    runner.gate.set()
    await dispatcher.wait_idle()

    assert storage.count_active() == 0


async def test_shutdown_cancels_outstanding_workflows(engine, storage, runner, make_config):
    runner.gate = threading.Event()
    dispatcher = TaskDispatcher(engine)
    task = storage.create_task(make_config())

    job = dispatcher.submit(task.id)
    await asyncio.sleep(0.05)
    await dispatcher.shutdown()

    assert job.done()
    assert dispatcher.in_flight == 0
    assert task.status == "cloning"
