"""Worker dispatch tests, run against the in-memory queue."""

from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from portal import worker
from portal.services.task_queue import INVITATION_EMAIL_QUEUE, InMemoryTaskQueue, Task


def _depth(queue: str) -> float:
    value = REGISTRY.get_sample_value("task_queue_depth", labels={"queue_name": queue})
    return value or 0.0


def test_in_memory_queue_is_fifo() -> None:
    queue = InMemoryTaskQueue()

    async def scenario() -> list[str]:
        for n in ("first", "second", "third"):
            await queue.enqueue("q", {"n": n})
        out = []
        while (task := await queue.dequeue("q")) is not None:
            out.append(task.payload["n"])
        return out

    assert asyncio.run(scenario()) == ["first", "second", "third"]


def test_in_memory_queue_tracks_depth_gauge() -> None:
    queue = InMemoryTaskQueue()
    asyncio.run(queue.enqueue("depth-test", {}))
    asyncio.run(queue.enqueue("depth-test", {}))
    assert _depth("depth-test") == 2

    asyncio.run(queue.dequeue("depth-test"))
    assert _depth("depth-test") == 1
    assert asyncio.run(queue.queue_length("depth-test")) == 1


def test_invitation_email_handler_is_registered() -> None:
    assert worker.HANDLERS[INVITATION_EMAIL_QUEUE] is worker.handle_invitation_email


def test_process_task_delivers_invitation_email(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_deliver(settings, *, to_email: str, name: str, token: str) -> str:
        calls.append((to_email, name, token))
        return "sent"

    monkeypatch.setattr(worker, "deliver_invitation_email", fake_deliver)
    task = Task(
        id="t-1",
        queue=INVITATION_EMAIL_QUEUE,
        payload={"invitation_id": "i-1", "email": "a@b.com", "name": "Ada", "token": "tok"},
    )

    assert asyncio.run(worker.process_task(task)) is True
    assert calls == [("a@b.com", "Ada", "tok")]


def test_process_task_reports_handler_failure(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def broken(*_args, **_kwargs) -> str:
        raise ConnectionRefusedError("smtp down")

    monkeypatch.setattr(worker, "deliver_invitation_email", broken)
    task = Task(
        id="t-2",
        queue=INVITATION_EMAIL_QUEUE,
        payload={"email": "a@b.com", "name": "Ada", "token": "tok"},
    )

    assert asyncio.run(worker.process_task(task)) is False
    assert "failed" in caplog.text


def test_process_task_drops_unknown_queue() -> None:
    task = Task(id="t-3", queue="nobody-listens", payload={})
    assert asyncio.run(worker.process_task(task)) is False
