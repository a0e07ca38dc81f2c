"""Background worker process.

RUN:  python -m portal.worker

Same image as the API, different command:
  api:    uvicorn portal.main:app --host 0.0.0.0 --port 8000
  worker: python -m portal.worker

Polls every registered queue in turn, one task at a time, and hands the
payload to the queue's handler.  A failing task is logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from portal.core.config import SETTINGS
from portal.core.logging import setup_logging
from portal.services.email_service import deliver_invitation_email
from portal.services.task_queue import INVITATION_EMAIL_QUEUE, Task, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("portal.worker")

HANDLERS: dict[str, TaskHandler] = {}

IDLE_SLEEP_S = 0.5


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(INVITATION_EMAIL_QUEUE)
async def handle_invitation_email(payload: dict) -> None:
    # smtplib blocks; keep it off the event loop.
    outcome = await asyncio.to_thread(
        deliver_invitation_email,
        SETTINGS,
        to_email=payload["email"],
        name=payload["name"],
        token=payload["token"],
    )
    logger.info(
        "Invitation email %s",
        outcome,
        extra={"invitation_id": payload.get("invitation_id")},
    )


async def process_task(task: Task) -> bool:
    """Run one task through its handler. Returns False if it failed."""
    handler = HANDLERS.get(task.queue)
    if handler is None:
        logger.error("No handler for queue [%s], dropping task %s", task.queue, task.id)
        return False
    try:
        await handler(task.payload)
    except Exception:
        logger.exception(
            "Task on [%s] failed", task.queue, extra={"task_id": task.id}
        )
        return False
    logger.info("Task on [%s] completed", task.queue, extra={"task_id": task.id})
    return True


async def run_worker() -> None:
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        idle = True
        for queue_name in queues:
            task = await task_queue.dequeue(queue_name, timeout=1)
            if task is None:
                continue
            idle = False
            await process_task(task)
        if idle:
            # The in-memory queue never blocks on dequeue.
            await asyncio.sleep(IDLE_SLEEP_S)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
