"""Background worker process.

RUN:  python -m learnhub.worker

Same image as the API, different command.  Drains the queues the API
enqueues onto (currently outbound email) so request latency never
includes delivery, and a delivery failure never fails a request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from learnhub.core.config import SETTINGS
from learnhub.core.logging import setup_logging
from learnhub.core.metrics import QUEUE_DEPTH
from learnhub.services.task_queue import EMAIL_QUEUE, TaskQueue, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

_IDLE_SLEEP_S = 0.5

logger = logging.getLogger("worker")


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(EMAIL_QUEUE)
async def handle_email_delivery(payload: dict) -> None:
    """Hand an outbound email to the mail relay.

    The relay is the platform's log pipeline for now; a missing
    recipient is a malformed task and fails loudly.
    """
    to_address = payload["to"]
    logger.info(
        "Delivering email from=%s to=%s subject=%r (%d chars)",
        payload.get("from", SETTINGS.email_sender),
        to_address,
        payload.get("subject", ""),
        len(payload.get("body", "")),
    )


# ---------------------------------------------------------------------------
# Main worker loop
# ---------------------------------------------------------------------------


async def process_one(queue_name: str, queue: TaskQueue = task_queue, timeout: int = 1) -> bool:
    """Dequeue and handle at most one task.  Returns False when the queue was empty."""
    task = await queue.dequeue(queue_name, timeout=timeout)
    QUEUE_DEPTH.labels(queue_name=queue_name).set(await queue.queue_length(queue_name))
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        # No dead-letter queue yet: the task is dropped after logging.
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    return True


async def run_worker() -> None:
    """Poll all registered queues round-robin."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        handled = [await process_one(queue_name) for queue_name in queues]
        if not any(handled):
            # The in-memory queue returns immediately instead of blocking.
            await asyncio.sleep(_IDLE_SLEEP_S)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
