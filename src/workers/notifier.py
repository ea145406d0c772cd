"""
Background Notification Worker
==============================

Drains the notification outbox that booking operations publish to after
their commit, delivering each event through ``NotificationService``.

Delivery semantics
------------------
* **At-most-once**: an event is popped before it is handled; a crash or a
  delivery failure loses that message rather than re-sending it.
* Every failure is logged.  The loop itself only stops on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.config import settings
from src.services.notifications import (
    NotificationQueue,
    NotificationService,
    get_notification_queue,
)

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_notification_loop(
    queue: Optional[NotificationQueue] = None,
    service: Optional[NotificationService] = None,
) -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    queue = queue or await get_notification_queue()
    _task = asyncio.create_task(_loop(queue, service or NotificationService()))
    logger.info(
        "Notification worker started (backend=%s, poll=%ds)",
        settings.notification_backend,
        settings.notification_poll_seconds,
    )


async def stop_notification_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Notification worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(queue: NotificationQueue, service: NotificationService) -> None:
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_notification_cycle(queue, service)
        except Exception:
            logger.exception("Unhandled error in notification cycle")
            # Back off so an unreachable queue does not spin the loop.
            try:
                await asyncio.wait_for(
                    _stop_event.wait(), timeout=settings.notification_poll_seconds
                )
                break
            except asyncio.TimeoutError:
                pass


async def run_notification_cycle(
    queue: NotificationQueue,
    service: NotificationService,
    timeout: Optional[float] = None,
) -> bool:
    """Handle at most one event.  Returns False when the queue was empty."""
    event = await queue.consume(
        timeout if timeout is not None else settings.notification_poll_seconds
    )
    if event is None:
        return False
    delivered = await service.handle(event)
    logger.info(
        "Notification %s (%s): %d message(s) delivered",
        event.event_id,
        event.event_type,
        delivered,
    )
    return True
