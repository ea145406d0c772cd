"""
Best-effort booking notifications
=================================

State-changing booking operations never send e-mail or SMS inline.  After the
booking row is committed they publish a ``NotificationEvent`` to an outbox
queue; the background worker (``src.workers.notifier``) consumes it and hands
it to ``NotificationService``.

Guarantees
----------
* At-most-once: an event is popped before it is handled and never re-queued.
* Failures (missing credentials, SMTP / Twilio errors, a full or unreachable
  queue) are logged and swallowed.  They never reach the HTTP response of the
  operation that triggered them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from uuid import uuid4

from src.config import Settings, settings as app_settings
from src.domain.entities import Booking
from src.domain.errors import BookingError
from src.services import templates
from src.services.senders import EmailSender, SmsSender

logger = logging.getLogger(__name__)


class EventTypes:
    BOOKING_CREATED = "booking.created"
    DRIVER_ASSIGNED = "booking.driver_assigned"


@dataclass
class NotificationEvent:
    event_type: str
    payload: dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_json(self) -> str:
        return json.dumps(
            {
                "event_id": self.event_id,
                "event_type": self.event_type,
                "timestamp": self.timestamp,
                "payload": self.payload,
            },
            default=str,
        )

    @classmethod
    def from_json(cls, data: str) -> "NotificationEvent":
        parsed = json.loads(data)
        return cls(
            event_type=parsed.get("event_type", ""),
            payload=parsed.get("payload", {}),
            event_id=parsed.get("event_id", str(uuid4())),
            timestamp=parsed.get("timestamp", ""),
        )


def booking_payload(booking: Booking) -> dict[str, Any]:
    """JSON-safe snapshot of the fields the message templates use."""
    return {
        "id": booking.id,
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "customer_phone": booking.customer_phone,
        "pickup_location": booking.pickup_location,
        "dropoff_location": booking.dropoff_location,
        "pickup_time": booking.pickup_time.isoformat() if booking.pickup_time else None,
        "vehicle_name": booking.vehicle_name,
        "package_name": booking.package_name,
        "passengers": booking.passengers,
        "stops": [s.as_dict() for s in booking.stops],
        "gratuity": booking.gratuity.as_dict(),
        "price": float(booking.price),
        "total_amount": float(booking.total_amount),
        "status": booking.status.value,
    }


# ── Queues ────────────────────────────────────────────────────────────


class NotificationQueue(ABC):
    @abstractmethod
    async def publish(self, event: NotificationEvent) -> None: ...

    @abstractmethod
    async def consume(self, timeout: float) -> Optional[NotificationEvent]:
        """Pop the next event, waiting up to *timeout* seconds."""


class InMemoryNotificationQueue(NotificationQueue):
    """Single-process outbox backed by ``asyncio.Queue``."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue()

    async def publish(self, event: NotificationEvent) -> None:
        self._queue.put_nowait(event.to_json())

    async def consume(self, timeout: float) -> Optional[NotificationEvent]:
        try:
            raw = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        return NotificationEvent.from_json(raw)

    def qsize(self) -> int:
        return self._queue.qsize()


class RedisNotificationQueue(NotificationQueue):
    """Outbox shared by every API process: RPUSH to publish, BLPOP to consume."""

    def __init__(self, redis, key: str):
        self.redis = redis
        self.key = key

    async def publish(self, event: NotificationEvent) -> None:
        await self.redis.rpush(self.key, event.to_json())

    async def consume(self, timeout: float) -> Optional[NotificationEvent]:
        item = await self.redis.blpop([self.key], timeout=max(1, int(timeout)))
        if item is None:
            return None
        _, raw = item
        return NotificationEvent.from_json(raw)


_queue: NotificationQueue | None = None


async def get_notification_queue() -> NotificationQueue:
    """Return the process-wide outbox selected by ``notification_backend``."""
    global _queue
    if _queue is None:
        if app_settings.notification_backend == "memory":
            _queue = InMemoryNotificationQueue()
        else:
            from src.infrastructure.redis_client import get_redis

            _queue = RedisNotificationQueue(
                await get_redis(), app_settings.notification_queue_key
            )
    return _queue


class NotificationPublisher:
    def __init__(self, queue: NotificationQueue):
        self.queue = queue

    async def publish_after_commit(self, event: NotificationEvent) -> None:
        """Enqueue *event*; the caller's write has already been committed."""
        try:
            await self.queue.publish(event)
        except Exception:
            logger.exception(
                "Could not enqueue %s notification %s", event.event_type, event.event_id
            )


# ── Consumer side ─────────────────────────────────────────────────────


class NotificationService:
    """Renders events into e-mails / SMS and delivers each one independently."""

    def __init__(
        self,
        email: Optional[EmailSender] = None,
        sms: Optional[SmsSender] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or app_settings
        self.email = email or EmailSender(self.config)
        self.sms = sms or SmsSender(self.config)

    async def handle(self, event: NotificationEvent) -> int:
        """Deliver *event*; returns the number of successful deliveries."""
        handlers = {
            EventTypes.BOOKING_CREATED: self._booking_created,
            EventTypes.DRIVER_ASSIGNED: self._driver_assigned,
        }
        handler = handlers.get(event.event_type)
        if handler is None:
            logger.warning("No handler for notification type %s", event.event_type)
            return 0
        return await handler(event.payload)

    async def _attempt(self, description: str, coro) -> bool:
        try:
            await coro
            return True
        except BookingError as exc:
            # ConfigurationError and NotificationError both land here.
            logger.error("Notification failed (%s): %s", description, exc.message)
        except Exception:
            logger.exception("Notification failed (%s)", description)
        return False

    async def _booking_created(self, payload: Mapping[str, Any]) -> int:
        booking = payload.get("booking", {})
        sent = 0
        email = booking.get("customer_email")
        if email:
            subject, html, text = templates.booking_confirmation(booking)
            sent += await self._attempt(
                f"confirmation e-mail to {email}",
                self.email.send(email, subject, html, text),
            )
        phone = booking.get("customer_phone")
        if phone:
            sent += await self._attempt(
                f"confirmation SMS to {phone}",
                self.sms.send(phone, templates.booking_confirmation_sms(booking)),
            )
        for admin_email in self.config.admin_emails:
            subject, html, text = templates.admin_booking_notification(booking)
            sent += await self._attempt(
                f"admin e-mail to {admin_email}",
                self.email.send(admin_email, subject, html, text),
            )
        return sent

    async def _driver_assigned(self, payload: Mapping[str, Any]) -> int:
        booking = payload.get("booking", {})
        driver = payload.get("driver", {})
        sent = 0
        email = booking.get("customer_email")
        if email:
            subject, html, text = templates.driver_assignment(booking, driver)
            sent += await self._attempt(
                f"driver-assignment e-mail to {email}",
                self.email.send(email, subject, html, text),
            )
        phone = driver.get("phone")
        if phone:
            sent += await self._attempt(
                f"driver-assignment SMS to {phone}",
                self.sms.send(phone, templates.driver_assignment_sms(booking)),
            )
        else:
            logger.warning("Driver %s has no phone number; SMS skipped", driver.get("id"))
        return sent
