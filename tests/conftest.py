"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The payment gateway is replaced by a recording
fake and the notification outbox by an in-process queue.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.api.app import create_app
from src.api.dependencies import get_db, get_payment_gateway, get_publisher
from src.api.middleware import limiter
from src.config import settings
from src.domain.enums import DriverStatus, PaymentProvider, ProfileRole
from src.infrastructure.database import Base
from src.infrastructure.models import ProfileModel, VehicleModel
from src.services.bookings import BookingOrchestrator
from src.services.notifications import (
    InMemoryNotificationQueue,
    NotificationEvent,
    NotificationPublisher,
)
from src.services.payments import PaymentAdapter, PaymentGateway, PaymentResult

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
ADMIN_KEY = "test-admin-key"
NOW = datetime.now(timezone.utc).replace(microsecond=0)


# ── Fakes ─────────────────────────────────────────────────────────────


class FakePaymentAdapter(PaymentAdapter):
    """Records every charge and answers with a canned result."""

    provider = PaymentProvider.STRIPE

    def __init__(self, result: Optional[PaymentResult] = None):
        super().__init__()
        self.result = result or PaymentResult(success=True, transaction_id="pi_test_123")
        self.calls: list[tuple[int, str]] = []

    async def authorize(self, amount_cents: int, token: str) -> PaymentResult:
        self.calls.append((amount_cents, token))
        return self.result


def drain(queue: InMemoryNotificationQueue) -> list[NotificationEvent]:
    events = []
    while queue.qsize():
        raw = queue._queue.get_nowait()
        events.append(NotificationEvent.from_json(raw))
    return events


# ── Payload / row helpers ─────────────────────────────────────────────


def guest_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "customer_phone": "+15551234567",
        "pickup_location": "JFK Terminal 4",
        "dropoff_location": "The Plaza Hotel",
        "pickup_time": (NOW + timedelta(days=2)).isoformat(),
        "package_id": "airport-transfer",
        "package_name": "Airport Transfer",
        "package_price": 100,
        "payment": {"provider": "stripe", "token": "pm_card_visa"},
    }
    payload.update(overrides)
    return payload


def profile_token(email: str) -> str:
    """Portal token the profile helpers below issue for *email*."""
    return f"token-{email}"


async def make_driver(
    session: AsyncSession,
    email: str = "driver@example.com",
    phone: Optional[str] = "+15559876543",
) -> ProfileModel:
    driver = ProfileModel(
        email=email,
        first_name="Victor",
        last_name="Reyes",
        phone=phone,
        role=ProfileRole.DRIVER,
        driver_status=DriverStatus.AVAILABLE,
        api_token=profile_token(email),
    )
    session.add(driver)
    await session.commit()
    return driver


async def make_customer(session: AsyncSession) -> ProfileModel:
    customer = ProfileModel(
        email="maya@example.com",
        first_name="Maya",
        last_name="Lopez",
        phone="+15550100001",
        role=ProfileRole.CUSTOMER,
        api_token=profile_token("maya@example.com"),
    )
    session.add(customer)
    await session.commit()
    return customer


async def make_vehicle(session: AsyncSession, price_per_hour: float = 95) -> VehicleModel:
    vehicle = VehicleModel(
        name="Executive Sedan",
        make="Mercedes-Benz",
        model="S-Class",
        year=2024,
        capacity=3,
        price_per_hour=price_per_hour,
    )
    session.add(vehicle)
    await session.commit()
    return vehicle


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory schema per test."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def payment_adapter() -> FakePaymentAdapter:
    return FakePaymentAdapter()


@pytest.fixture
def gateway(payment_adapter) -> PaymentGateway:
    return PaymentGateway({PaymentProvider.STRIPE: payment_adapter})


@pytest.fixture
def queue() -> InMemoryNotificationQueue:
    return InMemoryNotificationQueue()


@pytest.fixture
def orchestrator(db_session, gateway, queue) -> BookingOrchestrator:
    return BookingOrchestrator(
        db_session, gateway, NotificationPublisher(queue), clock=lambda: NOW
    )


@pytest_asyncio.fixture
async def client(session_factory, gateway, queue, monkeypatch):
    """HTTP client against the app with DB, payments and outbox swapped out."""
    monkeypatch.setattr(settings, "admin_api_key", ADMIN_KEY)
    monkeypatch.setattr(limiter, "enabled", False)

    app = create_app()

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_publisher] = lambda: NotificationPublisher(queue)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
