"""FastAPI dependency injection helpers."""

import hmac
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.enums import ProfileRole
from src.domain.errors import AuthenticationError, ConfigurationError, ForbiddenError
from src.infrastructure.database import async_session_factory
from src.infrastructure.models import ProfileModel
from src.infrastructure.repositories import ProfileRepository
from src.services.bookings import BookingOrchestrator
from src.services.notifications import NotificationPublisher, get_notification_queue
from src.services.payments import PaymentGateway, build_payment_gateway
from src.services.settings import PricingSettingsService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_payment_gateway() -> PaymentGateway:
    return build_payment_gateway(settings)


async def get_publisher() -> NotificationPublisher:
    return NotificationPublisher(await get_notification_queue())


def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    publisher: NotificationPublisher = Depends(get_publisher),
) -> BookingOrchestrator:
    return BookingOrchestrator(db, gateway, publisher)


def get_settings_service(db: AsyncSession = Depends(get_db)) -> PricingSettingsService:
    return PricingSettingsService(db)


def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    """Guard admin routes with the shared ``X-Admin-Key`` header."""
    expected = settings.admin_api_key
    if not expected:
        raise ConfigurationError("Admin API is not configured: set ADMIN_API_KEY")
    if not x_admin_key:
        raise AuthenticationError("X-Admin-Key header is required")
    if not hmac.compare_digest(x_admin_key.encode(), expected.encode()):
        raise ForbiddenError("Invalid admin key")


def booking_access(
    x_admin_key: Optional[str] = Header(None),
    x_booking_token: Optional[str] = Header(None),
) -> Optional[str]:
    """Admin key or the booking's own access token.

    Returns the token to check against the booking, or ``None`` for admins.
    """
    if x_admin_key:
        require_admin(x_admin_key)
        return None
    if not x_booking_token:
        raise AuthenticationError("X-Booking-Token or X-Admin-Key header is required")
    return x_booking_token


async def current_profile(
    x_profile_token: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> ProfileModel:
    """Resolve the portal caller from the ``X-Profile-Token`` header."""
    if not x_profile_token:
        raise AuthenticationError("X-Profile-Token header is required")
    profile = await ProfileRepository(db).get_by_token(x_profile_token)
    if profile is None:
        raise AuthenticationError("Invalid profile token")
    return profile


def require_driver(profile: ProfileModel = Depends(current_profile)) -> ProfileModel:
    if profile.role is not ProfileRole.DRIVER:
        raise ForbiddenError("Driver account required")
    return profile


def require_customer(profile: ProfileModel = Depends(current_profile)) -> ProfileModel:
    # Drivers can book rides for themselves too.
    if profile.role not in (ProfileRole.CUSTOMER, ProfileRole.DRIVER):
        raise ForbiddenError("Customer account required")
    return profile
