"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes the
document-style primitives the booking core needs: find / get / create / save.
``BookingRepository`` maps rows to and from the ``Booking`` domain entity.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, PricingSettingsModel, ProfileModel, VehicleModel
from src.domain.entities import Booking, Gratuity, StatusChange, Stop
from src.domain.enums import (
    BookingStatus,
    PaymentStatus,
    ProfileRole,
    VehicleStatus,
)
from src.domain.pricing import PricingSettings, money

SETTINGS_KEY = "admin_settings"

_BOOKING_FIELDS = (
    "customer_id",
    "customer_name",
    "customer_email",
    "customer_phone",
    "vehicle_id",
    "vehicle_name",
    "driver_id",
    "package_id",
    "package_name",
    "pickup_location",
    "dropoff_location",
    "pickup_time",
    "dropoff_time",
    "hours",
    "passengers",
    "car_seats",
    "booster_seats",
    "price",
    "total_amount",
    "status",
    "payment_status",
    "payment_provider",
    "transaction_id",
    "notes",
    "special_instructions",
    "access_token",
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def booking_to_entity(row: BookingModel) -> Booking:
    return Booking(
        id=row.id,
        customer_id=row.customer_id,
        customer_name=row.customer_name,
        customer_email=row.customer_email,
        customer_phone=row.customer_phone,
        vehicle_id=row.vehicle_id,
        vehicle_name=row.vehicle_name,
        driver_id=row.driver_id,
        package_id=row.package_id,
        package_name=row.package_name,
        pickup_location=row.pickup_location,
        dropoff_location=row.dropoff_location,
        pickup_time=_aware(row.pickup_time),
        dropoff_time=_aware(row.dropoff_time),
        hours=row.hours,
        passengers=row.passengers,
        car_seats=row.car_seats,
        booster_seats=row.booster_seats,
        stops=[Stop.from_dict(s) for s in (row.stops or [])],
        price=money(row.price),
        gratuity=Gratuity.from_dict(row.gratuity),
        total_amount=money(row.total_amount),
        status=BookingStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        payment_provider=row.payment_provider,
        transaction_id=row.transaction_id,
        notes=row.notes,
        special_instructions=row.special_instructions,
        access_token=row.access_token,
        status_history=[StatusChange.from_dict(c) for c in (row.status_history or [])],
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _copy_to_row(booking: Booking, row: BookingModel) -> None:
    for name in _BOOKING_FIELDS:
        setattr(row, name, getattr(booking, name))
    row.stops = [s.as_dict() for s in booking.stops]
    row.gratuity = booking.gratuity.as_dict()
    row.status_history = [c.as_dict() for c in booking.status_history]


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: Booking) -> Booking:
        row = BookingModel()
        _copy_to_row(booking, row)
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return booking_to_entity(row)

    async def get_by_id(self, booking_id: int) -> Optional[Booking]:
        row = await self.session.get(BookingModel, booking_id)
        return booking_to_entity(row) if row else None

    async def save(self, booking: Booking) -> Booking:
        """Write every field of *booking* back to its row (last write wins)."""
        row = await self.session.get(BookingModel, booking.id)
        if row is None:
            raise LookupError(f"Booking {booking.id} does not exist")
        _copy_to_row(booking, row)
        await self.session.flush()
        await self.session.refresh(row)
        return booking_to_entity(row)

    async def find(
        self,
        *,
        email: str | None = None,
        customer_id: int | None = None,
        driver_id: int | None = None,
        status: BookingStatus | None = None,
        pickup_from: datetime | None = None,
        pickup_to: datetime | None = None,
    ) -> list[Booking]:
        query = select(BookingModel)
        if email:
            query = query.where(func.lower(BookingModel.customer_email) == email.lower())
        elif customer_id is not None:
            query = query.where(BookingModel.customer_id == customer_id)
        if driver_id is not None:
            query = query.where(BookingModel.driver_id == driver_id)
        if status is not None:
            query = query.where(BookingModel.status == status)
        if pickup_from is not None:
            query = query.where(BookingModel.pickup_time >= pickup_from)
        if pickup_to is not None:
            query = query.where(BookingModel.pickup_time < pickup_to)
        result = await self.session.execute(query.order_by(BookingModel.pickup_time))
        return [booking_to_entity(row) for row in result.scalars().all()]


class ProfileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, profile_id: int) -> Optional[ProfileModel]:
        return await self.session.get(ProfileModel, profile_id)

    async def get_driver(self, driver_id: int) -> Optional[ProfileModel]:
        result = await self.session.execute(
            select(ProfileModel).where(
                ProfileModel.id == driver_id,
                ProfileModel.role == ProfileRole.DRIVER,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_token(self, token: str) -> Optional[ProfileModel]:
        result = await self.session.execute(
            select(ProfileModel).where(ProfileModel.api_token == token)
        )
        return result.scalar_one_or_none()

    async def create(self, profile: ProfileModel) -> ProfileModel:
        self.session.add(profile)
        await self.session.flush()
        return profile


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_active(self) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.status == VehicleStatus.ACTIVE)
            .order_by(VehicleModel.price_per_hour)
        )
        return list(result.scalars().all())

    async def create(self, vehicle: VehicleModel) -> VehicleModel:
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle


class SettingsRepository:
    """Reads and writes the singleton pricing-settings row."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _row(self) -> Optional[PricingSettingsModel]:
        result = await self.session.execute(
            select(PricingSettingsModel).where(PricingSettingsModel.key == SETTINGS_KEY)
        )
        return result.scalar_one_or_none()

    async def get(self) -> PricingSettings:
        row = await self._row()
        return _settings_from_row(row) if row else PricingSettings()

    async def get_or_create(self) -> PricingSettings:
        row = await self._row()
        if row is None:
            row = PricingSettingsModel(key=SETTINGS_KEY)
            _copy_settings(PricingSettings(), row)
            self.session.add(row)
            await self.session.flush()
        return _settings_from_row(row)

    async def save(self, pricing: PricingSettings) -> PricingSettings:
        row = await self._row()
        if row is None:
            row = PricingSettingsModel(key=SETTINGS_KEY)
            self.session.add(row)
        _copy_settings(pricing, row)
        await self.session.flush()
        return _settings_from_row(row)


def _copy_settings(pricing: PricingSettings, row: PricingSettingsModel) -> None:
    for name, value in pricing.as_dict().items():
        setattr(row, name, value)


def _settings_from_row(row: PricingSettingsModel) -> PricingSettings:
    values: dict[str, Any] = {}
    for name in PricingSettings().as_dict():
        value = getattr(row, name)
        if isinstance(value, Decimal):
            value = float(value)
        values[name] = value
    return PricingSettings(**values)
