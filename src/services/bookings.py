"""
Booking lifecycle orchestrator
==============================

Coordinates request parsing, pricing, payment, persistence and notification
for a single booking at a time.

Ordering per write operation
----------------------------
1. Validate input and current state (nothing is written on failure).
2. For ``create_booking`` only: charge the card once through the selected
   ``PaymentAdapter``.  A decline leaves no booking behind.
3. Persist and **commit**.
4. Publish the notification event.  Publication failures are logged by
   ``NotificationPublisher`` and never change the result.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.booking_request import (
    AccountBookingRequest,
    BookingDetails,
    BookingRequest,
    dropoff_time,
    parse_booking_request,
    parse_datetime,
    parse_int,
)
from src.domain.entities import Booking, Gratuity, StatusChange, Stop
from src.domain.enums import (
    DRIVER_STATUSES,
    BookingStatus,
    PaymentStatus,
    TERMINAL_STATUSES,
)
from src.domain.errors import (
    BookingsClosedError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from src.domain.pricing import (
    ZERO,
    PricingEngine,
    PricingSettings,
    Quote,
    QuoteInput,
    base_amount,
    money,
    to_cents,
    to_decimal,
)
from src.infrastructure.models import ProfileModel
from src.infrastructure.repositories import (
    BookingRepository,
    ProfileRepository,
    SettingsRepository,
    VehicleRepository,
)
from src.services.notifications import (
    EventTypes,
    NotificationEvent,
    NotificationPublisher,
    booking_payload,
)
from src.services.payments import PaymentGateway

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "pickup_location",
    "dropoff_location",
    "pickup_time",
    "passengers",
    "notes",
    "special_instructions",
    "status",
)


def parse_status(value: Any) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown booking status: {value}") from None


def driver_payload(driver: ProfileModel) -> dict[str, Any]:
    return {
        "id": driver.id,
        "name": driver.full_name,
        "phone": driver.phone,
        "email": driver.email,
    }


def day_bounds(value: str) -> tuple[datetime, datetime]:
    """UTC ``[start, end)`` of the calendar day *value* (``YYYY-MM-DD``)."""
    try:
        day = date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"date must be YYYY-MM-DD, got {value!r}") from None
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class BookingOrchestrator:
    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGateway,
        publisher: NotificationPublisher,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session = session
        self.gateway = gateway
        self.publisher = publisher
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.bookings = BookingRepository(session)
        self.profiles = ProfileRepository(session)
        self.vehicles = VehicleRepository(session)
        self.settings = SettingsRepository(session)

    # ── Pricing ──────────────────────────────────────────────────────

    async def _vehicle_rate(
        self, vehicle_id: Optional[int]
    ) -> tuple[Optional[str], Optional[Decimal]]:
        if vehicle_id is None:
            return None, None
        vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        return vehicle.name, money(vehicle.price_per_hour)

    async def quote(
        self,
        *,
        package_price: Any = None,
        vehicle_id: Optional[int] = None,
        hourly_rate: Any = None,
        hours: Any = None,
        stops: Sequence[Optional[Any]] = (),
        car_seats: int = 0,
        booster_seats: int = 0,
        distance_miles: Any = 0,
    ) -> Quote:
        """Price a prospective booking with the current settings."""
        pricing = await self.settings.get()
        _, vehicle_rate = await self._vehicle_rate(vehicle_id)
        rate = hourly_rate if hourly_rate is not None else vehicle_rate
        if hours and rate is not None:
            base = base_amount(hourly_rate=rate, hours=hours)
        else:
            base = base_amount(package_price=package_price)
        return PricingEngine(pricing).quote(
            QuoteInput(
                base=base,
                stop_overrides=tuple(
                    money(price) if price is not None else None for price in stops
                ),
                car_seats=car_seats,
                booster_seats=booster_seats,
                distance_miles=to_decimal(distance_miles or 0, "distance_miles"),
            )
        )

    def _price(
        self,
        details: BookingDetails,
        pricing: PricingSettings,
        vehicle_rate: Optional[Decimal],
    ) -> Quote:
        if details.hourly:
            rate = details.hourly_rate if details.hourly_rate is not None else vehicle_rate
            base = base_amount(hourly_rate=rate, hours=details.hours)
        elif details.package_price is not None:
            base = base_amount(package_price=details.package_price)
        else:
            base = base_amount(hourly_rate=vehicle_rate, hours=details.hours)
        return PricingEngine(pricing).quote(
            QuoteInput(
                base=base,
                stop_overrides=tuple(s.price for s in details.stops),
                car_seats=details.car_seats,
                booster_seats=details.booster_seats,
                distance_miles=details.distance_miles,
            )
        )

    # ── Create ───────────────────────────────────────────────────────

    async def _contact(self, request: BookingRequest) -> tuple[Optional[int], str, str, str]:
        if isinstance(request, AccountBookingRequest):
            profile = await self.profiles.get_by_id(request.customer_id)
            if profile is None:
                raise ValidationError(f"Unknown customer account {request.customer_id}")
            return profile.id, profile.full_name, profile.email, profile.phone or ""
        return None, request.name, request.email, request.phone

    async def create_booking(self, payload: Mapping[str, Any]) -> Booking:
        pricing = await self.settings.get()
        if not pricing.bookings_enabled:
            raise BookingsClosedError("Bookings are currently disabled")

        request = parse_booking_request(payload, now=self.clock())
        details = request.details
        customer_id, name, email, phone = await self._contact(request)
        vehicle_name, vehicle_rate = await self._vehicle_rate(details.vehicle_id)

        quote = self._price(details, pricing, vehicle_rate)
        gratuity = Gratuity.from_input(details.gratuity, quote.total)
        charge = money(quote.total + gratuity.charged_amount)
        if charge <= ZERO:
            raise ValidationError("Booking total must be greater than zero")

        adapter = self.gateway.select(details.payment.provider)
        result = await adapter.authorize(to_cents(charge), details.payment.token)
        if not result.success:
            raise PaymentError(result.error or "Payment was declined")
        if not result.transaction_id:
            raise PaymentError("Payment provider did not return a transaction id")
        logger.info(
            "Charged %s via %s (txn=%s)", charge, adapter.provider.value, result.transaction_id
        )

        booking = Booking(
            customer_id=customer_id,
            customer_name=name,
            customer_email=email,
            customer_phone=phone,
            vehicle_id=details.vehicle_id,
            vehicle_name=details.vehicle_name or vehicle_name,
            package_id=details.package_id,
            package_name=details.package_name,
            pickup_location=details.pickup_location,
            dropoff_location=details.dropoff_location,
            pickup_time=details.pickup_time,
            dropoff_time=details.dropoff_time,
            hours=details.hours,
            passengers=details.passengers,
            car_seats=details.car_seats,
            booster_seats=details.booster_seats,
            stops=[
                Stop(
                    location=s.location,
                    order=s.order,
                    price=s.price if s.price is not None else money(pricing.stop_price),
                )
                for s in details.stops
            ],
            price=quote.total,
            gratuity=gratuity,
            total_amount=money(quote.total + gratuity.amount),
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PAID,
            payment_provider=adapter.provider.value,
            transaction_id=result.transaction_id,
            notes=details.notes,
            special_instructions=details.special_instructions,
            access_token=secrets.token_urlsafe(24),
            status_history=[
                StatusChange(
                    status=BookingStatus.PENDING,
                    at=self.clock(),
                    changed_by="customer",
                    comment="Booking created",
                )
            ],
        )
        saved = await self.bookings.create(booking)
        await self.session.commit()
        logger.info("Booking %s created for %s", saved.id, saved.customer_email)

        await self.publisher.publish_after_commit(
            NotificationEvent(
                EventTypes.BOOKING_CREATED, {"booking": booking_payload(saved)}
            )
        )
        return saved

    # ── Reads ────────────────────────────────────────────────────────

    async def get_booking(
        self, booking_id: int, access_token: Optional[str] = None
    ) -> Booking:
        """Load a booking.

        ``access_token`` is the secret issued at creation.  ``None`` means the
        caller is already trusted (admin); any other value must match.
        """
        booking = await self.bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        if access_token is not None and not (
            booking.access_token
            and hmac.compare_digest(access_token.encode(), booking.access_token.encode())
        ):
            raise ForbiddenError("Booking access token does not match")
        return booking

    async def customer_bookings(self, email: str) -> list[Booking]:
        return await self.bookings.find(email=email)

    async def list_bookings(
        self,
        *,
        email: Optional[str] = None,
        customer_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        status: Optional[str] = None,
        date: Optional[str] = None,
    ) -> list[Booking]:
        pickup_from = pickup_to = None
        if date:
            pickup_from, pickup_to = day_bounds(date)
        return await self.bookings.find(
            email=email,
            customer_id=customer_id,
            driver_id=driver_id,
            status=parse_status(status) if status else None,
            pickup_from=pickup_from,
            pickup_to=pickup_to,
        )

    # ── Admin writes ─────────────────────────────────────────────────

    async def _driver(self, driver_id: int) -> ProfileModel:
        driver = await self.profiles.get_driver(driver_id)
        if driver is None:
            raise NotFoundError(f"Driver {driver_id} not found")
        return driver

    async def _commit(self, booking: Booking) -> Booking:
        saved = await self.bookings.save(booking)
        await self.session.commit()
        return saved

    async def assign_driver(
        self, booking_id: int, driver_id: int, notify: bool = True
    ) -> Booking:
        booking = await self.get_booking(booking_id)
        driver = await self._driver(driver_id)
        if booking.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot assign a driver to a {booking.status.value} booking"
            )

        booking.driver_id = driver.id
        if booking.status is BookingStatus.PENDING:
            booking.transition_to(
                BookingStatus.CONFIRMED,
                changed_by="admin",
                at=self.clock(),
                comment=f"Driver {driver.full_name} assigned",
            )
        saved = await self._commit(booking)
        logger.info("Driver %s assigned to booking %s", driver.id, saved.id)

        if notify:
            await self.publisher.publish_after_commit(
                NotificationEvent(
                    EventTypes.DRIVER_ASSIGNED,
                    {"booking": booking_payload(saved), "driver": driver_payload(driver)},
                )
            )
        return saved

    async def update_assignments(
        self,
        booking_id: int,
        driver_id: Optional[int] = None,
        vehicle_id: Optional[int] = None,
    ) -> Booking:
        """Reassign driver and/or vehicle without side effects."""
        if driver_id is None and vehicle_id is None:
            raise ValidationError("driver_id or vehicle_id is required")
        booking = await self.get_booking(booking_id)
        if booking.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot reassign a {booking.status.value} booking"
            )
        if driver_id is not None:
            booking.driver_id = (await self._driver(driver_id)).id
        if vehicle_id is not None:
            vehicle = await self.vehicles.get_by_id(vehicle_id)
            if vehicle is None:
                raise NotFoundError(f"Vehicle {vehicle_id} not found")
            booking.vehicle_id = vehicle.id
            booking.vehicle_name = vehicle.name
        return await self._commit(booking)

    async def _transition(
        self, booking: Booking, target: BookingStatus, changed_by: str
    ) -> Booking:
        previous = booking.status
        booking.transition_to(target, changed_by=changed_by, at=self.clock())
        saved = await self._commit(booking)
        logger.info(
            "Booking %s: %s -> %s (by %s)",
            saved.id,
            previous.value,
            target.value,
            changed_by,
        )
        return saved

    async def change_status(self, booking_id: int, new_status: Any) -> Booking:
        target = parse_status(new_status)
        booking = await self.get_booking(booking_id)
        return await self._transition(booking, target, "admin")

    async def cancel_booking(
        self, booking_id: int, access_token: Optional[str] = None
    ) -> Booking:
        booking = await self.get_booking(booking_id, access_token)
        changed_by = "admin" if access_token is None else "customer"
        return await self._transition(booking, BookingStatus.CANCELLED, changed_by)

    async def add_gratuity(
        self,
        booking_id: int,
        gratuity_input: Optional[Mapping[str, Any]],
        access_token: Optional[str] = None,
    ) -> Booking:
        booking = await self.get_booking(booking_id, access_token)
        if booking.status is not BookingStatus.COMPLETED:
            raise InvalidStateError("Gratuity can only be added to completed bookings")
        if gratuity_input is not None and not isinstance(gratuity_input, Mapping):
            raise ValidationError("gratuity must be an object")
        booking.apply_gratuity(Gratuity.from_input(gratuity_input, booking.price))
        return await self._commit(booking)

    async def update_booking(
        self, booking_id: int, changes: Mapping[str, Any]
    ) -> Booking:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Field(s) cannot be edited: {', '.join(sorted(unknown))}"
            )
        booking = await self.get_booking(booking_id)

        for name in ("pickup_location", "dropoff_location"):
            if name in changes:
                value = str(changes[name] or "").strip()
                if not value:
                    raise ValidationError(f"{name} cannot be empty")
                setattr(booking, name, value)
        if "pickup_time" in changes:
            booking.pickup_time = parse_datetime(changes["pickup_time"])
            if booking.hours:
                booking.dropoff_time = dropoff_time(booking.pickup_time, booking.hours)
        if "passengers" in changes:
            booking.passengers = parse_int(changes["passengers"], "passengers", 1)
        for name in ("notes", "special_instructions"):
            if name in changes:
                setattr(booking, name, changes[name])
        if changes.get("status") is not None:
            target = parse_status(changes["status"])
            if target is not booking.status:
                booking.transition_to(target, changed_by="admin", at=self.clock())

        return await self._commit(booking)

    # ── Driver portal ────────────────────────────────────────────────

    async def driver_rides(self, driver_id: int) -> list[Booking]:
        await self._driver(driver_id)
        return await self.bookings.find(driver_id=driver_id)

    async def driver_change_status(
        self, driver_id: int, booking_id: int, new_status: Any
    ) -> Booking:
        """Start or complete a ride assigned to *driver_id*."""
        target = parse_status(new_status)
        if target not in DRIVER_STATUSES:
            raise ForbiddenError(
                f"Drivers cannot set a ride to {target.value}"
            )
        booking = await self.bookings.get_by_id(booking_id)
        # Rides of other drivers are reported as missing.
        if booking is None or booking.driver_id != driver_id:
            raise NotFoundError(f"Ride {booking_id} not found")
        return await self._transition(booking, target, f"driver:{driver_id}")

    async def driver_earnings(self, driver_id: int) -> Decimal:
        """Fares plus gratuity over the driver's completed rides."""
        rides = await self.driver_rides(driver_id)
        return money(
            sum(
                (
                    ride.price + ride.gratuity.amount
                    for ride in rides
                    if ride.status is BookingStatus.COMPLETED
                ),
                ZERO,
            )
        )
