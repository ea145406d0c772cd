"""
Booking request parsing.

The public booking form posts a loosely-typed document that mixes guest
checkout and signed-in customers.  ``parse_booking_request`` validates it into
exactly one of two variants before the orchestrator touches payment or
storage:

* ``GuestBookingRequest``   -- full name / e-mail / phone contact triple
* ``AccountBookingRequest`` -- reference to an existing customer profile
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from .enums import PaymentProvider
from .errors import ValidationError
from .pricing import to_decimal

DEFAULT_PACKAGE_NAME = "Custom Ride"
MAX_HOURS = 24

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class StopRequest:
    location: str
    order: int
    price: Optional[Decimal] = None


@dataclass(frozen=True)
class PaymentRequest:
    token: str
    provider: Optional[PaymentProvider] = None


@dataclass(frozen=True)
class BookingDetails:
    """Fields shared by both request variants."""

    pickup_location: str
    dropoff_location: str
    pickup_time: datetime
    payment: PaymentRequest
    dropoff_time: Optional[datetime] = None
    vehicle_id: Optional[int] = None
    vehicle_name: Optional[str] = None
    package_id: Optional[str] = None
    package_name: str = DEFAULT_PACKAGE_NAME
    package_price: Optional[Decimal] = None
    hourly: bool = False
    hourly_rate: Optional[Decimal] = None
    hours: Optional[float] = None
    distance_miles: Decimal = Decimal("0")
    passengers: int = 1
    car_seats: int = 0
    booster_seats: int = 0
    stops: tuple[StopRequest, ...] = ()
    gratuity: Optional[dict[str, Any]] = None
    notes: Optional[str] = None
    special_instructions: Optional[str] = None


@dataclass(frozen=True)
class GuestBookingRequest:
    name: str
    email: str
    phone: str
    details: BookingDetails


@dataclass(frozen=True)
class AccountBookingRequest:
    customer_id: int
    details: BookingDetails


BookingRequest = Union[GuestBookingRequest, AccountBookingRequest]


# ── Field helpers ─────────────────────────────────────────────────────


def _text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_int(value: Any, key: str, minimum: int) -> int:
    """Parse a whole number; floats with a fraction are rejected, not truncated."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{key} must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer") from None
    if number < minimum:
        raise ValidationError(f"{key} must be at least {minimum}")
    return number


def _int(payload: Mapping[str, Any], key: str, default: int, minimum: int) -> int:
    value = payload.get(key)
    if value is None or value == "":
        return default
    return parse_int(value, key, minimum)


def _decimal(payload: Mapping[str, Any], key: str) -> Optional[Decimal]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    number = to_decimal(value, key)
    if number < 0:
        raise ValidationError(f"{key} cannot be negative")
    return number


def parse_datetime(value: Any, name: str = "pickup_time") -> datetime:
    """Parse an ISO 8601 value; naive values are taken as UTC."""
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    if isinstance(value, datetime):
        when = value
    else:
        try:
            when = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"{name} must be an ISO 8601 date-time") from None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def parse_pickup_time(value: Any, now: datetime) -> datetime:
    when = parse_datetime(value)
    if when <= now:
        raise ValidationError("pickup_time must be in the future")
    return when


def dropoff_time(pickup_time: datetime, hours: Optional[float]) -> Optional[datetime]:
    if not hours:
        return None
    try:
        return pickup_time + timedelta(hours=hours)
    except OverflowError:
        raise ValidationError("pickup_time plus hours is out of range") from None


def _stops(raw: Any) -> tuple[StopRequest, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("stops must be a list")
    stops = []
    for index, item in enumerate(raw, start=1):
        if isinstance(item, str):
            item = {"location": item}
        if not isinstance(item, Mapping):
            raise ValidationError("each stop must be an object with a location")
        location = _text(item, "location")
        if not location:
            raise ValidationError(f"stop {index} is missing a location")
        stops.append(StopRequest(location=location, order=index, price=_decimal(item, "price")))
    return tuple(stops)


def _gratuity(raw: Any) -> Optional[dict[str, Any]]:
    if not raw:
        return None
    if not isinstance(raw, Mapping):
        raise ValidationError("gratuity must be an object")
    return dict(raw)


def _payment(raw: Any) -> PaymentRequest:
    if not isinstance(raw, Mapping):
        raise ValidationError("payment details are required")
    token = _text(raw, "token")
    if not token:
        raise ValidationError("payment token is required")
    provider = raw.get("provider")
    if provider in (None, ""):
        return PaymentRequest(token=token)
    try:
        return PaymentRequest(token=token, provider=PaymentProvider(provider))
    except ValueError:
        raise ValidationError(f"Unsupported payment provider: {provider}") from None


# ── Entry point ───────────────────────────────────────────────────────


def parse_booking_request(
    payload: Mapping[str, Any], now: Optional[datetime] = None
) -> BookingRequest:
    """Validate *payload* into a guest or account booking request."""
    if not isinstance(payload, Mapping):
        raise ValidationError("Booking payload must be an object")
    now = now or datetime.now(timezone.utc)

    # Identity is resolved first: it decides which variant we build.
    customer_id = payload.get("customer_id")
    name = _text(payload, "customer_name")
    email = _text(payload, "customer_email")
    phone = _text(payload, "customer_phone")
    if customer_id in (None, "") and not (name and email and phone):
        raise ValidationError(
            "Either a customer account or guest name, email and phone are required"
        )
    if customer_id in (None, "") and not _EMAIL_RE.match(email or ""):
        raise ValidationError("customer_email is not a valid e-mail address")

    pickup = _text(payload, "pickup_location")
    dropoff = _text(payload, "dropoff_location")
    if not pickup:
        raise ValidationError("pickup_location is required")
    if not dropoff:
        raise ValidationError("dropoff_location is required")
    pickup_time = parse_pickup_time(payload.get("pickup_time"), now)

    vehicle_id = payload.get("vehicle_id")
    vehicle_name = _text(payload, "vehicle_name")
    package_id = _text(payload, "package_id")
    if vehicle_id in (None, "") and not vehicle_name and not package_id:
        raise ValidationError("A vehicle or package selection is required")
    if vehicle_id in (None, ""):
        vehicle_id = None
    else:
        vehicle_id = _int(payload, "vehicle_id", 0, 1)

    hourly = bool(payload.get("hourly", False))
    hours_value = _decimal(payload, "hours")
    if hourly and not hours_value:
        raise ValidationError("hours are required for hourly packages")
    if hours_value and hours_value > MAX_HOURS:
        raise ValidationError(f"hours cannot exceed {MAX_HOURS}")
    hours = float(hours_value) if hours_value else None

    details = BookingDetails(
        pickup_location=pickup,
        dropoff_location=dropoff,
        pickup_time=pickup_time,
        payment=_payment(payload.get("payment")),
        dropoff_time=dropoff_time(pickup_time, hours),
        vehicle_id=vehicle_id,
        vehicle_name=vehicle_name,
        package_id=package_id,
        package_name=_text(payload, "package_name") or DEFAULT_PACKAGE_NAME,
        package_price=_decimal(payload, "package_price"),
        hourly=hourly,
        hourly_rate=_decimal(payload, "hourly_rate"),
        hours=hours,
        distance_miles=_decimal(payload, "distance_miles") or Decimal("0"),
        passengers=_int(payload, "passengers", 1, 1),
        car_seats=_int(payload, "car_seats", 0, 0),
        booster_seats=_int(payload, "booster_seats", 0, 0),
        stops=_stops(payload.get("stops")),
        gratuity=_gratuity(payload.get("gratuity")),
        notes=_text(payload, "notes"),
        special_instructions=_text(payload, "special_instructions"),
    )

    if customer_id not in (None, ""):
        return AccountBookingRequest(
            customer_id=_int(payload, "customer_id", 0, 1), details=details
        )
    return GuestBookingRequest(name=name, email=email, phone=phone, details=details)
