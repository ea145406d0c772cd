"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Booking``: enforces valid lifecycle transitions
  (PENDING -> CONFIRMED -> IN_PROGRESS -> COMPLETED, CANCELLED from any
  non-terminal state). Every accepted move is recorded as a ``StatusChange``.
- ``Gratuity`` is a value object whose ``amount`` is always derived from its
  ``type``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from .enums import (
    BOOKING_TRANSITIONS,
    BookingStatus,
    GratuityType,
    PaymentStatus,
)
from .errors import InvalidStateError, InvalidTransitionError, ValidationError
from .pricing import ZERO, money, to_decimal


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Stop:
    location: str
    order: int
    price: Decimal = ZERO

    def as_dict(self) -> dict[str, Any]:
        return {"location": self.location, "order": self.order, "price": float(self.price)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Stop":
        return cls(
            location=data["location"],
            order=int(data["order"]),
            price=money(data.get("price", 0)),
        )


@dataclass(frozen=True)
class Gratuity:
    type: GratuityType = GratuityType.NONE
    amount: Decimal = ZERO
    percentage: Optional[Decimal] = None
    custom_amount: Optional[Decimal] = None

    @classmethod
    def compute(
        cls,
        type: GratuityType | str,
        base: Any,
        percentage: Any = None,
        custom_amount: Any = None,
    ) -> "Gratuity":
        """Build a gratuity whose amount is consistent with its type."""
        try:
            kind = GratuityType(type)
        except ValueError:
            raise ValidationError(f"Unknown gratuity type: {type}") from None

        if kind is GratuityType.NONE:
            return cls()

        if kind is GratuityType.PERCENTAGE:
            if percentage is None:
                raise ValidationError("A percentage is required for percentage gratuity")
            pct = to_decimal(percentage, "percentage")
            if pct < 0:
                raise ValidationError("Gratuity percentage cannot be negative")
            return cls(
                type=kind,
                amount=money(money(base) * pct / 100),
                percentage=pct,
            )

        if custom_amount is None:
            raise ValidationError(f"An amount is required for {kind.value} gratuity")
        value = money(custom_amount, "custom_amount")
        if value < 0:
            raise ValidationError("Gratuity amount cannot be negative")
        return cls(type=kind, amount=value, custom_amount=value)

    @classmethod
    def from_input(cls, data: Optional[Mapping[str, Any]], base: Any) -> "Gratuity":
        if not data:
            return cls()
        return cls.compute(
            data.get("type", GratuityType.NONE.value),
            base,
            percentage=data.get("percentage"),
            custom_amount=data.get("custom_amount", data.get("amount")),
        )

    @property
    def charged_amount(self) -> Decimal:
        """Portion collected by card; cash tips are handed to the driver."""
        if self.type in (GratuityType.PERCENTAGE, GratuityType.CUSTOM):
            return self.amount
        return ZERO

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "amount": float(self.amount)}
        if self.percentage is not None:
            data["percentage"] = float(self.percentage)
        if self.custom_amount is not None:
            data["custom_amount"] = float(self.custom_amount)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Gratuity":
        if not data:
            return cls()
        pct = data.get("percentage")
        custom = data.get("custom_amount")
        return cls(
            type=GratuityType(data.get("type", GratuityType.NONE.value)),
            amount=money(data.get("amount", 0)),
            percentage=Decimal(str(pct)) if pct is not None else None,
            custom_amount=money(custom) if custom is not None else None,
        )


@dataclass(frozen=True)
class StatusChange:
    """One entry of a booking's status history."""

    status: BookingStatus
    at: datetime
    changed_by: str = "system"
    comment: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "at": self.at.isoformat(),
            "changed_by": self.changed_by,
            "comment": self.comment,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StatusChange":
        at = datetime.fromisoformat(data["at"])
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        return cls(
            status=BookingStatus(data["status"]),
            at=at,
            changed_by=data.get("changed_by") or "system",
            comment=data.get("comment"),
        )


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Booking:
    id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    vehicle_id: Optional[int] = None
    vehicle_name: Optional[str] = None
    driver_id: Optional[int] = None
    package_id: Optional[str] = None
    package_name: str = "Custom Ride"
    pickup_location: str = ""
    dropoff_location: str = ""
    pickup_time: Optional[datetime] = None
    dropoff_time: Optional[datetime] = None
    hours: Optional[float] = None
    passengers: int = 1
    car_seats: int = 0
    booster_seats: int = 0
    stops: list[Stop] = field(default_factory=list)
    price: Decimal = ZERO
    gratuity: Gratuity = field(default_factory=Gratuity)
    total_amount: Decimal = ZERO
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_provider: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    special_instructions: Optional[str] = None
    access_token: Optional[str] = None
    status_history: list[StatusChange] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def transition_to(
        self,
        new_status: BookingStatus,
        changed_by: str = "system",
        at: Optional[datetime] = None,
        comment: Optional[str] = None,
    ) -> None:
        """Move to *new_status* if the transition is legal, else raise.

        Every accepted move is appended to ``status_history``.
        """
        allowed = BOOKING_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status
        self.status_history.append(
            StatusChange(
                status=new_status,
                at=at or datetime.now(timezone.utc),
                changed_by=changed_by,
                comment=comment,
            )
        )

    def apply_gratuity(self, gratuity: Gratuity) -> None:
        if self.status is not BookingStatus.COMPLETED:
            raise InvalidStateError(
                "Gratuity can only be added to completed bookings"
            )
        self.gratuity = gratuity
        self.total_amount = money(self.price + gratuity.amount)
