"""
Booking Pricing Engine  (Strategy Pattern)
==========================================

Formula
-------
Total = clamp(Base + Stops + Equipment + Distance_Fee + Per_Mile_Fee, Min_Fee, Max_Fee)

* **Base**: fixed package price, or vehicle hourly rate x hours
* **Stops**: ``stop_price`` per stop unless the stop carries its own price
* **Equipment**: car seats x ``car_seat_price`` + booster seats x ``booster_seat_price``
* **Distance_Fee**: flat ``distance_fee`` once distance exceeds ``distance_threshold``
* **Per_Mile_Fee**: ``per_mile_fee`` x distance

The flat and per-mile distance fees are independent and both apply when both
are enabled.  Gratuity is computed on the clamped total and is never clamped.

All amounts are ``Decimal`` quantised to cents (ROUND_HALF_UP).  The engine
takes ``PricingSettings`` explicitly and has no side effects.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from .errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any, name: str = "amount") -> Decimal:
    """Parse *value* as a finite ``Decimal`` or raise ``ValidationError``."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a number") from None
    if not number.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    return number


def money(value: Any, name: str = "amount") -> Decimal:
    """Coerce *value* to a cent-precision ``Decimal``."""
    if value is None:
        return ZERO
    try:
        return to_decimal(value, name).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{name} is too large") from None


def to_cents(amount: Any) -> int:
    return int((money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


# ── Settings ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PricingSettings:
    distance_fee_enabled: bool = False
    distance_threshold: float = 40.0
    distance_fee: float = 49.0
    per_mile_fee_enabled: bool = False
    per_mile_fee: float = 2.0
    min_fee: float = 0.0
    max_fee: Optional[float] = 1000.0  # None disables the upper clamp
    stop_price: float = 25.0
    car_seat_price: float = 15.0
    booster_seat_price: float = 10.0
    bookings_enabled: bool = True

    def validate(self) -> "PricingSettings":
        amounts = {
            "distance_threshold": self.distance_threshold,
            "distance_fee": self.distance_fee,
            "per_mile_fee": self.per_mile_fee,
            "min_fee": self.min_fee,
            "stop_price": self.stop_price,
            "car_seat_price": self.car_seat_price,
            "booster_seat_price": self.booster_seat_price,
        }
        if self.max_fee is not None:
            amounts["max_fee"] = self.max_fee
        for name, value in amounts.items():
            if value is None or value < 0:
                raise ValidationError(f"{name} must be a non-negative number")
        if self.max_fee is not None and self.min_fee > self.max_fee:
            raise ValidationError("min_fee cannot be greater than max_fee")
        return self

    def with_changes(self, **changes: Any) -> "PricingSettings":
        known = {f.name for f in dataclasses.fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValidationError(
                f"Unknown pricing setting(s): {', '.join(sorted(unknown))}"
            )
        return dataclasses.replace(self, **changes).validate()

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


# ── Inputs / outputs ──────────────────────────────────────────────────


@dataclass(frozen=True)
class QuoteInput:
    base: Decimal
    stop_overrides: tuple[Optional[Decimal], ...] = ()
    car_seats: int = 0
    booster_seats: int = 0
    distance_miles: Decimal = ZERO


@dataclass(frozen=True)
class Quote:
    base: Decimal
    stops: Decimal
    equipment: Decimal
    distance_fee: Decimal
    per_mile_fee: Decimal
    subtotal: Decimal
    total: Decimal
    lines: dict[str, Decimal] = field(default_factory=dict)


# ── Strategy hierarchy ────────────────────────────────────────────────


class SurchargeRule(ABC):
    name: str = ""

    @abstractmethod
    def apply(self, quote_input: QuoteInput, settings: PricingSettings) -> Decimal: ...


class StopSurcharge(SurchargeRule):
    name = "stops"

    def apply(self, quote_input: QuoteInput, settings: PricingSettings) -> Decimal:
        total = ZERO
        for override in quote_input.stop_overrides:
            total += money(settings.stop_price if override is None else override)
        return total


class EquipmentSurcharge(SurchargeRule):
    name = "equipment"

    def apply(self, quote_input: QuoteInput, settings: PricingSettings) -> Decimal:
        return money(
            quote_input.car_seats * money(settings.car_seat_price)
            + quote_input.booster_seats * money(settings.booster_seat_price)
        )


class FlatDistanceFee(SurchargeRule):
    name = "distance_fee"

    def apply(self, quote_input: QuoteInput, settings: PricingSettings) -> Decimal:
        if not settings.distance_fee_enabled:
            return ZERO
        if quote_input.distance_miles > Decimal(str(settings.distance_threshold)):
            return money(settings.distance_fee)
        return ZERO


class PerMileFee(SurchargeRule):
    name = "per_mile_fee"

    def apply(self, quote_input: QuoteInput, settings: PricingSettings) -> Decimal:
        if not settings.per_mile_fee_enabled:
            return ZERO
        return money(Decimal(str(settings.per_mile_fee)) * quote_input.distance_miles)


DEFAULT_RULES: tuple[SurchargeRule, ...] = (
    StopSurcharge(),
    EquipmentSurcharge(),
    FlatDistanceFee(),
    PerMileFee(),
)


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the booking orchestrator and the quote endpoint."""

    def __init__(
        self,
        settings: PricingSettings,
        rules: Sequence[SurchargeRule] = DEFAULT_RULES,
    ):
        self.settings = settings
        self.rules = tuple(rules)

    def clamp(self, amount: Decimal) -> Decimal:
        amount = max(amount, money(self.settings.min_fee))
        if self.settings.max_fee is not None:
            amount = min(amount, money(self.settings.max_fee))
        return amount

    def quote(self, quote_input: QuoteInput) -> Quote:
        if quote_input.base < 0:
            raise ValidationError("Base price cannot be negative")
        if quote_input.distance_miles < 0:
            raise ValidationError("Distance cannot be negative")
        if quote_input.car_seats < 0 or quote_input.booster_seats < 0:
            raise ValidationError("Seat counts cannot be negative")

        lines = {rule.name: rule.apply(quote_input, self.settings) for rule in self.rules}
        base = money(quote_input.base)
        subtotal = base + sum(lines.values(), ZERO)
        return Quote(
            base=base,
            stops=lines.get(StopSurcharge.name, ZERO),
            equipment=lines.get(EquipmentSurcharge.name, ZERO),
            distance_fee=lines.get(FlatDistanceFee.name, ZERO),
            per_mile_fee=lines.get(PerMileFee.name, ZERO),
            subtotal=subtotal,
            total=self.clamp(subtotal),
            lines=lines,
        )


def base_amount(
    package_price: Any = None,
    hourly_rate: Any = None,
    hours: Any = None,
) -> Decimal:
    """Fixed package price, or hourly rate x hours."""
    if package_price is not None:
        price = money(package_price)
        if price < 0:
            raise ValidationError("Package price cannot be negative")
        return price
    if hourly_rate is not None and hours:
        rate = money(hourly_rate)
        if rate < 0:
            raise ValidationError("Hourly rate cannot be negative")
        return money(rate * to_decimal(hours, "hours"))
    raise ValidationError(
        "A package price or an hourly vehicle rate with hours is required"
    )


def _stop_override(stop: Any) -> Optional[Decimal]:
    if stop is None:
        return None
    if isinstance(stop, dict):
        price = stop.get("price")
    elif isinstance(stop, (int, float, Decimal)):
        price = stop
    else:
        price = getattr(stop, "price", None)
    if price is None:
        return None
    price = money(price)
    if price < 0:
        raise ValidationError("Stop price cannot be negative")
    return price


def compute_total(
    base: Any,
    stops: Sequence[Any] = (),
    car_seats: int = 0,
    booster_seats: int = 0,
    distance: Any = 0,
    settings: Optional[PricingSettings] = None,
) -> Decimal:
    """Convenience wrapper returning only the clamped total."""
    engine = PricingEngine(settings or PricingSettings())
    quote = engine.quote(
        QuoteInput(
            base=money(base),
            stop_overrides=tuple(_stop_override(s) for s in stops),
            car_seats=car_seats,
            booster_seats=booster_seats,
            distance_miles=to_decimal(distance or 0, "distance"),
        )
    )
    return quote.total
