"""Unit tests for the booking pricing engine."""

from decimal import Decimal

import pytest

from src.domain.errors import ValidationError
from src.domain.pricing import (
    EquipmentSurcharge,
    FlatDistanceFee,
    PerMileFee,
    PricingEngine,
    PricingSettings,
    QuoteInput,
    StopSurcharge,
    base_amount,
    compute_total,
    money,
    to_decimal,
    to_cents,
)


def D(value) -> Decimal:
    return Decimal(str(value))


class TestSurchargeRules:
    def test_stop_uses_default_price(self):
        rule = StopSurcharge()
        assert rule.apply(QuoteInput(base=D(0), stop_overrides=(None, None)), PricingSettings()) == D("50.00")

    def test_stop_override_wins(self):
        rule = StopSurcharge()
        quote_input = QuoteInput(base=D(0), stop_overrides=(D(40), None))
        assert rule.apply(quote_input, PricingSettings()) == D("65.00")

    def test_equipment(self):
        rule = EquipmentSurcharge()
        quote_input = QuoteInput(base=D(0), car_seats=2, booster_seats=1)
        assert rule.apply(quote_input, PricingSettings()) == D("40.00")  # 2*15 + 10

    def test_flat_distance_fee_disabled_by_default(self):
        rule = FlatDistanceFee()
        assert rule.apply(QuoteInput(base=D(0), distance_miles=D(100)), PricingSettings()) == 0

    def test_flat_distance_fee_applies_above_threshold_only(self):
        rule = FlatDistanceFee()
        settings = PricingSettings(distance_fee_enabled=True)
        assert rule.apply(QuoteInput(base=D(0), distance_miles=D(40)), settings) == 0
        assert rule.apply(QuoteInput(base=D(0), distance_miles=D("40.1")), settings) == D("49.00")

    def test_per_mile_fee(self):
        rule = PerMileFee()
        settings = PricingSettings(per_mile_fee_enabled=True, per_mile_fee=2)
        assert rule.apply(QuoteInput(base=D(0), distance_miles=D("12.5")), settings) == D("25.00")


class TestPricingEngine:
    def test_base_only(self):
        assert compute_total(100) == D("100.00")

    def test_stop_added_to_base(self):
        assert compute_total(100, stops=[{"location": "Midtown"}]) == D("125.00")

    def test_clamped_to_max_fee(self):
        settings = PricingSettings(max_fee=100)
        assert compute_total(100, stops=[{"location": "Midtown"}], settings=settings) == D("100.00")

    def test_clamped_to_min_fee(self):
        settings = PricingSettings(min_fee=75)
        assert compute_total(20, settings=settings) == D("75.00")

    def test_max_fee_none_disables_upper_clamp(self):
        settings = PricingSettings(max_fee=None)
        assert compute_total(5000, settings=settings) == D("5000.00")

    def test_distance_fee_example(self):
        settings = PricingSettings(distance_fee_enabled=True)
        assert compute_total(245, distance=50, settings=settings) == D("294.00")

    def test_flat_and_per_mile_fees_are_additive(self):
        settings = PricingSettings(
            distance_fee_enabled=True, per_mile_fee_enabled=True, per_mile_fee=2
        )
        engine = PricingEngine(settings)
        quote = engine.quote(QuoteInput(base=D(100), distance_miles=D(50)))
        assert quote.distance_fee == D("49.00")
        assert quote.per_mile_fee == D("100.00")
        assert quote.total == D("249.00")

    def test_quote_breakdown(self):
        engine = PricingEngine(PricingSettings())
        quote = engine.quote(
            QuoteInput(base=D(200), stop_overrides=(None,), car_seats=1, booster_seats=1)
        )
        assert quote.base == D("200.00")
        assert quote.stops == D("25.00")
        assert quote.equipment == D("25.00")
        assert quote.subtotal == D("250.00")
        assert quote.total == D("250.00")

    def test_negative_inputs_rejected(self):
        engine = PricingEngine(PricingSettings())
        with pytest.raises(ValidationError):
            engine.quote(QuoteInput(base=D(-1)))
        with pytest.raises(ValidationError):
            engine.quote(QuoteInput(base=D(10), distance_miles=D(-5)))
        with pytest.raises(ValidationError):
            engine.quote(QuoteInput(base=D(10), car_seats=-1))

    def test_negative_stop_price_rejected(self):
        with pytest.raises(ValidationError):
            compute_total(100, stops=[{"location": "x", "price": -5}])


class TestBaseAmount:
    def test_package_price(self):
        assert base_amount(package_price=150) == D("150.00")

    def test_hourly(self):
        assert base_amount(hourly_rate=95, hours=3) == D("285.00")

    def test_fractional_hours(self):
        assert base_amount(hourly_rate="99.99", hours=1.5) == D("149.99")

    def test_nothing_to_price(self):
        with pytest.raises(ValidationError):
            base_amount()


class TestSettings:
    def test_defaults(self):
        s = PricingSettings()
        assert (s.stop_price, s.car_seat_price, s.booster_seat_price) == (25, 15, 10)
        assert s.max_fee == 1000 and s.min_fee == 0
        assert s.bookings_enabled is True

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            PricingSettings().with_changes(min_fee=500, max_fee=100)

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            PricingSettings().with_changes(stop_price=-1)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            PricingSettings().with_changes(surge=2)

    def test_with_changes_returns_new_value(self):
        original = PricingSettings()
        updated = original.with_changes(stop_price=30)
        assert updated.stop_price == 30
        assert original.stop_price == 25


class TestMoney:
    def test_rounds_half_up(self):
        assert money("10.005") == D("10.01")

    def test_to_cents(self):
        assert to_cents(D("125.50")) == 12550

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", "-inf", True])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValidationError):
            money(value)

    def test_rejects_amounts_too_large_to_quantize(self):
        with pytest.raises(ValidationError, match="too large"):
            money("1e40")

    def test_none_is_zero(self):
        assert money(None) == D("0")

    def test_to_decimal_names_the_field(self):
        with pytest.raises(ValidationError, match="hours"):
            to_decimal("NaN", "hours")
        assert to_decimal(" 2.5 ") == D("2.5")

    def test_base_amount_rejects_non_finite_hours(self):
        with pytest.raises(ValidationError):
            base_amount(hourly_rate=95, hours=float("inf"))
