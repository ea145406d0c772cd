"""Unit tests for booking state transitions and gratuity (State Pattern)."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from src.domain.entities import Booking, Gratuity, StatusChange
from src.domain.enums import BookingStatus, GratuityType
from src.domain.errors import InvalidStateError, InvalidTransitionError, ValidationError


class TestBookingStateMachine:
    def test_initial_status_is_pending(self):
        assert Booking().status == BookingStatus.PENDING

    # ── Valid transitions ─────────────────────────────────────────

    @pytest.mark.parametrize(
        "start,target",
        [
            (BookingStatus.PENDING, BookingStatus.CONFIRMED),
            (BookingStatus.PENDING, BookingStatus.CANCELLED),
            (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
            (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED),
            (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED),
        ],
    )
    def test_allowed(self, start, target):
        booking = Booking(status=start)
        booking.transition_to(target)
        assert booking.status == target

    # ── Invalid transitions ───────────────────────────────────────

    def test_pending_to_completed_fails(self):
        booking = Booking(status=BookingStatus.PENDING)
        with pytest.raises(InvalidTransitionError):
            booking.transition_to(BookingStatus.COMPLETED)
        assert booking.status == BookingStatus.PENDING

    @pytest.mark.parametrize("terminal", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_terminal_states_are_final(self, terminal):
        booking = Booking(status=terminal)
        for target in BookingStatus:
            with pytest.raises(InvalidTransitionError):
                booking.transition_to(target)

    def test_same_status_rejected(self):
        booking = Booking(status=BookingStatus.CONFIRMED)
        with pytest.raises(InvalidTransitionError):
            booking.transition_to(BookingStatus.CONFIRMED)


class TestGratuity:
    def test_percentage(self):
        g = Gratuity.compute("percentage", Decimal("125.00"), percentage=20)
        assert g.amount == Decimal("25.00")
        assert g.charged_amount == Decimal("25.00")

    def test_percentage_rounds_to_cents(self):
        g = Gratuity.compute(GratuityType.PERCENTAGE, Decimal("99.99"), percentage=15)
        assert g.amount == Decimal("15.00")

    def test_custom(self):
        g = Gratuity.compute("custom", Decimal("100"), custom_amount="12.50")
        assert g.amount == Decimal("12.50")
        assert g.custom_amount == Decimal("12.50")

    def test_cash_is_recorded_but_not_charged(self):
        g = Gratuity.compute("cash", Decimal("100"), custom_amount=20)
        assert g.amount == Decimal("20.00")
        assert g.charged_amount == 0

    def test_none(self):
        g = Gratuity.compute("none", Decimal("100"), percentage=50)
        assert g.amount == 0

    def test_missing_percentage(self):
        with pytest.raises(ValidationError):
            Gratuity.compute("percentage", Decimal("100"))

    def test_negative_amount(self):
        with pytest.raises(ValidationError):
            Gratuity.compute("custom", Decimal("100"), custom_amount=-1)

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            Gratuity.compute("bitcoin", Decimal("100"))

    def test_from_input_accepts_amount_alias(self):
        g = Gratuity.from_input({"type": "custom", "amount": 15}, Decimal("100"))
        assert g.amount == Decimal("15.00")

    def test_dict_round_trip_preserves_type(self):
        g = Gratuity.compute("percentage", Decimal("200"), percentage=18)
        assert Gratuity.from_dict(g.as_dict()) == g


class TestApplyGratuity:
    def test_only_completed_bookings(self):
        booking = Booking(status=BookingStatus.CONFIRMED, price=Decimal("100.00"))
        with pytest.raises(InvalidStateError):
            booking.apply_gratuity(Gratuity.compute("custom", booking.price, custom_amount=10))

    def test_total_is_price_plus_gratuity(self):
        booking = Booking(status=BookingStatus.COMPLETED, price=Decimal("125.00"))
        booking.apply_gratuity(Gratuity.compute("percentage", booking.price, percentage=20))
        assert booking.total_amount == Decimal("150.00")


class TestStatusHistory:
    def test_transition_is_recorded(self):
        at = datetime(2030, 1, 1, 12, tzinfo=timezone.utc)
        booking = Booking()
        booking.transition_to(BookingStatus.CONFIRMED, changed_by="admin", at=at, comment="ok")
        assert booking.status_history == [
            StatusChange(BookingStatus.CONFIRMED, at, "admin", "ok")
        ]

    def test_rejected_transition_is_not_recorded(self):
        booking = Booking()
        with pytest.raises(InvalidTransitionError):
            booking.transition_to(BookingStatus.COMPLETED)
        assert booking.status_history == []

    def test_dict_round_trip(self):
        change = StatusChange(
            BookingStatus.IN_PROGRESS, datetime(2030, 1, 1, tzinfo=timezone.utc), "driver:3"
        )
        assert StatusChange.from_dict(change.as_dict()) == change

    def test_naive_timestamp_read_as_utc(self):
        change = StatusChange.from_dict({"status": "pending", "at": "2030-01-01T08:00:00"})
        assert change.at.tzinfo == timezone.utc
        assert change.changed_by == "system"


class TestGratuityNumbers:
    @pytest.mark.parametrize("percentage", ["abc", "NaN", "Infinity", True])
    def test_bad_percentage(self, percentage):
        with pytest.raises(ValidationError, match="percentage"):
            Gratuity.compute("percentage", Decimal("100"), percentage=percentage)

    @pytest.mark.parametrize("amount", ["lots", "NaN", "-Infinity"])
    def test_bad_custom_amount(self, amount):
        with pytest.raises(ValidationError, match="custom_amount"):
            Gratuity.compute("custom", Decimal("100"), custom_amount=amount)
