"""Plain-text / minimal HTML message bodies for booking notifications."""

from __future__ import annotations

from html import escape
from typing import Any, Mapping

BRAND = "Limo Booking"


def _money(value: Any) -> str:
    return f"${float(value or 0):.2f}"


def _html(title: str, lines: list[str]) -> str:
    items = "".join(f"<p>{escape(line)}</p>" for line in lines)
    return f"<html><body><h2>{escape(title)}</h2>{items}<p>{BRAND}</p></body></html>"


def _trip_lines(booking: Mapping[str, Any]) -> list[str]:
    lines = [
        f"Booking #{booking.get('id')}",
        f"Pickup: {booking.get('pickup_location')}",
        f"Dropoff: {booking.get('dropoff_location')}",
        f"Pickup time: {booking.get('pickup_time')}",
        f"Vehicle: {booking.get('vehicle_name') or 'To be assigned'}",
        f"Package: {booking.get('package_name')}",
        f"Passengers: {booking.get('passengers')}",
    ]
    for stop in booking.get("stops") or []:
        lines.append(f"Stop {stop.get('order')}: {stop.get('location')}")
    gratuity = booking.get("gratuity") or {}
    if gratuity.get("type", "none") != "none":
        lines.append(f"Gratuity: {_money(gratuity.get('amount'))} ({gratuity.get('type')})")
    lines.append(f"Total: {_money(booking.get('total_amount'))}")
    return lines


def booking_confirmation(booking: Mapping[str, Any]) -> tuple[str, str, str]:
    """Return (subject, html, text) for the customer confirmation e-mail."""
    subject = f"Booking Confirmation #{booking.get('id')} - {BRAND}"
    lines = [f"Hello {booking.get('customer_name')},", "Thank you for your booking."]
    lines += _trip_lines(booking)
    return subject, _html("Booking Confirmation", lines), "\n".join(lines)


def admin_booking_notification(booking: Mapping[str, Any]) -> tuple[str, str, str]:
    subject = f"New Booking #{booking.get('id')} - {booking.get('customer_name')}"
    lines = [
        f"Customer: {booking.get('customer_name')}",
        f"Email: {booking.get('customer_email')}",
        f"Phone: {booking.get('customer_phone')}",
        f"Status: {booking.get('status')}",
    ]
    lines += _trip_lines(booking)
    return subject, _html("New Booking", lines), "\n".join(lines)


def booking_confirmation_sms(booking: Mapping[str, Any]) -> str:
    return (
        f"{BRAND}: booking #{booking.get('id')} received for "
        f"{booking.get('pickup_time')} from {booking.get('pickup_location')}. "
        f"Total {_money(booking.get('total_amount'))}."
    )


def driver_assignment(
    booking: Mapping[str, Any], driver: Mapping[str, Any]
) -> tuple[str, str, str]:
    """E-mail telling the customer who will drive them."""
    subject = f"Your Driver Has Been Assigned - Booking #{booking.get('id')}"
    lines = [
        f"Hello {booking.get('customer_name')},",
        f"Your driver is {driver.get('name')}.",
        f"Driver phone: {driver.get('phone') or 'N/A'}",
    ]
    lines += _trip_lines(booking)
    return subject, _html("Driver Assigned", lines), "\n".join(lines)


def driver_assignment_sms(booking: Mapping[str, Any]) -> str:
    return (
        f"{BRAND}: new ride #{booking.get('id')} at {booking.get('pickup_time')}. "
        f"Pickup {booking.get('pickup_location')} -> {booking.get('dropoff_location')}. "
        f"Customer {booking.get('customer_name')} {booking.get('customer_phone')}."
    )
