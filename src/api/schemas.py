"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.domain.entities import Booking
from src.domain.enums import BookingStatus, GratuityType, PaymentStatus
from src.domain.pricing import PricingSettings, Quote

# Booking creation accepts a loosely-typed document that the domain parser
# validates; everything else is declared here.


# ── Requests ──────────────────────────────────────────────────────────


class AssignDriverRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: int = Field(..., alias="driverId", ge=1)
    send_email: bool = Field(True, alias="sendEmail")


class UpdateAssignmentsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: Optional[int] = Field(None, alias="driverId", ge=1)
    vehicle_id: Optional[int] = Field(None, alias="vehicleId", ge=1)


class StatusChangeRequest(BaseModel):
    status: str


class QuoteStop(BaseModel):
    location: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class QuoteRequest(BaseModel):
    package_price: Optional[float] = Field(None, ge=0)
    vehicle_id: Optional[int] = Field(None, ge=1)
    hourly_rate: Optional[float] = Field(None, ge=0)
    hours: Optional[float] = Field(None, gt=0)
    stops: list[QuoteStop] = []
    car_seats: int = Field(0, ge=0)
    booster_seats: int = Field(0, ge=0)
    distance_miles: float = Field(0, ge=0)


class PricingSettingsUpdate(BaseModel):
    """Partial update: only the fields present in the body are changed."""

    model_config = ConfigDict(extra="forbid")

    bookings_enabled: Optional[bool] = None
    distance_fee_enabled: Optional[bool] = None
    distance_threshold: Optional[float] = None
    distance_fee: Optional[float] = None
    per_mile_fee_enabled: Optional[bool] = None
    per_mile_fee: Optional[float] = None
    min_fee: Optional[float] = None
    max_fee: Optional[float] = None
    stop_price: Optional[float] = None
    car_seat_price: Optional[float] = None
    booster_seat_price: Optional[float] = None


# ── Responses ─────────────────────────────────────────────────────────


class StopResponse(BaseModel):
    location: str
    order: int
    price: float


class GratuityResponse(BaseModel):
    type: GratuityType
    amount: float
    percentage: Optional[float] = None
    custom_amount: Optional[float] = None


class StatusChangeResponse(BaseModel):
    status: BookingStatus
    at: datetime
    changed_by: str
    comment: Optional[str] = None


class BookingResponse(BaseModel):
    id: int
    customer_id: Optional[int] = None
    customer_name: str
    customer_email: str
    customer_phone: str
    vehicle_id: Optional[int] = None
    vehicle_name: Optional[str] = None
    driver_id: Optional[int] = None
    package_id: Optional[str] = None
    package_name: str
    pickup_location: str
    dropoff_location: str
    pickup_time: datetime
    dropoff_time: Optional[datetime] = None
    hours: Optional[float] = None
    passengers: int
    car_seats: int
    booster_seats: int
    stops: list[StopResponse] = []
    price: float
    gratuity: GratuityResponse
    total_amount: float
    status: BookingStatus
    payment_status: PaymentStatus
    payment_provider: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    special_instructions: Optional[str] = None
    status_history: list[StatusChangeResponse] = []
    # Only returned to the caller that created the booking
    access_token: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, booking: Booking, include_token: bool = False) -> "BookingResponse":
        return cls(
            id=booking.id,
            customer_id=booking.customer_id,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            customer_phone=booking.customer_phone,
            vehicle_id=booking.vehicle_id,
            vehicle_name=booking.vehicle_name,
            driver_id=booking.driver_id,
            package_id=booking.package_id,
            package_name=booking.package_name,
            pickup_location=booking.pickup_location,
            dropoff_location=booking.dropoff_location,
            pickup_time=booking.pickup_time,
            dropoff_time=booking.dropoff_time,
            hours=booking.hours,
            passengers=booking.passengers,
            car_seats=booking.car_seats,
            booster_seats=booking.booster_seats,
            stops=[StopResponse(**s.as_dict()) for s in booking.stops],
            price=float(booking.price),
            gratuity=GratuityResponse(**booking.gratuity.as_dict()),
            total_amount=float(booking.total_amount),
            status=booking.status,
            payment_status=booking.payment_status,
            payment_provider=booking.payment_provider,
            transaction_id=booking.transaction_id,
            notes=booking.notes,
            special_instructions=booking.special_instructions,
            status_history=[
                StatusChangeResponse(
                    status=c.status, at=c.at, changed_by=c.changed_by, comment=c.comment
                )
                for c in booking.status_history
            ],
            access_token=booking.access_token if include_token else None,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class QuoteResponse(BaseModel):
    base: float
    stops: float
    equipment: float
    distance_fee: float
    per_mile_fee: float
    subtotal: float
    total: float

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteResponse":
        return cls(
            base=float(quote.base),
            stops=float(quote.stops),
            equipment=float(quote.equipment),
            distance_fee=float(quote.distance_fee),
            per_mile_fee=float(quote.per_mile_fee),
            subtotal=float(quote.subtotal),
            total=float(quote.total),
        )


class PricingSettingsResponse(BaseModel):
    bookings_enabled: bool
    distance_fee_enabled: bool
    distance_threshold: float
    distance_fee: float
    per_mile_fee_enabled: bool
    per_mile_fee: float
    min_fee: float
    max_fee: Optional[float] = None
    stop_price: float
    car_seat_price: float
    booster_seat_price: float

    @classmethod
    def from_settings(cls, pricing: PricingSettings | dict[str, Any]) -> "PricingSettingsResponse":
        data = pricing if isinstance(pricing, dict) else pricing.as_dict()
        return cls(**data)


class VehicleResponse(BaseModel):
    id: int
    name: str
    make: str
    model: str
    year: Optional[int] = None
    capacity: int
    price_per_hour: float
    image_url: Optional[str] = None

    @classmethod
    def from_model(cls, vehicle) -> "VehicleResponse":
        return cls(
            id=vehicle.id,
            name=vehicle.name,
            make=vehicle.make,
            model=vehicle.model,
            year=vehicle.year,
            capacity=vehicle.capacity,
            price_per_hour=float(vehicle.price_per_hour),
            image_url=vehicle.image_url,
        )


class DriverRidesResponse(BaseModel):
    driver_id: int
    rides: list[BookingResponse]
    completed_rides: int
    earnings: float


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str
    code: str
