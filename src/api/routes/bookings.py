"""
Booking endpoints
=================

POST  /api/v1/bookings                          -- charge and create a booking (201)
GET   /api/v1/bookings                          -- admin search
GET   /api/v1/bookings/customer                 -- the calling customer's bookings
GET   /api/v1/bookings/{id}                     -- booking details
PUT   /api/v1/bookings/{id}                     -- admin edit
PUT   /api/v1/bookings/{id}/assign-driver       -- assign driver, optionally notify
PUT   /api/v1/bookings/{id}/update-assignments  -- reassign driver / vehicle silently
PATCH /api/v1/bookings/{id}/status              -- lifecycle transition
POST  /api/v1/bookings/{id}/cancel              -- cancel a non-terminal booking
PUT   /api/v1/bookings/{id}/gratuity            -- tip a completed booking

Details, cancel and gratuity take either ``X-Admin-Key`` or the
``X-Booking-Token`` returned when the booking was created.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from src.api.dependencies import (
    booking_access,
    get_orchestrator,
    require_admin,
    require_customer,
)
from src.api.middleware import limiter
from src.api.schemas import (
    AssignDriverRequest,
    BookingResponse,
    ErrorResponse,
    StatusChangeRequest,
    UpdateAssignmentsRequest,
)
from src.config import settings
from src.infrastructure.models import ProfileModel
from src.services.bookings import BookingOrchestrator

router = APIRouter(prefix="/bookings", tags=["bookings"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Create a booking",
    responses={
        402: {"model": ErrorResponse, "description": "Payment declined."},
        403: {"model": ErrorResponse, "description": "Bookings are disabled."},
        **ERRORS,
    },
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    payload: dict[str, Any] = Body(...),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.create_booking(payload)
    return BookingResponse.from_entity(booking, include_token=True)


@router.get(
    "",
    response_model=list[BookingResponse],
    summary="Search bookings",
    dependencies=[Depends(require_admin)],
)
async def list_bookings(
    email: Optional[str] = None,
    customer_id: Optional[int] = Query(None, alias="customerId"),
    driver_id: Optional[int] = Query(None, alias="driverId"),
    status: Optional[str] = None,
    date: Optional[str] = Query(None, description="Pickup day (YYYY-MM-DD, UTC)"),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    bookings = await orchestrator.list_bookings(
        email=email,
        customer_id=customer_id,
        driver_id=driver_id,
        status=status,
        date=date,
    )
    return [BookingResponse.from_entity(b) for b in bookings]


# Registered before "/{booking_id}" so the literal path wins.
@router.get(
    "/customer",
    response_model=list[BookingResponse],
    summary="Bookings of the calling customer",
    responses=ERRORS,
)
async def customer_bookings(
    profile: ProfileModel = Depends(require_customer),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    bookings = await orchestrator.customer_bookings(profile.email)
    return [BookingResponse.from_entity(b) for b in bookings]


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking",
    responses=ERRORS,
)
async def get_booking(
    booking_id: int,
    access_token: Optional[str] = Depends(booking_access),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.get_booking(booking_id, access_token)
    return BookingResponse.from_entity(booking)


@router.put(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Edit booking details",
    dependencies=[Depends(require_admin)],
    responses=ERRORS,
)
async def update_booking(
    booking_id: int,
    changes: dict[str, Any] = Body(...),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.update_booking(booking_id, changes)
    return BookingResponse.from_entity(booking)


@router.put(
    "/{booking_id}/assign-driver",
    response_model=BookingResponse,
    summary="Assign a driver",
    description=(
        "Sets the driver and confirms a pending booking.  With ``sendEmail`` "
        "the customer is e-mailed and the driver receives an SMS."
    ),
    dependencies=[Depends(require_admin)],
    responses=ERRORS,
)
async def assign_driver(
    booking_id: int,
    body: AssignDriverRequest,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.assign_driver(
        booking_id, body.driver_id, notify=body.send_email
    )
    return BookingResponse.from_entity(booking)


@router.put(
    "/{booking_id}/update-assignments",
    response_model=BookingResponse,
    summary="Reassign driver and/or vehicle without notifications",
    dependencies=[Depends(require_admin)],
    responses=ERRORS,
)
async def update_assignments(
    booking_id: int,
    body: UpdateAssignmentsRequest,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.update_assignments(
        booking_id, driver_id=body.driver_id, vehicle_id=body.vehicle_id
    )
    return BookingResponse.from_entity(booking)


@router.patch(
    "/{booking_id}/status",
    response_model=BookingResponse,
    summary="Change booking status",
    dependencies=[Depends(require_admin)],
    responses=ERRORS,
)
async def change_status(
    booking_id: int,
    body: StatusChangeRequest,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.change_status(booking_id, body.status)
    return BookingResponse.from_entity(booking)


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
    responses=ERRORS,
)
async def cancel_booking(
    booking_id: int,
    access_token: Optional[str] = Depends(booking_access),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.cancel_booking(booking_id, access_token)
    return BookingResponse.from_entity(booking)


@router.put(
    "/{booking_id}/gratuity",
    response_model=BookingResponse,
    summary="Add gratuity to a completed booking",
    responses=ERRORS,
)
async def add_gratuity(
    booking_id: int,
    gratuity: dict[str, Any] = Body(...),
    access_token: Optional[str] = Depends(booking_access),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.add_gratuity(booking_id, gratuity, access_token)
    return BookingResponse.from_entity(booking)
