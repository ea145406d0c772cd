"""
Driver portal endpoints
=======================

GET   /api/v1/driver/rides              -- rides assigned to the calling driver
PATCH /api/v1/driver/rides/{id}/status  -- start or complete one of them

Callers authenticate with their ``X-Profile-Token``.
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_orchestrator, require_driver
from src.api.schemas import (
    BookingResponse,
    DriverRidesResponse,
    ErrorResponse,
    StatusChangeRequest,
)
from src.domain.enums import BookingStatus
from src.infrastructure.models import ProfileModel
from src.services.bookings import BookingOrchestrator

router = APIRouter(prefix="/driver", tags=["driver"])


@router.get(
    "/rides",
    response_model=DriverRidesResponse,
    summary="My rides and completed-ride earnings",
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def my_rides(
    driver: ProfileModel = Depends(require_driver),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    rides = await orchestrator.driver_rides(driver.id)
    earnings = await orchestrator.driver_earnings(driver.id)
    return DriverRidesResponse(
        driver_id=driver.id,
        rides=[BookingResponse.from_entity(r) for r in rides],
        completed_rides=sum(1 for r in rides if r.status is BookingStatus.COMPLETED),
        earnings=float(earnings),
    )


@router.patch(
    "/rides/{booking_id}/status",
    response_model=BookingResponse,
    summary="Start or complete an assigned ride",
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_ride_status(
    booking_id: int,
    body: StatusChangeRequest,
    driver: ProfileModel = Depends(require_driver),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    booking = await orchestrator.driver_change_status(driver.id, booking_id, body.status)
    return BookingResponse.from_entity(booking)
