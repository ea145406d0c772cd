"""
Public catalogue endpoints
==========================

POST /api/v1/quotes           -- price a prospective booking
GET  /api/v1/settings/public  -- pricing fields the booking form displays
GET  /api/v1/vehicles         -- active fleet
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_orchestrator, get_settings_service
from src.api.middleware import limiter
from src.api.schemas import (
    ErrorResponse,
    PricingSettingsResponse,
    QuoteRequest,
    QuoteResponse,
    VehicleResponse,
)
from src.config import settings
from src.infrastructure.repositories import VehicleRepository
from src.services.bookings import BookingOrchestrator
from src.services.settings import PricingSettingsService

router = APIRouter(tags=["catalogue"])


@router.post(
    "/quotes",
    response_model=QuoteResponse,
    summary="Quote a booking with the current pricing settings",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def quote(
    request: Request,
    body: QuoteRequest,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.quote(
        package_price=body.package_price,
        vehicle_id=body.vehicle_id,
        hourly_rate=body.hourly_rate,
        hours=body.hours,
        stops=[stop.price for stop in body.stops],
        car_seats=body.car_seats,
        booster_seats=body.booster_seats,
        distance_miles=body.distance_miles,
    )
    return QuoteResponse.from_quote(result)


@router.get(
    "/settings/public",
    response_model=PricingSettingsResponse,
    summary="Public pricing settings",
)
async def public_settings(
    service: PricingSettingsService = Depends(get_settings_service),
):
    return PricingSettingsResponse.from_settings(await service.public_view())


@router.get("/vehicles", response_model=list[VehicleResponse], summary="Active vehicles")
async def list_vehicles(db: AsyncSession = Depends(get_db)):
    vehicles = await VehicleRepository(db).get_active()
    return [VehicleResponse.from_model(v) for v in vehicles]
