"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health             -- simple health check
GET /api/v1/admin/settings/pricing   -- current pricing settings
PUT /api/v1/admin/settings/pricing   -- partial update of pricing settings
GET /api/v1/drivers/{driver_id}/rides -- any driver's rides and earnings
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_orchestrator, get_settings_service, require_admin
from src.api.schemas import (
    BookingResponse,
    DriverRidesResponse,
    ErrorResponse,
    HealthResponse,
    PricingSettingsResponse,
    PricingSettingsUpdate,
)
from src.domain.enums import BookingStatus
from src.services.bookings import BookingOrchestrator
from src.services.settings import PricingSettingsService

router = APIRouter(prefix="/admin", tags=["admin"])
drivers_router = APIRouter(
    prefix="/drivers", tags=["drivers"], dependencies=[Depends(require_admin)]
)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()


@router.get(
    "/settings/pricing",
    response_model=PricingSettingsResponse,
    summary="Read pricing settings",
    dependencies=[Depends(require_admin)],
)
async def get_pricing_settings(
    service: PricingSettingsService = Depends(get_settings_service),
):
    return PricingSettingsResponse.from_settings(await service.get())


@router.put(
    "/settings/pricing",
    response_model=PricingSettingsResponse,
    summary="Update pricing settings",
    description="Only the fields present in the body change. ``max_fee: null`` removes the cap.",
    dependencies=[Depends(require_admin)],
    responses={400: {"model": ErrorResponse}},
)
async def update_pricing_settings(
    body: PricingSettingsUpdate,
    service: PricingSettingsService = Depends(get_settings_service),
):
    changes = {
        name: value
        for name, value in body.model_dump(exclude_unset=True).items()
        if value is not None or name == "max_fee"
    }
    return PricingSettingsResponse.from_settings(await service.update(changes))


@drivers_router.get(
    "/{driver_id}/rides",
    response_model=DriverRidesResponse,
    summary="Rides assigned to a driver with completed-ride earnings",
    responses={404: {"model": ErrorResponse}},
)
async def driver_rides(
    driver_id: int,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    rides = await orchestrator.driver_rides(driver_id)
    earnings = await orchestrator.driver_earnings(driver_id)
    return DriverRidesResponse(
        driver_id=driver_id,
        rides=[BookingResponse.from_entity(r) for r in rides],
        completed_rides=sum(1 for r in rides if r.status is BookingStatus.COMPLETED),
        earnings=float(earnings),
    )
