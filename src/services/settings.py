"""Pricing settings administration (singleton record)."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.pricing import PricingSettings
from src.infrastructure.repositories import SettingsRepository

logger = logging.getLogger(__name__)

PUBLIC_FIELDS = (
    "bookings_enabled",
    "distance_fee_enabled",
    "distance_threshold",
    "distance_fee",
    "per_mile_fee_enabled",
    "per_mile_fee",
    "min_fee",
    "max_fee",
    "stop_price",
    "car_seat_price",
    "booster_seat_price",
)


class PricingSettingsService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = SettingsRepository(session)

    async def get(self) -> PricingSettings:
        pricing = await self.repo.get_or_create()
        await self.session.commit()
        return pricing

    async def update(self, changes: Mapping[str, Any]) -> PricingSettings:
        current = await self.repo.get_or_create()
        updated = current.with_changes(**dict(changes))
        saved = await self.repo.save(updated)
        await self.session.commit()
        logger.info("Pricing settings updated: %s", sorted(changes))
        return saved

    async def public_view(self) -> dict[str, Any]:
        pricing = await self.repo.get()
        data = pricing.as_dict()
        return {name: data[name] for name in PUBLIC_FIELDS}
