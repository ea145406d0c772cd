"""
Seed script -- populates the database with sample data for local development.

Run after migrations:
    python seed.py

Creates:
  - 1 admin, 3 customers and 4 drivers; customers and drivers get a portal
    token (printed) for the X-Profile-Token header
  - 5 fleet vehicles (one in maintenance)
  - the pricing-settings singleton with defaults
"""

import asyncio
import secrets

from sqlalchemy import func, select

from src.domain.enums import DriverStatus, ProfileRole, VehicleStatus
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import ProfileModel, VehicleModel
from src.infrastructure.repositories import (
    ProfileRepository,
    SettingsRepository,
    VehicleRepository,
)

PROFILES = [
    {"first_name": "Dana", "last_name": "Whitaker", "email": "admin@example.com", "role": ProfileRole.ADMIN},
    {"first_name": "Maya", "last_name": "Lopez", "email": "maya@example.com", "phone": "+15550100001", "role": ProfileRole.CUSTOMER},
    {"first_name": "Omar", "last_name": "Haddad", "email": "omar@example.com", "phone": "+15550100002", "role": ProfileRole.CUSTOMER},
    {"first_name": "Lena", "last_name": "Berg", "email": "lena@example.com", "role": ProfileRole.CUSTOMER},
    {"first_name": "Victor", "last_name": "Reyes", "email": "victor@example.com", "phone": "+15550100101", "role": ProfileRole.DRIVER, "driver_status": DriverStatus.AVAILABLE},
    {"first_name": "Grace", "last_name": "Kim", "email": "grace@example.com", "phone": "+15550100102", "role": ProfileRole.DRIVER, "driver_status": DriverStatus.AVAILABLE},
    {"first_name": "Samuel", "last_name": "Okafor", "email": "samuel@example.com", "phone": "+15550100103", "role": ProfileRole.DRIVER, "driver_status": DriverStatus.BUSY},
    {"first_name": "Irene", "last_name": "Novak", "email": "irene@example.com", "role": ProfileRole.DRIVER},
]

VEHICLES = [
    {"name": "Executive Sedan", "make": "Mercedes-Benz", "model": "S-Class", "year": 2024, "capacity": 3, "price_per_hour": 95},
    {"name": "Luxury SUV", "make": "Cadillac", "model": "Escalade", "year": 2023, "capacity": 6, "price_per_hour": 125},
    {"name": "Stretch Limousine", "make": "Lincoln", "model": "Navigator L", "year": 2022, "capacity": 10, "price_per_hour": 175},
    {"name": "Sprinter Van", "make": "Mercedes-Benz", "model": "Sprinter", "year": 2024, "capacity": 14, "price_per_hour": 150},
    {"name": "Party Bus", "make": "Ford", "model": "F-550", "year": 2019, "capacity": 24, "price_per_hour": 250, "status": VehicleStatus.MAINTENANCE},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(ProfileModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Profiles ──────────────────────────────────────────────────
        profiles = ProfileRepository(session)
        for p in PROFILES:
            profile = ProfileModel(**p)
            if profile.role is not ProfileRole.ADMIN:
                profile.api_token = secrets.token_urlsafe(24)
            await profiles.create(profile)
            if profile.api_token:
                print(f"    {profile.email:<22} {profile.role.value:<8} token={profile.api_token}")
        print(f"  Created {len(PROFILES)} profiles")

        # ── Vehicles ──────────────────────────────────────────────────
        vehicles = VehicleRepository(session)
        for v in VEHICLES:
            await vehicles.create(VehicleModel(**v))
        print(f"  Created {len(VEHICLES)} vehicles")

        # ── Pricing settings ──────────────────────────────────────────
        await SettingsRepository(session).get_or_create()
        print("  Created pricing settings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
