"""
Database seeding script.

Creates one user per role and a sample fleet (vehicles, drivers, a completed
trip with its fuel and maintenance records) for development.
Run this script after the database is set up but before first use.
"""

import asyncio
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.observability import setup_logging
from backend.app.core.security import get_password_hash
from backend.app.db.session import AsyncSessionLocal, engine, init_models
from backend.app.models.enums import UserRole
from backend.app.models.trip_enums import TripStatus
from backend.app.models.user import User
from backend.app.models.vehicle_enums import VehicleType
from backend.app.services.driver_lifecycle import DriverService
from backend.app.services.fuel import FuelService
from backend.app.services.maintenance import MaintenanceService
from backend.app.services.trip_state_machine import TripService
from backend.app.services.vehicle_lifecycle import VehicleService

logger = logging.getLogger("fleet.seed")

SEED_PASSWORD = "password123"

USERS = [
    ("John Fleet Manager", "fleet@fleetflow.io", UserRole.FLEET_MANAGER),
    ("Sarah Dispatcher", "dispatcher@fleetflow.io", UserRole.DISPATCHER),
    ("Mike Safety Officer", "safety@fleetflow.io", UserRole.SAFETY_OFFICER),
    ("Emily Financial Analyst", "finance@fleetflow.io", UserRole.FINANCIAL_ANALYST),
]

VEHICLES = [
    ("Heavy Hauler 1", "ABC-1234", VehicleType.TRUCK, 20000, 150000),
    ("City Runner", "XYZ-5678", VehicleType.VAN, 3000, 75000),
    ("Express Bike 1", "BIKE-001", VehicleType.BIKE, 50, 25000),
    ("Long Haul Truck", "DEF-9012", VehicleType.TRUCK, 25000, 200000),
    ("Delivery Van 2", "GHI-3456", VehicleType.VAN, 2500, 45000),
]

DRIVERS = [
    ("Robert Johnson", "A", "DL-100001"),
    ("Maria Garcia", "B", "DL-100002"),
    ("James Williams", "C", "DL-100003"),
    ("Linda Davis", "B", "DL-100004"),
    ("Michael Brown", "A", "DL-100005"),
]


async def seed_database(db: AsyncSession) -> bool:
    """
    Seed users and a sample fleet into an empty database.

    Returns False without writing anything when users already exist.
    """
    existing = (await db.execute(select(User.id).limit(1))).first()
    if existing:
        logger.info("Users already exist, skipping seeding")
        return False

    for name, email, role in USERS:
        db.add(User(
            email=email,
            name=name,
            hashed_password=get_password_hash(SEED_PASSWORD),
            role=role,
            is_active=True
        ))
    await db.commit()
    logger.info("Created %d users (password: %s)", len(USERS), SEED_PASSWORD)

    vehicles = [
        await VehicleService.create_vehicle(
            db, name=name, license_plate=plate, vehicle_type=vehicle_type,
            max_capacity=capacity, odometer=odometer
        )
        for name, plate, vehicle_type, capacity, odometer in VEHICLES
    ]
    expiry = date.today() + timedelta(days=730)
    drivers = [
        await DriverService.create_driver(
            db, name=name, license_category=category, license_number=number, license_expiry_date=expiry
        )
        for name, category, number in DRIVERS
    ]
    logger.info("Created %d vehicles and %d drivers", len(vehicles), len(drivers))

    hauler, van = vehicles[0], vehicles[1]
    trip = await TripService.create_trip(
        db, vehicle_id=hauler.id, driver_id=drivers[0].id, cargo_weight=15000,
        from_location="Warehouse A", to_location="Distribution Center B",
        start_odometer=hauler.odometer, revenue=4200
    )
    await TripService.update_status(db, trip.id, TripStatus.DISPATCHED)
    await TripService.update_status(db, trip.id, TripStatus.COMPLETED, end_odometer=hauler.odometer + 350)
    await FuelService.create_fuel_log(db, vehicle_id=hauler.id, liters=120, cost=180)

    await TripService.create_trip(
        db, vehicle_id=van.id, driver_id=drivers[1].id, cargo_weight=1200,
        from_location="Depot", to_location="Retail Park", start_odometer=van.odometer, revenue=650
    )

    await MaintenanceService.create_log(
        db, vehicle_id=vehicles[3].id, description="Scheduled brake inspection", cost=450
    )
    logger.info("Seeding completed")
    return True


async def main():
    setup_logging()
    await init_models()
    async with AsyncSessionLocal() as db:
        await seed_database(db)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
