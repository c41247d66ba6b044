"""
Trip state machine tests.

Covers creation validation order, dispatch/complete/cancel cascades, and
that a refused operation leaves trip, vehicle and driver untouched.
"""

from datetime import date, timedelta

import pytest

from backend.app.core.exceptions import (
    CapacityExceededError,
    ExpiredLicenseError,
    InvalidTransitionError,
    MissingFieldError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from backend.app.models.driver import Driver
from backend.app.models.driver_enums import DriverStatus
from backend.app.models.trip import Trip
from backend.app.models.trip_enums import TripStatus
from backend.app.models.vehicle import Vehicle
from backend.app.models.vehicle_enums import VehicleStatus, VehicleType
from backend.app.services.audit import AuditAction, get_audit_trail
from backend.app.services.driver_lifecycle import DriverService
from backend.app.services.trip_state_machine import TripService
from backend.app.services.vehicle_lifecycle import VehicleService


async def _reload(db, model, id_):
    obj = await db.get(model, id_)
    await db.refresh(obj)
    return obj


# --- Creation ---

@pytest.mark.asyncio
async def test_create_draft_reserves_nothing(db_session, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()

    trip = await TripService.create_trip(
        db_session, vehicle.id, driver.id, cargo_weight=1000,
        from_location=" Depot ", to_location="Port", start_odometer=100
    )

    assert trip.status == TripStatus.DRAFT
    assert trip.from_location == "Depot"
    assert trip.revenue == 0
    assert (await _reload(db_session, Vehicle, vehicle.id)).status == VehicleStatus.AVAILABLE
    assert (await _reload(db_session, Driver, driver.id)).status == DriverStatus.AVAILABLE


@pytest.mark.asyncio
async def test_capacity_exceeded(make_trip, make_vehicle):
    vehicle = await make_vehicle(max_capacity=1000)

    with pytest.raises(CapacityExceededError) as exc_info:
        await make_trip(vehicle=vehicle, cargo_weight=1000.5)

    assert exc_info.value.details["field"] == "cargo_weight"


@pytest.mark.asyncio
async def test_unknown_vehicle_reported_before_unknown_driver(db_session):
    with pytest.raises(NotFoundError) as exc_info:
        await TripService.create_trip(db_session, 404, 405, 10, "A", "B", 0)

    assert exc_info.value.details == {"resource": "Vehicle", "id": 404}


@pytest.mark.asyncio
async def test_capacity_checked_before_availability(make_trip, make_vehicle):
    vehicle = await make_vehicle(status=VehicleStatus.IN_SHOP, max_capacity=10)

    with pytest.raises(CapacityExceededError):
        await make_trip(vehicle=vehicle, cargo_weight=50)


@pytest.mark.asyncio
async def test_vehicle_checked_before_driver(make_trip, make_vehicle, make_driver):
    vehicle = await make_vehicle(status=VehicleStatus.RETIRED)
    driver = await make_driver(status=DriverStatus.SUSPENDED)

    with pytest.raises(UnavailableError) as exc_info:
        await make_trip(vehicle=vehicle, driver=driver)

    assert exc_info.value.details["resource"] == "Vehicle"


@pytest.mark.asyncio
async def test_driver_unavailable(make_trip, make_driver):
    driver = await make_driver(status=DriverStatus.SUSPENDED)

    with pytest.raises(UnavailableError) as exc_info:
        await make_trip(driver=driver)

    assert exc_info.value.details["resource"] == "Driver"


@pytest.mark.asyncio
async def test_expired_license_blocks_creation(db_session, make_trip, make_driver):
    driver = await make_driver()
    # Licenses lapse while the driver stays Available
    driver.license_expiry_date = date.today() - timedelta(days=1)
    await db_session.commit()

    with pytest.raises(ExpiredLicenseError):
        await make_trip(driver=driver)


# --- Dispatch ---

@pytest.mark.asyncio
async def test_dispatch_cascades(db_session, make_trip):
    trip = await make_trip()

    dispatched = await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)

    assert dispatched.status == TripStatus.DISPATCHED
    assert dispatched.dispatched_at is not None
    assert (await _reload(db_session, Vehicle, trip.vehicle_id)).status == VehicleStatus.ON_TRIP
    assert (await _reload(db_session, Driver, trip.driver_id)).status == DriverStatus.ON_DUTY

    actions = {e.action for e in await get_audit_trail(db_session)}
    assert {AuditAction.TRIP_DISPATCHED, AuditAction.VEHICLE_STATUS_CHANGED,
            AuditAction.DRIVER_STATUS_CHANGED} <= actions


@pytest.mark.asyncio
async def test_second_draft_on_same_vehicle_cannot_dispatch(db_session, make_trip, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    first = await make_trip(vehicle=vehicle)
    second = await make_trip(vehicle=vehicle)

    await TripService.update_status(db_session, first.id, TripStatus.DISPATCHED)

    with pytest.raises(UnavailableError):
        await TripService.update_status(db_session, second.id, TripStatus.DISPATCHED)

    second = await _reload(db_session, type(second), second.id)
    assert second.status == TripStatus.DRAFT
    assert (await _reload(db_session, Driver, second.driver_id)).status == DriverStatus.AVAILABLE


@pytest.mark.asyncio
async def test_dispatch_with_vehicle_in_shop_changes_nothing(db_session, make_trip):
    trip = await make_trip()
    await VehicleService.set_status(db_session, trip.vehicle_id, VehicleStatus.IN_SHOP)

    with pytest.raises(UnavailableError):
        await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)

    assert (await _reload(db_session, type(trip), trip.id)).status == TripStatus.DRAFT
    assert (await _reload(db_session, Vehicle, trip.vehicle_id)).status == VehicleStatus.IN_SHOP
    assert (await _reload(db_session, Driver, trip.driver_id)).status == DriverStatus.AVAILABLE


@pytest.mark.asyncio
async def test_dispatch_with_expired_license(db_session, make_trip):
    trip = await make_trip()
    driver = await DriverService.get_driver(db_session, trip.driver_id)
    driver.license_expiry_date = date.today() - timedelta(days=1)
    await db_session.commit()

    with pytest.raises(ExpiredLicenseError):
        await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)

    assert (await _reload(db_session, Vehicle, trip.vehicle_id)).status == VehicleStatus.AVAILABLE


@pytest.mark.asyncio
async def test_dispatch_after_vehicle_deleted(db_session, make_trip):
    trip = await make_trip()
    await VehicleService.delete_vehicle(db_session, trip.vehicle_id)
    await db_session.refresh(trip)

    with pytest.raises(NotFoundError):
        await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)


# --- Completion ---

@pytest.mark.asyncio
async def test_complete_requires_end_odometer(db_session, make_trip):
    trip = await make_trip()
    await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)

    with pytest.raises(MissingFieldError):
        await TripService.update_status(db_session, trip.id, TripStatus.COMPLETED)

    assert (await _reload(db_session, type(trip), trip.id)).status == TripStatus.DISPATCHED


@pytest.mark.asyncio
async def test_complete_rejects_end_before_start(db_session, make_trip):
    trip = await make_trip(start_odometer=300)
    await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)

    with pytest.raises(ValidationError):
        await TripService.update_status(db_session, trip.id, TripStatus.COMPLETED, end_odometer=299)

    assert (await _reload(db_session, Vehicle, trip.vehicle_id)).status == VehicleStatus.ON_TRIP


@pytest.mark.asyncio
async def test_complete_with_zero_distance(db_session, make_trip):
    trip = await make_trip(start_odometer=100)
    await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)

    completed = await TripService.update_status(db_session, trip.id, TripStatus.COMPLETED, end_odometer=100)

    assert completed.distance_traveled == 0


@pytest.mark.asyncio
async def test_end_to_end_delivery(db_session, make_vehicle, make_driver):
    vehicle = await make_vehicle(max_capacity=1000, odometer=100)
    driver = await make_driver(license_expiry_date=date.today() + timedelta(days=365))

    trip = await TripService.create_trip(
        db_session, vehicle.id, driver.id, cargo_weight=500,
        from_location="Warehouse", to_location="Store", start_odometer=100, revenue=1500
    )
    await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)
    completed = await TripService.update_status(db_session, trip.id, TripStatus.COMPLETED, end_odometer=250)

    assert completed.status == TripStatus.COMPLETED
    assert completed.completed_at is not None
    assert completed.distance_traveled == 150

    vehicle = await _reload(db_session, Vehicle, vehicle.id)
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.odometer == 250
    assert (await _reload(db_session, Driver, driver.id)).status == DriverStatus.AVAILABLE


# --- Cancellation ---

@pytest.mark.asyncio
async def test_cancel_draft_touches_nothing_else(db_session, make_trip, make_vehicle):
    vehicle = await make_vehicle()
    trip = await make_trip(vehicle=vehicle)
    await VehicleService.set_status(db_session, vehicle.id, VehicleStatus.IN_SHOP)

    cancelled = await TripService.update_status(db_session, trip.id, TripStatus.CANCELLED)

    assert cancelled.status == TripStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert (await _reload(db_session, Vehicle, vehicle.id)).status == VehicleStatus.IN_SHOP


@pytest.mark.asyncio
async def test_cancel_dispatched_releases(db_session, make_trip):
    trip = await make_trip()
    await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)

    await TripService.update_status(db_session, trip.id, TripStatus.CANCELLED)

    assert (await _reload(db_session, Vehicle, trip.vehicle_id)).status == VehicleStatus.AVAILABLE
    assert (await _reload(db_session, Driver, trip.driver_id)).status == DriverStatus.AVAILABLE


async def _trip_in(db, make_trip, start):
    """A trip moved into `start`, with its vehicle and driver busy on a later trip."""
    trip = await make_trip()
    if start == TripStatus.COMPLETED:
        await TripService.update_status(db, trip.id, TripStatus.DISPATCHED)
        await TripService.update_status(db, trip.id, TripStatus.COMPLETED, end_odometer=250)
    elif start == TripStatus.CANCELLED:
        await TripService.update_status(db, trip.id, TripStatus.DISPATCHED)
        await TripService.update_status(db, trip.id, TripStatus.CANCELLED)

    if start != TripStatus.DRAFT:
        vehicle = await _reload(db, Vehicle, trip.vehicle_id)
        driver = await _reload(db, Driver, trip.driver_id)
        later = await make_trip(vehicle=vehicle, driver=driver, start_odometer=vehicle.odometer)
        await TripService.update_status(db, later.id, TripStatus.DISPATCHED)
    return trip


async def _snapshot(session_factory, trip_id):
    async with session_factory() as session:
        trip = await session.get(Trip, trip_id)
        vehicle = await session.get(Vehicle, trip.vehicle_id)
        driver = await session.get(Driver, trip.driver_id)
        return (
            trip.status, trip.end_odometer, trip.dispatched_at, trip.completed_at, trip.cancelled_at,
            vehicle.status, vehicle.odometer, driver.status,
        )


ILLEGAL_MOVES = [
    (TripStatus.DRAFT, TripStatus.DRAFT),
    (TripStatus.DRAFT, TripStatus.COMPLETED),
] + [
    (start, target)
    for start in (TripStatus.COMPLETED, TripStatus.CANCELLED)
    for target in TripStatus
]


@pytest.mark.asyncio
@pytest.mark.parametrize("start,target", ILLEGAL_MOVES, ids=lambda s: s.value)
async def test_illegal_transition_changes_nothing(db_session, session_factory, make_trip, start, target):
    trip = await _trip_in(db_session, make_trip, start)
    before = await _snapshot(session_factory, trip.id)

    with pytest.raises(InvalidTransitionError):
        await TripService.update_status(db_session, trip.id, target, end_odometer=500)

    assert await _snapshot(session_factory, trip.id) == before


@pytest.mark.asyncio
async def test_transition_checked_before_odometer(db_session, make_trip):
    trip = await make_trip()

    # Draft -> Completed is illegal regardless of the missing end odometer
    with pytest.raises(InvalidTransitionError):
        await TripService.update_status(db_session, trip.id, TripStatus.COMPLETED)


@pytest.mark.asyncio
async def test_list_by_vehicle_type(db_session, make_trip, make_vehicle):
    van = await make_vehicle(vehicle_type=VehicleType.VAN)
    await make_trip(vehicle=van)
    await make_trip()

    trips, total = await TripService.list_trips(db_session, vehicle_type=VehicleType.VAN)

    assert total == 1
    assert trips[0].vehicle_id == van.id
