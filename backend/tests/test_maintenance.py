"""
Maintenance workflow tests: shop entry, completion, deletion.
"""

from datetime import date

import pytest

from backend.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from backend.app.models.maintenance_log import MaintenanceLog
from backend.app.models.trip_enums import TripStatus
from backend.app.models.vehicle import Vehicle
from backend.app.models.vehicle_enums import VehicleStatus
from backend.app.services.maintenance import MaintenanceService
from backend.app.services.trip_state_machine import TripService


async def _vehicle_status(db, vehicle_id):
    vehicle = await db.get(Vehicle, vehicle_id)
    await db.refresh(vehicle)
    return vehicle.status


@pytest.mark.asyncio
async def test_logging_sends_vehicle_to_shop(db_session, make_vehicle):
    vehicle = await make_vehicle()

    log = await MaintenanceService.create_log(db_session, vehicle.id, " Oil change ", 120.5)

    assert log.description == "Oil change"
    assert log.date == date.today()
    assert await _vehicle_status(db_session, vehicle.id) == VehicleStatus.IN_SHOP


@pytest.mark.asyncio
async def test_logging_in_shop_vehicle_is_idempotent(db_session, make_vehicle):
    vehicle = await make_vehicle()

    await MaintenanceService.create_log(db_session, vehicle.id, "Brakes", 300)
    await MaintenanceService.create_log(db_session, vehicle.id, "Tyres", 200)

    _, total = await MaintenanceService.list_logs(db_session, vehicle_id=vehicle.id)
    assert total == 2
    assert await _vehicle_status(db_session, vehicle.id) == VehicleStatus.IN_SHOP


@pytest.mark.asyncio
async def test_logging_retired_vehicle_moves_it_to_shop(db_session, make_vehicle):
    vehicle = await make_vehicle(status=VehicleStatus.RETIRED)

    await MaintenanceService.create_log(db_session, vehicle.id, "Inspection", 50)

    assert await _vehicle_status(db_session, vehicle.id) == VehicleStatus.IN_SHOP


@pytest.mark.asyncio
async def test_logging_on_trip_vehicle_refused(db_session, make_trip):
    trip = await make_trip()
    await TripService.update_status(db_session, trip.id, TripStatus.DISPATCHED)

    with pytest.raises(ConflictError):
        await MaintenanceService.create_log(db_session, trip.vehicle_id, "Engine", 900)

    _, total = await MaintenanceService.list_logs(db_session)
    assert total == 0
    assert await _vehicle_status(db_session, trip.vehicle_id) == VehicleStatus.ON_TRIP


@pytest.mark.asyncio
async def test_logging_unknown_vehicle(db_session):
    with pytest.raises(NotFoundError):
        await MaintenanceService.create_log(db_session, 9999, "Ghost", 10)


@pytest.mark.asyncio
async def test_negative_cost_refused(db_session, make_vehicle):
    vehicle = await make_vehicle()

    with pytest.raises(ValidationError):
        await MaintenanceService.create_log(db_session, vehicle.id, "Refund", -1)

    assert await _vehicle_status(db_session, vehicle.id) == VehicleStatus.AVAILABLE


@pytest.mark.asyncio
async def test_completing_any_log_releases_vehicle(db_session, make_vehicle):
    vehicle = await make_vehicle()
    first = await MaintenanceService.create_log(db_session, vehicle.id, "Brakes", 300)
    await MaintenanceService.create_log(db_session, vehicle.id, "Tyres", 200)

    released = await MaintenanceService.complete_log(db_session, first.id)

    # One flag, not a count of open logs
    assert released.status == VehicleStatus.AVAILABLE


@pytest.mark.asyncio
async def test_update_leaves_vehicle_alone(db_session, make_vehicle):
    vehicle = await make_vehicle()
    log = await MaintenanceService.create_log(db_session, vehicle.id, "Brakes", 300)

    updated = await MaintenanceService.update_log(db_session, log.id, {"cost": 350, "description": None})

    assert updated.cost == 350
    assert updated.description == "Brakes"
    assert await _vehicle_status(db_session, vehicle.id) == VehicleStatus.IN_SHOP


@pytest.mark.asyncio
async def test_delete_reverts_in_shop_vehicle(db_session, make_vehicle):
    vehicle = await make_vehicle()
    log = await MaintenanceService.create_log(db_session, vehicle.id, "Brakes", 300)

    await MaintenanceService.delete_log(db_session, log.id)

    assert await db_session.get(MaintenanceLog, log.id) is None
    assert await _vehicle_status(db_session, vehicle.id) == VehicleStatus.AVAILABLE


@pytest.mark.asyncio
async def test_list_date_range(db_session, make_vehicle):
    vehicle = await make_vehicle()
    await MaintenanceService.create_log(db_session, vehicle.id, "Jan", 10, log_date=date(2024, 1, 15))
    await MaintenanceService.create_log(db_session, vehicle.id, "Feb", 10, log_date=date(2024, 2, 15))
    await MaintenanceService.create_log(db_session, vehicle.id, "Mar", 10, log_date=date(2024, 3, 15))

    logs, total = await MaintenanceService.list_logs(
        db_session, start_date=date(2024, 2, 1), end_date=date(2024, 3, 31)
    )

    assert total == 2
    assert [log.description for log in logs] == ["Mar", "Feb"]
