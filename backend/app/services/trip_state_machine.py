"""
Trip state machine.

Creates Draft trips after validating the vehicle/driver pairing and drives
every later status change, cascading the matching vehicle and driver status
changes in the same transaction:

    Draft -> Dispatched   vehicle OnTrip, driver OnDuty
    Dispatched -> Completed   vehicle Available (odometer = end), driver Available
    Dispatched -> Cancelled   vehicle Available, driver Available
    Draft -> Cancelled    nothing else changes

Draft trips hold no reservation: the vehicle and driver stay Available until
dispatch, which re-validates them.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    CapacityExceededError,
    ExpiredLicenseError,
    MissingFieldError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from backend.app.domain.transitions import next_trip_status, next_vehicle_status, next_driver_status
from backend.app.models.driver import Driver
from backend.app.models.driver_enums import DriverEvent, DriverStatus
from backend.app.models.trip import Trip
from backend.app.models.trip_enums import TripStatus
from backend.app.models.vehicle import Vehicle
from backend.app.models.vehicle_enums import VehicleEvent, VehicleStatus, VehicleType
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.driver_lifecycle import DriverService, license_expired
from backend.app.services.unit_of_work import commit_or_conflict, conflict_guard
from backend.app.services.vehicle_lifecycle import VehicleService

logger = logging.getLogger(__name__)


def _check_assignable(vehicle: Vehicle, driver: Driver) -> None:
    """Availability and license checks shared by creation and dispatch, in that order."""
    if vehicle.status != VehicleStatus.AVAILABLE:
        raise UnavailableError("Vehicle", vehicle.id, vehicle.status, VehicleStatus.AVAILABLE)
    if driver.status != DriverStatus.AVAILABLE:
        raise UnavailableError("Driver", driver.id, driver.status, DriverStatus.AVAILABLE)
    if license_expired(driver.license_expiry_date):
        raise ExpiredLicenseError(driver.id, driver.license_expiry_date)


class TripService:

    @staticmethod
    async def get_trip(db: AsyncSession, trip_id: int) -> Trip:
        trip = await db.get(Trip, trip_id)
        if not trip:
            raise NotFoundError("Trip", trip_id)
        return trip

    @staticmethod
    async def list_trips(
        db: AsyncSession,
        status: Optional[TripStatus] = None,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        vehicle_type: Optional[VehicleType] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[Trip], int]:
        """List trips newest first. Returns (trips, total matching)."""
        filters = []
        if status:
            filters.append(Trip.status == status)
        if vehicle_id is not None:
            filters.append(Trip.vehicle_id == vehicle_id)
        if driver_id is not None:
            filters.append(Trip.driver_id == driver_id)
        if vehicle_type:
            filters.append(Trip.vehicle_id.in_(
                select(Vehicle.id).where(Vehicle.vehicle_type == vehicle_type)
            ))

        total = (await db.execute(select(func.count(Trip.id)).where(*filters))).scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            select(Trip).where(*filters)
            .order_by(Trip.created_at.desc(), Trip.id.desc())
            .offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def create_trip(
        db: AsyncSession,
        vehicle_id: int,
        driver_id: int,
        cargo_weight: float,
        from_location: str,
        to_location: str,
        start_odometer: float,
        revenue: float = 0,
        actor: Optional[Dict[str, Any]] = None
    ) -> Trip:
        """
        Create a Draft trip.

        Validates (first failure wins):
        - Vehicle exists, then driver exists
        - Cargo weight within the vehicle's max capacity
        - Vehicle Available, then driver Available
        - Driver license not expired

        Raises:
            NotFoundError, CapacityExceededError, UnavailableError, ExpiredLicenseError
        """
        vehicle = await db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle", vehicle_id)

        driver = await db.get(Driver, driver_id)
        if not driver:
            raise NotFoundError("Driver", driver_id)

        if cargo_weight > vehicle.max_capacity:
            raise CapacityExceededError(cargo_weight, vehicle.max_capacity)

        _check_assignable(vehicle, driver)

        trip = Trip(
            vehicle_id=vehicle.id,
            driver_id=driver.id,
            cargo_weight=cargo_weight,
            from_location=from_location.strip(),
            to_location=to_location.strip(),
            start_odometer=start_odometer,
            revenue=revenue or 0,
            status=TripStatus.DRAFT
        )

        async with conflict_guard(db, "trip creation", {"vehicle_id": vehicle_id, "driver_id": driver_id}):
            db.add(trip)
            await db.flush()
            log_event(db, AuditAction.TRIP_CREATED, actor, "Trip", trip.id, {
                "vehicle_id": vehicle.id,
                "driver_id": driver.id,
                "cargo_weight": cargo_weight
            })
            await db.commit()
        await db.refresh(trip)

        logger.info("Created draft trip %s (vehicle %s, driver %s)", trip.id, vehicle.id, driver.id)
        return trip

    @staticmethod
    async def update_status(
        db: AsyncSession,
        trip_id: int,
        status: TripStatus,
        end_odometer: Optional[float] = None,
        actor: Optional[Dict[str, Any]] = None
    ) -> Trip:
        """
        Move a trip to `status`, cascading into its vehicle and driver.

        The transition is checked before anything else; any failure leaves
        the trip, vehicle and driver untouched.

        Raises:
            NotFoundError: trip (or, on dispatch, its vehicle/driver) missing
            InvalidTransitionError: `status` not reachable from the current one
            UnavailableError, ExpiredLicenseError: dispatch re-validation failed
            MissingFieldError, ValidationError: bad completion odometer
            ConflictError: a touched record changed concurrently
        """
        trip = await TripService.get_trip(db, trip_id)
        previous = trip.status
        next_trip_status(previous, status)

        if status == TripStatus.DISPATCHED:
            touched = await TripService._stage_dispatch(db, trip, actor)
        elif status == TripStatus.COMPLETED:
            touched = await TripService._stage_completion(db, trip, end_odometer, actor)
        else:
            touched = await TripService._stage_cancellation(db, trip, previous, actor)

        await commit_or_conflict(
            db,
            f"trip {status.value.lower()}",
            {"trip_id": trip.id},
            refresh=(trip, *touched)
        )

        logger.info("Trip %s: %s -> %s", trip.id, previous.value, status.value)
        return trip

    @staticmethod
    async def _load_assignment(db: AsyncSession, trip: Trip) -> Tuple[Optional[Vehicle], Optional[Driver]]:
        vehicle = await db.get(Vehicle, trip.vehicle_id) if trip.vehicle_id is not None else None
        driver = await db.get(Driver, trip.driver_id) if trip.driver_id is not None else None
        return vehicle, driver

    @staticmethod
    async def _stage_dispatch(
        db: AsyncSession,
        trip: Trip,
        actor: Optional[Dict[str, Any]]
    ) -> List[Union[Vehicle, Driver]]:
        vehicle, driver = await TripService._load_assignment(db, trip)
        if not vehicle:
            raise NotFoundError("Vehicle", trip.vehicle_id)
        if not driver:
            raise NotFoundError("Driver", trip.driver_id)

        _check_assignable(vehicle, driver)

        VehicleService.stage_status(
            db, vehicle, next_vehicle_status(vehicle.status, VehicleEvent.DISPATCH, vehicle.id),
            actor, reason=f"trip {trip.id} dispatched"
        )
        DriverService.stage_status(
            db, driver, next_driver_status(driver.status, DriverEvent.DISPATCH, driver.id),
            actor, reason=f"trip {trip.id} dispatched"
        )

        trip.status = TripStatus.DISPATCHED
        trip.dispatched_at = datetime.now(timezone.utc)
        log_event(db, AuditAction.TRIP_DISPATCHED, actor, "Trip", trip.id,
                  {"vehicle_id": vehicle.id, "driver_id": driver.id})
        return [vehicle, driver]

    @staticmethod
    async def _stage_completion(
        db: AsyncSession,
        trip: Trip,
        end_odometer: Optional[float],
        actor: Optional[Dict[str, Any]]
    ) -> List[Union[Vehicle, Driver]]:
        if end_odometer is None:
            raise MissingFieldError("end_odometer", "End odometer reading is required to complete the trip")
        if end_odometer < trip.start_odometer:
            raise ValidationError(
                "End odometer must be greater than or equal to start odometer",
                field="end_odometer",
                details={"expected": f">= {trip.start_odometer}", "actual": end_odometer}
            )

        vehicle, driver = await TripService._load_assignment(db, trip)
        touched = []
        if vehicle:
            VehicleService.stage_odometer(db, vehicle, end_odometer, actor)
            VehicleService.stage_status(
                db, vehicle, next_vehicle_status(vehicle.status, VehicleEvent.RELEASE, vehicle.id),
                actor, reason=f"trip {trip.id} completed"
            )
            touched.append(vehicle)
        if driver:
            DriverService.stage_status(
                db, driver, next_driver_status(driver.status, DriverEvent.RELEASE, driver.id),
                actor, reason=f"trip {trip.id} completed"
            )
            touched.append(driver)

        trip.end_odometer = end_odometer
        trip.status = TripStatus.COMPLETED
        trip.completed_at = datetime.now(timezone.utc)
        log_event(db, AuditAction.TRIP_COMPLETED, actor, "Trip", trip.id, {
            "end_odometer": end_odometer,
            "distance": end_odometer - trip.start_odometer
        })
        return touched

    @staticmethod
    async def _stage_cancellation(
        db: AsyncSession,
        trip: Trip,
        previous: TripStatus,
        actor: Optional[Dict[str, Any]]
    ) -> List[Union[Vehicle, Driver]]:
        touched = []
        if previous == TripStatus.DISPATCHED:
            vehicle, driver = await TripService._load_assignment(db, trip)
            if vehicle:
                VehicleService.stage_status(
                    db, vehicle, next_vehicle_status(vehicle.status, VehicleEvent.RELEASE, vehicle.id),
                    actor, reason=f"trip {trip.id} cancelled"
                )
                touched.append(vehicle)
            if driver:
                DriverService.stage_status(
                    db, driver, next_driver_status(driver.status, DriverEvent.RELEASE, driver.id),
                    actor, reason=f"trip {trip.id} cancelled"
                )
                touched.append(driver)

        trip.status = TripStatus.CANCELLED
        trip.cancelled_at = datetime.now(timezone.utc)
        log_event(db, AuditAction.TRIP_CANCELLED, actor, "Trip", trip.id, {"previous_status": previous.value})
        return touched
