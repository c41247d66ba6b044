"""
Vehicle lifecycle service.

Owns vehicle registration, administrative updates, status and odometer
writes, and deletion guards. It does not judge whether a status change is
legal: the trip and maintenance workflows decide that (see
backend.app.domain.transitions) and call in here to apply the result.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from backend.app.models.vehicle import Vehicle
from backend.app.models.vehicle_enums import VehicleStatus, VehicleType
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.unit_of_work import commit_or_conflict, conflict_guard

logger = logging.getLogger(__name__)

# Vehicles in these statuses are in use and may not be deleted
IN_USE_STATUSES = frozenset({VehicleStatus.ON_TRIP, VehicleStatus.IN_SHOP})

UPDATABLE_FIELDS = ("name", "license_plate", "vehicle_type", "max_capacity", "odometer", "status")


def normalize_plate(license_plate: str) -> str:
    return license_plate.strip().upper()


class VehicleService:

    @staticmethod
    async def get_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
        vehicle = await db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle", vehicle_id)
        return vehicle

    @staticmethod
    async def list_vehicles(
        db: AsyncSession,
        status: Optional[VehicleStatus] = None,
        vehicle_type: Optional[VehicleType] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[Vehicle], int]:
        """List vehicles newest first. Returns (vehicles, total matching)."""
        filters = []
        if status:
            filters.append(Vehicle.status == status)
        if vehicle_type:
            filters.append(Vehicle.vehicle_type == vehicle_type)

        total = (await db.execute(select(func.count(Vehicle.id)).where(*filters))).scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            select(Vehicle).where(*filters)
            .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
            .offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def _plate_taken(db: AsyncSession, plate: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Vehicle.id).where(Vehicle.license_plate == plate)
        if exclude_id is not None:
            query = query.where(Vehicle.id != exclude_id)
        return (await db.execute(query)).first() is not None

    @staticmethod
    async def create_vehicle(
        db: AsyncSession,
        name: str,
        license_plate: str,
        vehicle_type: VehicleType,
        max_capacity: float,
        odometer: Optional[float] = None,
        status: Optional[VehicleStatus] = None,
        actor: Optional[Dict[str, Any]] = None
    ) -> Vehicle:
        """
        Register a vehicle.

        The plate is trimmed and upper-cased before the uniqueness check,
        so "abc-123" and "ABC-123 " collide.

        Raises:
            ValidationError: duplicate plate or negative capacity/odometer
        """
        plate = normalize_plate(license_plate)
        if await VehicleService._plate_taken(db, plate):
            raise ValidationError(
                "Vehicle with this license plate already exists",
                field="license_plate",
                details={"expected": "unique", "actual": plate}
            )
        if max_capacity < 0:
            raise ValidationError("Maximum capacity cannot be negative", field="max_capacity",
                                  details={"expected": ">= 0", "actual": max_capacity})
        if odometer is not None and odometer < 0:
            raise ValidationError("Odometer cannot be negative", field="odometer",
                                  details={"expected": ">= 0", "actual": odometer})

        vehicle = Vehicle(
            name=name.strip(),
            license_plate=plate,
            vehicle_type=vehicle_type,
            max_capacity=max_capacity,
            odometer=odometer or 0,
            status=status or VehicleStatus.AVAILABLE
        )

        async with conflict_guard(db, "vehicle registration", {"license_plate": plate}):
            db.add(vehicle)
            await db.flush()
            log_event(db, AuditAction.VEHICLE_CREATED, actor, "Vehicle", vehicle.id,
                      {"license_plate": plate, "vehicle_type": vehicle.vehicle_type.value})
            await db.commit()
        await db.refresh(vehicle)

        logger.info("Registered vehicle %s (%s)", vehicle.id, plate)
        return vehicle

    @staticmethod
    async def update_vehicle(
        db: AsyncSession,
        vehicle_id: int,
        changes: Dict[str, Any],
        actor: Optional[Dict[str, Any]] = None
    ) -> Vehicle:
        """
        Administrative update. Only keys present in `changes` are applied;
        an explicit status here is an operator override and is not checked
        against the workflows.
        """
        vehicle = await VehicleService.get_vehicle(db, vehicle_id)

        updates = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
        if "license_plate" in updates:
            updates["license_plate"] = normalize_plate(updates["license_plate"])
            if await VehicleService._plate_taken(db, updates["license_plate"], exclude_id=vehicle.id):
                raise ValidationError(
                    "Another vehicle with this license plate already exists",
                    field="license_plate",
                    details={"expected": "unique", "actual": updates["license_plate"]}
                )
        for field in ("max_capacity", "odometer"):
            if field in updates and updates[field] < 0:
                raise ValidationError(f"{field} cannot be negative", field=field,
                                      details={"expected": ">= 0", "actual": updates[field]})

        for field, value in updates.items():
            setattr(vehicle, field, value)

        log_event(db, AuditAction.VEHICLE_UPDATED, actor, "Vehicle", vehicle.id,
                  {"updated_fields": sorted(updates)})
        await commit_or_conflict(db, "vehicle update", {"vehicle_id": vehicle.id}, refresh=(vehicle,))
        return vehicle

    # Staging helpers: mutate a loaded vehicle without committing, so the
    # calling workflow can commit its whole cascade at once.

    @staticmethod
    def stage_status(
        db: AsyncSession,
        vehicle: Vehicle,
        new_status: VehicleStatus,
        actor: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None
    ) -> Vehicle:
        previous = vehicle.status
        vehicle.status = new_status
        if previous != new_status:
            log_event(db, AuditAction.VEHICLE_STATUS_CHANGED, actor, "Vehicle", vehicle.id,
                      {"from": previous.value, "to": new_status.value, "reason": reason})
        return vehicle

    @staticmethod
    def stage_odometer(
        db: AsyncSession,
        vehicle: Vehicle,
        value: float,
        actor: Optional[Dict[str, Any]] = None
    ) -> Vehicle:
        if value < 0:
            raise ValidationError("Odometer cannot be negative", field="odometer",
                                  details={"expected": ">= 0", "actual": value})
        previous = vehicle.odometer
        vehicle.odometer = value
        log_event(db, AuditAction.VEHICLE_ODOMETER_CHANGED, actor, "Vehicle", vehicle.id,
                  {"from": previous, "to": value})
        return vehicle

    @staticmethod
    async def set_status(
        db: AsyncSession,
        vehicle_id: int,
        new_status: VehicleStatus,
        actor: Optional[Dict[str, Any]] = None
    ) -> Vehicle:
        vehicle = await VehicleService.get_vehicle(db, vehicle_id)
        VehicleService.stage_status(db, vehicle, new_status, actor)
        await commit_or_conflict(db, "vehicle status change", {"vehicle_id": vehicle_id}, refresh=(vehicle,))
        return vehicle

    @staticmethod
    async def set_odometer(
        db: AsyncSession,
        vehicle_id: int,
        value: float,
        actor: Optional[Dict[str, Any]] = None
    ) -> Vehicle:
        vehicle = await VehicleService.get_vehicle(db, vehicle_id)
        VehicleService.stage_odometer(db, vehicle, value, actor)
        await commit_or_conflict(db, "vehicle odometer change", {"vehicle_id": vehicle_id}, refresh=(vehicle,))
        return vehicle

    @staticmethod
    async def complete_trip(
        db: AsyncSession,
        vehicle_id: int,
        end_odometer: float,
        actor: Optional[Dict[str, Any]] = None
    ) -> Vehicle:
        """Release the vehicle and record the final odometer in one write."""
        vehicle = await VehicleService.get_vehicle(db, vehicle_id)
        VehicleService.stage_odometer(db, vehicle, end_odometer, actor)
        VehicleService.stage_status(db, vehicle, VehicleStatus.AVAILABLE, actor, reason="trip completed")
        await commit_or_conflict(db, "vehicle trip completion", {"vehicle_id": vehicle_id}, refresh=(vehicle,))
        return vehicle

    @staticmethod
    async def delete_vehicle(
        db: AsyncSession,
        vehicle_id: int,
        actor: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Delete a vehicle that is not in use.

        Raises:
            ConflictError: vehicle is OnTrip or InShop
        """
        vehicle = await VehicleService.get_vehicle(db, vehicle_id)

        if vehicle.status in IN_USE_STATUSES:
            logger.warning("Refused to delete vehicle %s in status %s", vehicle_id, vehicle.status.value)
            raise ConflictError(
                f"Cannot delete vehicle with status '{vehicle.status.value}'. "
                "Vehicle must be 'Available' or 'Retired'.",
                details={
                    "resource": "Vehicle",
                    "id": vehicle_id,
                    "field": "status",
                    "expected": [VehicleStatus.AVAILABLE.value, VehicleStatus.RETIRED.value],
                    "actual": vehicle.status.value
                }
            )

        await db.delete(vehicle)
        log_event(db, AuditAction.VEHICLE_DELETED, actor, "Vehicle", vehicle_id,
                  {"license_plate": vehicle.license_plate})
        await commit_or_conflict(db, "vehicle deletion", {"vehicle_id": vehicle_id})
        logger.info("Deleted vehicle %s", vehicle_id)
