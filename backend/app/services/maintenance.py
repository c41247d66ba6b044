"""
Maintenance workflow.

Logging maintenance sends the vehicle to the shop; completing or deleting a
log brings it back. Shop status is a single flag on the vehicle, not a count
of open logs: completing any one log releases the vehicle even if other logs
for it were created later.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import NotFoundError, ValidationError
from backend.app.domain.transitions import next_vehicle_status
from backend.app.models.maintenance_log import MaintenanceLog
from backend.app.models.vehicle import Vehicle
from backend.app.models.vehicle_enums import VehicleEvent, VehicleStatus
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.filters import date_range_filters
from backend.app.services.unit_of_work import commit_or_conflict, conflict_guard
from backend.app.services.vehicle_lifecycle import VehicleService

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("description", "cost", "date")


class MaintenanceService:

    @staticmethod
    async def get_log(db: AsyncSession, log_id: int) -> MaintenanceLog:
        log = await db.get(MaintenanceLog, log_id)
        if not log:
            raise NotFoundError("Maintenance log", log_id)
        return log

    @staticmethod
    async def list_logs(
        db: AsyncSession,
        vehicle_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[MaintenanceLog], int]:
        """List logs by date, most recent first. Returns (logs, total matching)."""
        filters = date_range_filters(MaintenanceLog.date, start_date, end_date)
        if vehicle_id is not None:
            filters.append(MaintenanceLog.vehicle_id == vehicle_id)

        total = (await db.execute(select(func.count(MaintenanceLog.id)).where(*filters))).scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            select(MaintenanceLog).where(*filters)
            .order_by(MaintenanceLog.date.desc(), MaintenanceLog.id.desc())
            .offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def create_log(
        db: AsyncSession,
        vehicle_id: int,
        description: str,
        cost: float,
        log_date: Optional[date] = None,
        actor: Optional[Dict[str, Any]] = None
    ) -> MaintenanceLog:
        """
        Record maintenance and put the vehicle InShop, in one transaction.

        Raises:
            NotFoundError: unknown vehicle
            ConflictError: vehicle is OnTrip
        """
        vehicle = await db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle", vehicle_id)

        shop_status = next_vehicle_status(vehicle.status, VehicleEvent.ENTER_SHOP, vehicle.id)
        if cost < 0:
            raise ValidationError("Cost cannot be negative", field="cost",
                                  details={"expected": ">= 0", "actual": cost})

        log = MaintenanceLog(
            vehicle_id=vehicle.id,
            description=description.strip(),
            cost=cost,
            date=log_date or date.today()
        )

        async with conflict_guard(db, "maintenance logging", {"vehicle_id": vehicle_id}):
            db.add(log)
            VehicleService.stage_status(db, vehicle, shop_status, actor, reason="maintenance logged")
            await db.flush()
            log_event(db, AuditAction.MAINTENANCE_CREATED, actor, "MaintenanceLog", log.id,
                      {"vehicle_id": vehicle.id, "cost": cost})
            await db.commit()
        await db.refresh(log)
        await db.refresh(vehicle)

        logger.info("Maintenance log %s created, vehicle %s InShop", log.id, vehicle.id)
        return log

    @staticmethod
    async def complete_log(
        db: AsyncSession,
        log_id: int,
        actor: Optional[Dict[str, Any]] = None
    ) -> Vehicle:
        """Return the log's vehicle to Available, whatever its current status. Returns the vehicle."""
        log = await MaintenanceService.get_log(db, log_id)
        vehicle = await db.get(Vehicle, log.vehicle_id) if log.vehicle_id is not None else None
        if not vehicle:
            raise NotFoundError("Vehicle", log.vehicle_id)

        VehicleService.stage_status(
            db, vehicle, next_vehicle_status(vehicle.status, VehicleEvent.LEAVE_SHOP, vehicle.id),
            actor, reason=f"maintenance {log.id} completed"
        )
        log_event(db, AuditAction.MAINTENANCE_COMPLETED, actor, "MaintenanceLog", log.id,
                  {"vehicle_id": vehicle.id})
        await commit_or_conflict(db, "maintenance completion", {"log_id": log.id}, refresh=(vehicle,))

        logger.info("Maintenance log %s completed, vehicle %s Available", log.id, vehicle.id)
        return vehicle

    @staticmethod
    async def update_log(
        db: AsyncSession,
        log_id: int,
        changes: Dict[str, Any],
        actor: Optional[Dict[str, Any]] = None
    ) -> MaintenanceLog:
        """Edit description, cost or date. The vehicle is not touched."""
        log = await MaintenanceService.get_log(db, log_id)

        updates = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
        if updates.get("cost", 0) < 0:
            raise ValidationError("Cost cannot be negative", field="cost",
                                  details={"expected": ">= 0", "actual": updates["cost"]})

        for field, value in updates.items():
            setattr(log, field, value)

        log_event(db, AuditAction.MAINTENANCE_UPDATED, actor, "MaintenanceLog", log.id,
                  {"updated_fields": sorted(updates)})
        await commit_or_conflict(db, "maintenance update", {"log_id": log.id}, refresh=(log,))
        return log

    @staticmethod
    async def delete_log(
        db: AsyncSession,
        log_id: int,
        actor: Optional[Dict[str, Any]] = None
    ) -> None:
        """Remove a log; an InShop vehicle goes back to Available in the same transaction."""
        log = await MaintenanceService.get_log(db, log_id)
        vehicle = await db.get(Vehicle, log.vehicle_id) if log.vehicle_id is not None else None

        if vehicle and vehicle.status == VehicleStatus.IN_SHOP:
            VehicleService.stage_status(
                db, vehicle, next_vehicle_status(vehicle.status, VehicleEvent.LEAVE_SHOP, vehicle.id),
                actor, reason=f"maintenance {log.id} deleted"
            )

        await db.delete(log)
        log_event(db, AuditAction.MAINTENANCE_DELETED, actor, "MaintenanceLog", log_id,
                  {"vehicle_id": log.vehicle_id})
        await commit_or_conflict(db, "maintenance deletion", {"log_id": log_id})
        logger.info("Deleted maintenance log %s", log_id)
