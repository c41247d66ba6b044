"""
Fuel log registry. Refills are plain records read back by analytics.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import NotFoundError, ValidationError
from backend.app.models.fuel_log import FuelLog
from backend.app.models.vehicle import Vehicle
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.filters import date_range_filters
from backend.app.services.unit_of_work import conflict_guard

logger = logging.getLogger(__name__)

MIN_LITERS = 0.1


class FuelService:

    @staticmethod
    async def get_fuel_log(db: AsyncSession, log_id: int) -> FuelLog:
        log = await db.get(FuelLog, log_id)
        if not log:
            raise NotFoundError("Fuel log", log_id)
        return log

    @staticmethod
    async def list_fuel_logs(
        db: AsyncSession,
        vehicle_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[FuelLog], int]:
        filters = date_range_filters(FuelLog.date, start_date, end_date)
        if vehicle_id is not None:
            filters.append(FuelLog.vehicle_id == vehicle_id)

        total = (await db.execute(select(func.count(FuelLog.id)).where(*filters))).scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            select(FuelLog).where(*filters)
            .order_by(FuelLog.date.desc(), FuelLog.id.desc())
            .offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def create_fuel_log(
        db: AsyncSession,
        vehicle_id: int,
        liters: float,
        cost: float,
        log_date: Optional[date] = None,
        actor: Optional[Dict[str, Any]] = None
    ) -> FuelLog:
        """
        Record a refill for an existing vehicle.

        Raises:
            NotFoundError: unknown vehicle
            ValidationError: liters below 0.1 or negative cost
        """
        vehicle = await db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle", vehicle_id)

        if liters < MIN_LITERS:
            raise ValidationError("Liters must be at least 0.1", field="liters",
                                  details={"expected": f">= {MIN_LITERS}", "actual": liters})
        if cost < 0:
            raise ValidationError("Cost cannot be negative", field="cost",
                                  details={"expected": ">= 0", "actual": cost})

        log = FuelLog(vehicle_id=vehicle.id, liters=liters, cost=cost, date=log_date or date.today())

        async with conflict_guard(db, "fuel logging", {"vehicle_id": vehicle_id}):
            db.add(log)
            await db.flush()
            log_event(db, AuditAction.FUEL_LOGGED, actor, "FuelLog", log.id,
                      {"vehicle_id": vehicle.id, "liters": liters, "cost": cost})
            await db.commit()
        await db.refresh(log)

        logger.info("Fuel log %s recorded for vehicle %s", log.id, vehicle.id)
        return log
