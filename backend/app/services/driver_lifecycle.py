"""
Driver lifecycle service.

Registration, updates, status writes and deletion guards for drivers. The
one rule enforced on every write is the license gate: a driver whose license
expired before today can not be made Available or OnDuty.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from backend.app.models.driver import Driver
from backend.app.models.driver_enums import DriverStatus, ACTIVE_DRIVER_STATUSES
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.unit_of_work import commit_or_conflict, conflict_guard

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name", "license_category", "license_number", "license_expiry_date", "status",
    "completion_rate", "safety_score", "complaints"
)


def license_expired(expiry_date: date, today: Optional[date] = None) -> bool:
    """A license is expired once its expiry date lies strictly before today."""
    return expiry_date < (today or date.today())


def _check_license_gate(status: Optional[DriverStatus], expiry_date: date, driver_id: Optional[int] = None) -> None:
    if status in ACTIVE_DRIVER_STATUSES and license_expired(expiry_date):
        logger.warning("Rejected status %s for driver %s: license expired %s", status.value, driver_id, expiry_date)
        raise ValidationError(
            "Cannot set driver status to Available or OnDuty with an expired license",
            field="status",
            details={
                "resource": "Driver",
                "id": driver_id,
                "expected": "license_expiry_date >= today",
                "actual": expiry_date.isoformat()
            }
        )


class DriverService:

    @staticmethod
    async def get_driver(db: AsyncSession, driver_id: int) -> Driver:
        driver = await db.get(Driver, driver_id)
        if not driver:
            raise NotFoundError("Driver", driver_id)
        return driver

    @staticmethod
    async def list_drivers(
        db: AsyncSession,
        status: Optional[DriverStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[Driver], int]:
        """
        List drivers newest first.

        `search` matches name or license number, case-insensitively.
        Returns (drivers, total matching).
        """
        filters = []
        if status:
            filters.append(Driver.status == status)
        if search:
            pattern = f"%{search.strip().lower()}%"
            filters.append(or_(
                func.lower(Driver.name).like(pattern),
                func.lower(Driver.license_number).like(pattern)
            ))

        total = (await db.execute(select(func.count(Driver.id)).where(*filters))).scalar() or 0

        offset = (page - 1) * page_size
        result = await db.execute(
            select(Driver).where(*filters)
            .order_by(Driver.created_at.desc(), Driver.id.desc())
            .offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def _license_number_taken(db: AsyncSession, license_number: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Driver.id).where(Driver.license_number == license_number)
        if exclude_id is not None:
            query = query.where(Driver.id != exclude_id)
        return (await db.execute(query)).first() is not None

    @staticmethod
    async def create_driver(
        db: AsyncSession,
        name: str,
        license_category: str,
        license_number: str,
        license_expiry_date: date,
        status: Optional[DriverStatus] = None,
        completion_rate: Optional[float] = None,
        safety_score: Optional[float] = None,
        complaints: int = 0,
        actor: Optional[Dict[str, Any]] = None
    ) -> Driver:
        """
        Register a driver.

        Raises:
            ValidationError: duplicate license number, or an Available/OnDuty
                status with an already expired license
        """
        status = status or DriverStatus.AVAILABLE
        license_number = license_number.strip()

        if await DriverService._license_number_taken(db, license_number):
            raise ValidationError(
                "Driver with this license number already exists",
                field="license_number",
                details={"expected": "unique", "actual": license_number}
            )
        _check_license_gate(status, license_expiry_date)

        driver = Driver(
            name=name.strip(),
            license_category=license_category.strip().upper(),
            license_number=license_number,
            license_expiry_date=license_expiry_date,
            status=status,
            completion_rate=completion_rate,
            safety_score=safety_score,
            complaints=complaints
        )

        async with conflict_guard(db, "driver registration", {"license_number": license_number}):
            db.add(driver)
            await db.flush()
            log_event(db, AuditAction.DRIVER_CREATED, actor, "Driver", driver.id,
                      {"license_number": license_number, "status": status.value})
            await db.commit()
        await db.refresh(driver)

        logger.info("Registered driver %s (%s)", driver.id, license_number)
        return driver

    @staticmethod
    async def update_driver(
        db: AsyncSession,
        driver_id: int,
        changes: Dict[str, Any],
        actor: Optional[Dict[str, Any]] = None
    ) -> Driver:
        """
        Update a driver in place.

        The license gate uses the effective expiry: the incoming date when
        one is supplied, otherwise the stored one.
        """
        driver = await DriverService.get_driver(db, driver_id)

        updates = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}

        if "license_number" in updates:
            updates["license_number"] = updates["license_number"].strip()
            if await DriverService._license_number_taken(db, updates["license_number"], exclude_id=driver.id):
                raise ValidationError(
                    "Another driver with this license number already exists",
                    field="license_number",
                    details={"expected": "unique", "actual": updates["license_number"]}
                )
        if "license_category" in updates:
            updates["license_category"] = updates["license_category"].strip().upper()

        if "status" in updates:
            _check_license_gate(
                updates["status"],
                updates.get("license_expiry_date", driver.license_expiry_date),
                driver.id
            )

        previous_status = driver.status
        for field, value in updates.items():
            setattr(driver, field, value)

        log_event(db, AuditAction.DRIVER_UPDATED, actor, "Driver", driver.id,
                  {"updated_fields": sorted(updates)})
        if driver.status != previous_status:
            log_event(db, AuditAction.DRIVER_STATUS_CHANGED, actor, "Driver", driver.id,
                      {"from": previous_status.value, "to": driver.status.value})
        await commit_or_conflict(db, "driver update", {"driver_id": driver.id}, refresh=(driver,))
        return driver

    @staticmethod
    def stage_status(
        db: AsyncSession,
        driver: Driver,
        new_status: DriverStatus,
        actor: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None
    ) -> Driver:
        """Apply a status to a loaded driver without committing."""
        previous = driver.status
        driver.status = new_status
        if previous != new_status:
            log_event(db, AuditAction.DRIVER_STATUS_CHANGED, actor, "Driver", driver.id,
                      {"from": previous.value, "to": new_status.value, "reason": reason})
        return driver

    @staticmethod
    async def set_status(
        db: AsyncSession,
        driver_id: int,
        new_status: DriverStatus,
        actor: Optional[Dict[str, Any]] = None
    ) -> Driver:
        driver = await DriverService.get_driver(db, driver_id)
        _check_license_gate(new_status, driver.license_expiry_date, driver.id)
        DriverService.stage_status(db, driver, new_status, actor)
        await commit_or_conflict(db, "driver status change", {"driver_id": driver_id}, refresh=(driver,))
        return driver

    @staticmethod
    async def list_expiring_licenses(
        db: AsyncSession,
        days: int = 30,
        today: Optional[date] = None
    ) -> List[Driver]:
        """Drivers whose license expires within [today, today + days], soonest first."""
        today = today or date.today()
        horizon = today + timedelta(days=days)
        result = await db.execute(
            select(Driver)
            .where(Driver.license_expiry_date >= today, Driver.license_expiry_date <= horizon)
            .order_by(Driver.license_expiry_date.asc(), Driver.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def delete_driver(
        db: AsyncSession,
        driver_id: int,
        actor: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Delete a driver who is not on duty.

        Raises:
            ConflictError: driver is OnDuty
        """
        driver = await DriverService.get_driver(db, driver_id)

        if driver.status == DriverStatus.ON_DUTY:
            logger.warning("Refused to delete on-duty driver %s", driver_id)
            raise ConflictError(
                f"Cannot delete driver with status '{driver.status.value}'. "
                "Driver must be 'Available' or 'Suspended'.",
                details={
                    "resource": "Driver",
                    "id": driver_id,
                    "field": "status",
                    "expected": [DriverStatus.AVAILABLE.value, DriverStatus.SUSPENDED.value],
                    "actual": driver.status.value
                }
            )

        await db.delete(driver)
        log_event(db, AuditAction.DRIVER_DELETED, actor, "Driver", driver_id,
                  {"license_number": driver.license_number})
        await commit_or_conflict(db, "driver deletion", {"driver_id": driver_id})
        logger.info("Deleted driver %s", driver_id)
