"""
Driver API endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.guards import require_permission
from backend.app.core.permissions import Action
from backend.app.models.driver_enums import DriverStatus
from backend.app.schemas.common import MessageResponse, page_meta
from backend.app.schemas.driver import (
    DriverCreate, DriverUpdate, DriverResponse, DriverListResponse, ExpiringLicensesResponse
)
from backend.app.services.driver_lifecycle import DriverService

router = APIRouter(prefix="/drivers", tags=["Drivers"])


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    status_filter: Optional[DriverStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, max_length=100, description="Match name or license number"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(require_permission(Action.DRIVERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    drivers, total = await DriverService.list_drivers(db, status_filter, search, page, page_size)
    return DriverListResponse(
        items=[DriverResponse.model_validate(d) for d in drivers],
        **page_meta(total, page, page_size)
    )


@router.get("/expiring", response_model=ExpiringLicensesResponse)
async def list_expiring_licenses(
    days: int = Query(settings.license_expiry_window_days, ge=0, le=3650, description="Look-ahead window in days"),
    current_user: dict = Depends(require_permission(Action.DRIVERS_EXPIRING)),
    db: AsyncSession = Depends(get_db)
):
    """Drivers whose license expires within the next `days` days, soonest first."""
    drivers = await DriverService.list_expiring_licenses(db, days)
    return ExpiringLicensesResponse(
        items=[DriverResponse.model_validate(d) for d in drivers],
        count=len(drivers),
        expiring_within_days=days
    )


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_permission(Action.DRIVERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    return DriverResponse.model_validate(await DriverService.get_driver(db, driver_id))


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    current_user: dict = Depends(require_permission(Action.DRIVERS_CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a driver (Fleet Manager only).
    
    Validates:
    - License number is unique
    - An expired license can not start Available or OnDuty
    """
    driver = await DriverService.create_driver(db, actor=current_user, **driver_data.model_dump())
    return DriverResponse.model_validate(driver)


@router.put("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    driver_data: DriverUpdate,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_permission(Action.DRIVERS_UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    driver = await DriverService.update_driver(
        db, driver_id, driver_data.model_dump(exclude_unset=True), actor=current_user
    )
    return DriverResponse.model_validate(driver)


@router.delete("/{driver_id}", response_model=MessageResponse)
async def delete_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_permission(Action.DRIVERS_DELETE)),
    db: AsyncSession = Depends(get_db)
):
    await DriverService.delete_driver(db, driver_id, actor=current_user)
    return MessageResponse(message="Driver deleted successfully")
