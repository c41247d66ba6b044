"""
Fuel log API endpoints.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.guards import require_permission
from backend.app.core.permissions import Action
from backend.app.schemas.common import page_meta
from backend.app.schemas.fuel import FuelLogCreate, FuelLogResponse, FuelLogListResponse
from backend.app.services.fuel import FuelService

router = APIRouter(prefix="/fuel", tags=["Fuel"])


@router.get("", response_model=FuelLogListResponse)
async def list_fuel_logs(
    vehicle_id: Optional[int] = Query(None, description="Filter by vehicle"),
    start_date: Optional[date] = Query(None, description="Earliest refill date"),
    end_date: Optional[date] = Query(None, description="Latest refill date"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(require_permission(Action.FUEL_READ)),
    db: AsyncSession = Depends(get_db)
):
    logs, total = await FuelService.list_fuel_logs(db, vehicle_id, start_date, end_date, page, page_size)
    return FuelLogListResponse(
        items=[FuelLogResponse.model_validate(log) for log in logs],
        **page_meta(total, page, page_size)
    )


@router.get("/{log_id}", response_model=FuelLogResponse)
async def get_fuel_log(
    log_id: int = Path(..., description="Fuel log ID"),
    current_user: dict = Depends(require_permission(Action.FUEL_READ)),
    db: AsyncSession = Depends(get_db)
):
    return FuelLogResponse.model_validate(await FuelService.get_fuel_log(db, log_id))


@router.post("", response_model=FuelLogResponse, status_code=status.HTTP_201_CREATED)
async def create_fuel_log(
    log_data: FuelLogCreate,
    current_user: dict = Depends(require_permission(Action.FUEL_CREATE)),
    db: AsyncSession = Depends(get_db)
):
    log = await FuelService.create_fuel_log(
        db,
        vehicle_id=log_data.vehicle_id,
        liters=log_data.liters,
        cost=log_data.cost,
        log_date=log_data.date,
        actor=current_user
    )
    return FuelLogResponse.model_validate(log)
