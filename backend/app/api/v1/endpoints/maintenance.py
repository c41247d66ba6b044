"""
Maintenance API endpoints.

Creating a log puts the vehicle InShop; completing or deleting it returns
the vehicle to Available.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.guards import require_permission
from backend.app.core.permissions import Action
from backend.app.schemas.common import MessageResponse, page_meta
from backend.app.schemas.maintenance import (
    MaintenanceCreate, MaintenanceUpdate, MaintenanceResponse, MaintenanceListResponse,
    MaintenanceCompleteResponse
)
from backend.app.schemas.vehicle import VehicleResponse
from backend.app.services.maintenance import MaintenanceService

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@router.get("", response_model=MaintenanceListResponse)
async def list_maintenance_logs(
    vehicle_id: Optional[int] = Query(None, description="Filter by vehicle"),
    start_date: Optional[date] = Query(None, description="Earliest service date"),
    end_date: Optional[date] = Query(None, description="Latest service date"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(require_permission(Action.MAINTENANCE_READ)),
    db: AsyncSession = Depends(get_db)
):
    logs, total = await MaintenanceService.list_logs(db, vehicle_id, start_date, end_date, page, page_size)
    return MaintenanceListResponse(
        items=[MaintenanceResponse.model_validate(log) for log in logs],
        **page_meta(total, page, page_size)
    )


@router.get("/{log_id}", response_model=MaintenanceResponse)
async def get_maintenance_log(
    log_id: int = Path(..., description="Maintenance log ID"),
    current_user: dict = Depends(require_permission(Action.MAINTENANCE_READ)),
    db: AsyncSession = Depends(get_db)
):
    return MaintenanceResponse.model_validate(await MaintenanceService.get_log(db, log_id))


@router.post("", response_model=MaintenanceResponse, status_code=status.HTTP_201_CREATED)
async def create_maintenance_log(
    log_data: MaintenanceCreate,
    current_user: dict = Depends(require_permission(Action.MAINTENANCE_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Log maintenance (Fleet Manager, Safety Officer).
    
    Validates:
    - Vehicle exists (404) and is not OnTrip (409)
    
    Actions:
    - Vehicle status set to InShop
    """
    log = await MaintenanceService.create_log(
        db,
        vehicle_id=log_data.vehicle_id,
        description=log_data.description,
        cost=log_data.cost,
        log_date=log_data.date,
        actor=current_user
    )
    return MaintenanceResponse.model_validate(log)


@router.patch("/{log_id}/complete", response_model=MaintenanceCompleteResponse)
async def complete_maintenance(
    log_id: int = Path(..., description="Maintenance log ID"),
    current_user: dict = Depends(require_permission(Action.MAINTENANCE_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    vehicle = await MaintenanceService.complete_log(db, log_id, actor=current_user)
    return MaintenanceCompleteResponse(
        message="Maintenance completed. Vehicle status set to Available.",
        vehicle=VehicleResponse.model_validate(vehicle)
    )


@router.put("/{log_id}", response_model=MaintenanceResponse)
async def update_maintenance_log(
    log_data: MaintenanceUpdate,
    log_id: int = Path(..., description="Maintenance log ID"),
    current_user: dict = Depends(require_permission(Action.MAINTENANCE_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    log = await MaintenanceService.update_log(db, log_id, log_data.model_dump(exclude_unset=True), actor=current_user)
    return MaintenanceResponse.model_validate(log)


@router.delete("/{log_id}", response_model=MessageResponse)
async def delete_maintenance_log(
    log_id: int = Path(..., description="Maintenance log ID"),
    current_user: dict = Depends(require_permission(Action.MAINTENANCE_WRITE)),
    db: AsyncSession = Depends(get_db)
):
    await MaintenanceService.delete_log(db, log_id, actor=current_user)
    return MessageResponse(message="Maintenance log deleted successfully")
