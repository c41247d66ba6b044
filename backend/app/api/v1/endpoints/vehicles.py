"""
Vehicle API endpoints.

Registration and administration of the fleet's vehicles. Status changes
driven by trips and maintenance happen in those endpoints, not here.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.guards import require_permission
from backend.app.core.permissions import Action
from backend.app.models.vehicle_enums import VehicleStatus, VehicleType
from backend.app.schemas.common import MessageResponse, page_meta
from backend.app.schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleResponse, VehicleListResponse
from backend.app.services.vehicle_lifecycle import VehicleService

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    status_filter: Optional[VehicleStatus] = Query(None, alias="status", description="Filter by status"),
    vehicle_type: Optional[VehicleType] = Query(None, description="Filter by vehicle type"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(require_permission(Action.VEHICLES_READ)),
    db: AsyncSession = Depends(get_db)
):
    vehicles, total = await VehicleService.list_vehicles(db, status_filter, vehicle_type, page, page_size)
    return VehicleListResponse(
        items=[VehicleResponse.model_validate(v) for v in vehicles],
        **page_meta(total, page, page_size)
    )


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_permission(Action.VEHICLES_READ)),
    db: AsyncSession = Depends(get_db)
):
    return VehicleResponse.model_validate(await VehicleService.get_vehicle(db, vehicle_id))


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    current_user: dict = Depends(require_permission(Action.VEHICLES_CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a vehicle (Fleet Manager only).
    
    Validates:
    - License plate is unique (compared upper-cased)
    """
    vehicle = await VehicleService.create_vehicle(db, actor=current_user, **vehicle_data.model_dump())
    return VehicleResponse.model_validate(vehicle)


@router.put("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_data: VehicleUpdate,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_permission(Action.VEHICLES_UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    vehicle = await VehicleService.update_vehicle(
        db, vehicle_id, vehicle_data.model_dump(exclude_unset=True), actor=current_user
    )
    return VehicleResponse.model_validate(vehicle)


@router.delete("/{vehicle_id}", response_model=MessageResponse)
async def delete_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_permission(Action.VEHICLES_DELETE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a vehicle (Fleet Manager only).
    
    Validates:
    - Vehicle is not OnTrip or InShop (409 otherwise)
    """
    await VehicleService.delete_vehicle(db, vehicle_id, actor=current_user)
    return MessageResponse(message="Vehicle deleted successfully")
