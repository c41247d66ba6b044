"""
Trip API endpoints.

Trips are created as Draft and advanced with PATCH /trips/{id}/status.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.guards import require_permission
from backend.app.core.permissions import Action
from backend.app.models.trip_enums import TripStatus
from backend.app.models.vehicle_enums import VehicleType
from backend.app.schemas.common import page_meta
from backend.app.schemas.trip import TripCreate, TripStatusUpdate, TripResponse, TripListResponse
from backend.app.services.trip_state_machine import TripService

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.get("", response_model=TripListResponse)
async def list_trips(
    status_filter: Optional[TripStatus] = Query(None, alias="status", description="Filter by status"),
    vehicle_id: Optional[int] = Query(None, description="Filter by vehicle"),
    driver_id: Optional[int] = Query(None, description="Filter by driver"),
    vehicle_type: Optional[VehicleType] = Query(None, description="Filter by vehicle type"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(require_permission(Action.TRIPS_READ)),
    db: AsyncSession = Depends(get_db)
):
    trips, total = await TripService.list_trips(
        db, status_filter, vehicle_id, driver_id, vehicle_type, page, page_size
    )
    return TripListResponse(
        items=[TripResponse.model_validate(t) for t in trips],
        **page_meta(total, page, page_size)
    )


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_permission(Action.TRIPS_READ)),
    db: AsyncSession = Depends(get_db)
):
    return TripResponse.model_validate(await TripService.get_trip(db, trip_id))


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    current_user: dict = Depends(require_permission(Action.TRIPS_CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a Draft trip (Fleet Manager, Dispatcher).
    
    Validates, in order:
    - Vehicle and driver exist (404)
    - Cargo weight within vehicle capacity (400)
    - Vehicle and driver Available (409)
    - Driver license not expired (400)
    """
    trip = await TripService.create_trip(db, actor=current_user, **trip_data.model_dump())
    return TripResponse.model_validate(trip)


@router.patch("/{trip_id}/status", response_model=TripResponse)
async def update_trip_status(
    status_data: TripStatusUpdate,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_permission(Action.TRIPS_UPDATE_STATUS)),
    db: AsyncSession = Depends(get_db)
):
    """
    Advance a trip (Fleet Manager, Dispatcher).
    
    Actions:
    - Dispatched: vehicle OnTrip, driver OnDuty
    - Completed: requires end_odometer; vehicle and driver Available, odometer updated
    - Cancelled: vehicle and driver Available if the trip was dispatched
    """
    trip = await TripService.update_status(
        db, trip_id, status_data.status, end_odometer=status_data.end_odometer, actor=current_user
    )
    return TripResponse.model_validate(trip)
