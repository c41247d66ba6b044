"""
Analytics API Endpoints.

Read-only dashboard data for Fleet Managers and Financial Analysts.
"""

from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.guards import require_permission
from backend.app.core.permissions import Action
from backend.app.models.vehicle_enums import VehicleStatus, VehicleType
from backend.app.services.analytics import AnalyticsService
from backend.app.schemas.analytics import DashboardStats, FuelEfficiencyEntry, VehicleAnalytics

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard(
    vehicle_type: Optional[VehicleType] = Query(None, description="Only count vehicles of this type"),
    status_filter: Optional[VehicleStatus] = Query(None, alias="status", description="Only count vehicles in this status"),
    expiring_within_days: int = Query(settings.license_expiry_window_days, ge=0, le=3650),
    trend_months: int = Query(settings.trend_months, ge=1, le=36),
    current_user: dict = Depends(require_permission(Action.ANALYTICS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Fleet, driver, trip and cost figures with a monthly trend."""
    return await AnalyticsService.get_dashboard(
        db,
        vehicle_type=vehicle_type,
        status=status_filter,
        expiring_within_days=expiring_within_days,
        trend_months=trend_months
    )


@router.get("/fuel-efficiency", response_model=List[FuelEfficiencyEntry])
async def get_fuel_efficiency_report(
    current_user: dict = Depends(require_permission(Action.ANALYTICS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Per-vehicle km/L for every vehicle still in service, best first."""
    return await AnalyticsService.get_fuel_efficiency_report(db)


@router.get("/vehicle/{vehicle_id}", response_model=VehicleAnalytics)
async def get_vehicle_analytics(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_permission(Action.ANALYTICS_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService.get_vehicle_analytics(db, vehicle_id)
