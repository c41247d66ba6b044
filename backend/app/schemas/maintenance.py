"""
Maintenance log schemas.
"""

from pydantic import BaseModel, Field
import datetime as dt
from typing import List, Optional

from backend.app.schemas.common import PageMeta
from backend.app.schemas.vehicle import VehicleResponse


class MaintenanceCreate(BaseModel):
    """Schema for logging maintenance. The vehicle goes InShop."""
    vehicle_id: int
    description: str = Field(..., min_length=1, max_length=500)
    cost: float = Field(..., ge=0)
    date: Optional[dt.date] = Field(None, description="Service date (defaults to today)")


class MaintenanceUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    cost: Optional[float] = Field(None, ge=0)
    date: Optional[dt.date] = None


class MaintenanceResponse(BaseModel):
    """Schema for maintenance log response."""
    id: int
    vehicle_id: Optional[int]
    description: str
    cost: float
    date: dt.date
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class MaintenanceListResponse(PageMeta):
    items: List[MaintenanceResponse]


class MaintenanceCompleteResponse(BaseModel):
    """Returned by PATCH /maintenance/{id}/complete."""
    message: str
    vehicle: VehicleResponse
