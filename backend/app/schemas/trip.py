"""
Trip schemas.

Schemas for trip creation, status changes and visibility.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from backend.app.models.trip_enums import TripStatus
from backend.app.schemas.common import PageMeta


class TripCreate(BaseModel):
    """Schema for creating a Draft trip."""
    vehicle_id: int = Field(..., description="Vehicle assigned to the trip")
    driver_id: int = Field(..., description="Driver assigned to the trip")
    cargo_weight: float = Field(..., ge=0, description="Cargo weight in kg")
    from_location: str = Field(..., min_length=1, max_length=255)
    to_location: str = Field(..., min_length=1, max_length=255)
    start_odometer: float = Field(..., ge=0, description="Odometer reading at departure in km")
    revenue: float = Field(0, ge=0, description="Revenue earned by the trip")


class TripStatusUpdate(BaseModel):
    """
    Schema for PATCH /trips/{id}/status.

    end_odometer is required when moving to Completed.
    """
    status: TripStatus
    end_odometer: Optional[float] = Field(None, ge=0)


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    vehicle_id: Optional[int]
    driver_id: Optional[int]
    cargo_weight: float
    from_location: str
    to_location: str
    start_odometer: float
    end_odometer: Optional[float]
    distance_traveled: Optional[float]
    status: TripStatus
    revenue: float
    created_at: datetime
    updated_at: datetime
    dispatched_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    class Config:
        from_attributes = True


class TripListResponse(PageMeta):
    """Schema for paginated trip list."""
    items: List[TripResponse]
