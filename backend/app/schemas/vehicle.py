"""
Vehicle Pydantic schemas.

Defines request and response models for vehicle management.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from backend.app.models.vehicle_enums import VehicleStatus, VehicleType
from backend.app.schemas.common import PageMeta


class VehicleCreate(BaseModel):
    """Schema for registering a new vehicle."""
    name: str = Field(..., min_length=1, max_length=100, description="Vehicle display name")
    license_plate: str = Field(..., min_length=1, max_length=50, description="Unique plate, stored upper-cased")
    vehicle_type: VehicleType = Field(..., description="Truck, Van or Bike")
    max_capacity: float = Field(..., ge=0, description="Maximum cargo weight in kg")
    odometer: Optional[float] = Field(None, ge=0, description="Current odometer reading in km (defaults to 0)")
    status: Optional[VehicleStatus] = Field(None, description="Initial status (defaults to Available)")


class VehicleUpdate(BaseModel):
    """Schema for an administrative vehicle update."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    license_plate: Optional[str] = Field(None, min_length=1, max_length=50)
    vehicle_type: Optional[VehicleType] = None
    max_capacity: Optional[float] = Field(None, ge=0)
    odometer: Optional[float] = Field(None, ge=0)
    status: Optional[VehicleStatus] = None


class VehicleResponse(BaseModel):
    """Schema for vehicle response."""
    id: int
    name: str
    license_plate: str
    vehicle_type: VehicleType
    max_capacity: float
    odometer: float
    status: VehicleStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VehicleListResponse(PageMeta):
    """Schema for paginated vehicle list."""
    items: List[VehicleResponse]
