"""
Driver Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List

from backend.app.models.driver_enums import DriverStatus
from backend.app.schemas.common import PageMeta


class DriverCreate(BaseModel):
    """Schema for registering a driver."""
    name: str = Field(..., min_length=1, max_length=100)
    license_category: str = Field(..., min_length=1, max_length=20, description="License class, stored upper-cased")
    license_number: str = Field(..., min_length=1, max_length=50, description="Unique license number")
    license_expiry_date: date = Field(..., description="Last day the license is valid")
    status: Optional[DriverStatus] = Field(None, description="Initial status (defaults to Available)")
    completion_rate: Optional[float] = Field(None, ge=0, le=100)
    safety_score: Optional[float] = Field(None, ge=0, le=100)
    complaints: int = Field(0, ge=0)


class DriverUpdate(BaseModel):
    """Schema for updating a driver. Only supplied fields change."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    license_category: Optional[str] = Field(None, min_length=1, max_length=20)
    license_number: Optional[str] = Field(None, min_length=1, max_length=50)
    license_expiry_date: Optional[date] = None
    status: Optional[DriverStatus] = None
    completion_rate: Optional[float] = Field(None, ge=0, le=100)
    safety_score: Optional[float] = Field(None, ge=0, le=100)
    complaints: Optional[int] = Field(None, ge=0)


class DriverResponse(BaseModel):
    """Schema for driver response."""
    id: int
    name: str
    license_category: str
    license_number: str
    license_expiry_date: date
    is_license_expired: bool
    status: DriverStatus
    completion_rate: Optional[float]
    safety_score: Optional[float]
    complaints: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DriverListResponse(PageMeta):
    """Schema for paginated driver list."""
    items: List[DriverResponse]


class ExpiringLicensesResponse(BaseModel):
    """Drivers whose license runs out within the requested window."""
    items: List[DriverResponse]
    count: int
    expiring_within_days: int
