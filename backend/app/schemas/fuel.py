"""
Fuel log schemas.
"""

from pydantic import BaseModel, Field
import datetime as dt
from typing import List, Optional

from backend.app.schemas.common import PageMeta


class FuelLogCreate(BaseModel):
    vehicle_id: int
    liters: float = Field(..., ge=0.1, description="Liters refilled")
    cost: float = Field(..., ge=0)
    date: Optional[dt.date] = Field(None, description="Refill date (defaults to today)")


class FuelLogResponse(BaseModel):
    """Schema for fuel log response."""
    id: int
    vehicle_id: Optional[int]
    liters: float
    cost: float
    date: dt.date
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class FuelLogListResponse(PageMeta):
    items: List[FuelLogResponse]
