"""
Vehicle database model.

Vehicles are registered by Fleet Managers with a capacity and a unique
license plate. Status is driven by the trip and maintenance workflows.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import enum_values
from backend.app.models.vehicle_enums import VehicleStatus, VehicleType


class Vehicle(Base):
    """
    Vehicle model.
    
    `version` is an optimistic-concurrency token: every UPDATE is issued
    with the version that was read, so a writer holding a stale row fails
    instead of silently overwriting a concurrent status change.
    """
    __tablename__ = "vehicles"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Identification
    name = Column(String(100), nullable=False)
    license_plate = Column(String(50), unique=True, nullable=False, index=True)
    vehicle_type = Column(Enum(VehicleType, values_callable=enum_values), nullable=False, index=True)
    
    # Capacity (kg) and odometer (km)
    max_capacity = Column(Float, nullable=False)
    odometer = Column(Float, nullable=False, default=0)
    
    # Status
    status = Column(
        Enum(VehicleStatus, values_callable=enum_values),
        default=VehicleStatus.AVAILABLE,
        nullable=False,
        index=True
    )
    version = Column(Integer, nullable=False, default=1)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.license_plate}', status='{self.status.value}')>"
