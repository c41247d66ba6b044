"""
Trip database model.

Trips move cargo from one location to another with one vehicle and one
driver. Status follows Draft -> Dispatched -> Completed, with Cancelled
reachable from Draft or Dispatched.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import enum_values
from backend.app.models.trip_enums import TripStatus


class Trip(Base):
    """
    Trip model.
    
    References to the vehicle and driver are non-owning; removing either
    record keeps the trip history with a null reference.
    """
    __tablename__ = "trips"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Assignment
    vehicle_id = Column(Integer, ForeignKey('vehicles.id', ondelete="SET NULL"), nullable=True, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id', ondelete="SET NULL"), nullable=True, index=True)
    
    # Cargo and route
    cargo_weight = Column(Float, nullable=False)
    from_location = Column(String(255), nullable=False)
    to_location = Column(String(255), nullable=False)
    
    # Odometer readings (km)
    start_odometer = Column(Float, nullable=False)
    end_odometer = Column(Float, nullable=True)
    
    # Status
    status = Column(
        Enum(TripStatus, values_callable=enum_values),
        default=TripStatus.DRAFT,
        nullable=False,
        index=True
    )
    version = Column(Integer, nullable=False, default=1)
    
    revenue = Column(Float, nullable=False, default=0)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    
    __mapper_args__ = {"version_id_col": version}
    
    @property
    def distance_traveled(self):
        if self.end_odometer is None or self.start_odometer is None:
            return None
        return self.end_odometer - self.start_odometer
    
    def __repr__(self):
        return f"<Trip(id={self.id}, vehicle_id={self.vehicle_id}, status='{self.status.value}')>"
