"""
Fuel log database model.

Pure record of a refill, consumed only by analytics.
"""

from sqlalchemy import Column, Integer, Float, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base


class FuelLog(Base):
    """Fuel log model."""
    __tablename__ = "fuel_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    vehicle_id = Column(Integer, ForeignKey('vehicles.id', ondelete="SET NULL"), nullable=True, index=True)
    
    liters = Column(Float, nullable=False)
    cost = Column(Float, nullable=False)
    date = Column(Date, nullable=False, index=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<FuelLog(id={self.id}, vehicle_id={self.vehicle_id}, liters={self.liters})>"
