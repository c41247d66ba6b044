"""
Maintenance log database model.

Creating a log sends the vehicle to the shop. The log itself has no
open/closed flag: shop status lives on Vehicle.status only.
"""

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base


class MaintenanceLog(Base):
    """Maintenance log model."""
    __tablename__ = "maintenance_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    vehicle_id = Column(Integer, ForeignKey('vehicles.id', ondelete="SET NULL"), nullable=True, index=True)
    
    description = Column(String(500), nullable=False)
    cost = Column(Float, nullable=False)
    date = Column(Date, nullable=False, index=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<MaintenanceLog(id={self.id}, vehicle_id={self.vehicle_id}, cost={self.cost})>"
