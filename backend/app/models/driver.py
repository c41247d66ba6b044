"""
Driver database model.

Drivers carry license details; a driver with an expired license can not be
made Available or OnDuty.
"""

from datetime import date
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import enum_values
from backend.app.models.driver_enums import DriverStatus


class Driver(Base):
    """
    Driver model.
    
    Performance fields (completion_rate, safety_score, complaints) are
    informational and play no part in status transitions.
    """
    __tablename__ = "drivers"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    name = Column(String(100), nullable=False)
    
    # License
    license_category = Column(String(20), nullable=False)
    license_number = Column(String(50), unique=True, nullable=False, index=True)
    license_expiry_date = Column(Date, nullable=False, index=True)
    
    # Status
    status = Column(
        Enum(DriverStatus, values_callable=enum_values),
        default=DriverStatus.AVAILABLE,
        nullable=False,
        index=True
    )
    version = Column(Integer, nullable=False, default=1)
    
    # Performance (informational)
    completion_rate = Column(Float, nullable=True)
    safety_score = Column(Float, nullable=True)
    complaints = Column(Integer, nullable=False, default=0)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    __mapper_args__ = {"version_id_col": version}
    
    @property
    def is_license_expired(self) -> bool:
        return self.license_expiry_date < date.today()
    
    def __repr__(self):
        return f"<Driver(id={self.id}, license='{self.license_number}', status='{self.status.value}')>"
