"""
Analytics schemas for the dashboard, fuel-efficiency report and per-vehicle view.
"""

from pydantic import BaseModel
from typing import Dict, List, Optional

from backend.app.models.vehicle_enums import VehicleType
from backend.app.schemas.fuel import FuelLogResponse
from backend.app.schemas.maintenance import MaintenanceResponse
from backend.app.schemas.trip import TripResponse
from backend.app.schemas.vehicle import VehicleResponse


class VehicleStats(BaseModel):
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    total: int


class DriverStats(BaseModel):
    by_status: Dict[str, int]
    total: int
    expiring_licenses: int
    expiring_within_days: int


class CompletedTripStats(BaseModel):
    """Totals over Completed trips."""
    total_trips: int = 0
    total_distance: float = 0.0
    total_cargo_weight: float = 0.0
    total_revenue: float = 0.0


class TripStats(BaseModel):
    by_status: Dict[str, int]
    total: int
    completed: CompletedTripStats


class FuelCostStats(BaseModel):
    total_cost: float = 0.0
    total_liters: float = 0.0
    count: int = 0


class MaintenanceCostStats(BaseModel):
    total_cost: float = 0.0
    count: int = 0


class CostStats(BaseModel):
    fuel: FuelCostStats
    maintenance: MaintenanceCostStats
    total_operational_cost: float


class MonthlyTrendPoint(BaseModel):
    """One calendar month of the trailing trend, keyed by absolute year and month."""
    year: int
    month: int
    label: str
    revenue: float = 0.0
    distance: float = 0.0
    fuel_cost: float = 0.0
    fuel_liters: float = 0.0
    maintenance_cost: float = 0.0
    net_profit: float = 0.0
    fuel_efficiency: Optional[float] = None


class DashboardStats(BaseModel):
    """Fleet-wide dashboard figures."""
    vehicles: VehicleStats
    drivers: DriverStats
    trips: TripStats
    costs: CostStats
    fuel_efficiency: Optional[float]
    roi: float
    utilization_rate: int
    monthly_trend: List[MonthlyTrendPoint]
    recent_trips: List[TripResponse]


class FuelEfficiencyEntry(BaseModel):
    vehicle_id: int
    name: str
    license_plate: str
    vehicle_type: VehicleType
    total_distance: float
    total_liters: float
    fuel_efficiency: Optional[float]
    efficiency_unit: str = "km/L"


class VehicleCompletedTripStats(CompletedTripStats):
    avg_cargo_weight: float = 0.0


class VehicleTripStats(BaseModel):
    by_status: Dict[str, int]
    completed: VehicleCompletedTripStats


class VehicleFuelStats(BaseModel):
    total_cost: float
    total_liters: float
    refill_count: int
    efficiency: Optional[float]


class VehicleMaintenanceStats(BaseModel):
    total_cost: float
    service_count: int


class VehicleCostStats(BaseModel):
    fuel: float
    maintenance: float
    total: float


class VehicleRecentActivity(BaseModel):
    trips: List[TripResponse]
    maintenance: List[MaintenanceResponse]
    fuel: List[FuelLogResponse]


class VehicleAnalytics(BaseModel):
    """Trip, fuel and maintenance figures for a single vehicle."""
    vehicle: VehicleResponse
    trips: VehicleTripStats
    fuel: VehicleFuelStats
    maintenance: VehicleMaintenanceStats
    costs: VehicleCostStats
    recent_activity: VehicleRecentActivity
