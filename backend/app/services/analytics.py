"""
Analytics service.

Handles data aggregation for the dashboard, the fuel-efficiency report and
the per-vehicle view. Focused on READ-ONLY operations.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, func, extract
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import NotFoundError
from backend.app.models.driver import Driver
from backend.app.models.driver_enums import DriverStatus
from backend.app.models.fuel_log import FuelLog
from backend.app.models.maintenance_log import MaintenanceLog
from backend.app.models.trip import Trip
from backend.app.models.trip_enums import TripStatus
from backend.app.models.vehicle import Vehicle
from backend.app.models.vehicle_enums import VehicleStatus, VehicleType
from backend.app.schemas.analytics import (
    CompletedTripStats, CostStats, DashboardStats, DriverStats, FuelCostStats,
    FuelEfficiencyEntry, MaintenanceCostStats, MonthlyTrendPoint, TripStats,
    VehicleAnalytics, VehicleCompletedTripStats, VehicleCostStats, VehicleFuelStats,
    VehicleMaintenanceStats, VehicleRecentActivity, VehicleStats, VehicleTripStats,
)
from backend.app.schemas.fuel import FuelLogResponse
from backend.app.schemas.maintenance import MaintenanceResponse
from backend.app.schemas.trip import TripResponse
from backend.app.schemas.vehicle import VehicleResponse

TRIP_DISTANCE = Trip.end_odometer - Trip.start_odometer


def fuel_efficiency(distance: float, liters: float) -> Optional[float]:
    """km per liter to 2 dp; None when no fuel was logged."""
    if not liters:
        return None
    return round(distance / liters, 2)


def return_on_investment(revenue: float, cost: float) -> float:
    if not cost:
        return 0.0
    return round((revenue - cost) / cost * 100, 2)


def utilization_rate(on_trip: int, total: int) -> int:
    """Percent of vehicles on a trip, halves rounded up."""
    if not total:
        return 0
    return (on_trip * 200 + total) // (total * 2)


def trailing_months(today: date, count: int) -> List[Tuple[int, int]]:
    """The `count` calendar months ending with today's, oldest first, as (year, month)."""
    current = today.year * 12 + today.month - 1
    return [(index // 12, index % 12 + 1) for index in range(current - count + 1, current + 1)]


def _zero_filled(rows, members) -> Dict[str, int]:
    counts = {member.value: 0 for member in members}
    for key, count in rows:
        counts[key.value] = count
    return counts


class AnalyticsService:

    @staticmethod
    async def get_dashboard(
        db: AsyncSession,
        vehicle_type: Optional[VehicleType] = None,
        status: Optional[VehicleStatus] = None,
        expiring_within_days: int = 30,
        trend_months: int = 6,
        today: Optional[date] = None
    ) -> DashboardStats:
        """
        Fleet-wide dashboard figures.

        The vehicle type/status filter narrows vehicle counts, utilization
        and every trip, fuel and maintenance figure to matching vehicles.
        Driver figures always cover the whole roster.
        """
        today = today or date.today()

        vehicle_filters = []
        if vehicle_type:
            vehicle_filters.append(Vehicle.vehicle_type == vehicle_type)
        if status:
            vehicle_filters.append(Vehicle.status == status)
        matching_ids = select(Vehicle.id).where(*vehicle_filters) if vehicle_filters else None

        def scoped(column) -> list:
            return [column.in_(matching_ids)] if matching_ids is not None else []

        # 1. Vehicles
        vehicle_rows = await db.execute(
            select(Vehicle.status, func.count(Vehicle.id)).where(*vehicle_filters).group_by(Vehicle.status)
        )
        vehicles_by_status = _zero_filled(vehicle_rows.all(), VehicleStatus)
        type_rows = await db.execute(
            select(Vehicle.vehicle_type, func.count(Vehicle.id)).where(*vehicle_filters).group_by(Vehicle.vehicle_type)
        )
        vehicles_by_type = _zero_filled(type_rows.all(), VehicleType)
        total_vehicles = sum(vehicles_by_status.values())

        # 2. Drivers
        driver_rows = await db.execute(select(Driver.status, func.count(Driver.id)).group_by(Driver.status))
        drivers_by_status = _zero_filled(driver_rows.all(), DriverStatus)
        horizon = today + timedelta(days=expiring_within_days)
        expiring = (await db.execute(
            select(func.count(Driver.id)).where(
                Driver.license_expiry_date >= today,
                Driver.license_expiry_date <= horizon
            )
        )).scalar() or 0

        # 3. Trips
        trip_rows = await db.execute(
            select(Trip.status, func.count(Trip.id)).where(*scoped(Trip.vehicle_id)).group_by(Trip.status)
        )
        trips_by_status = _zero_filled(trip_rows.all(), TripStatus)
        completed_row = (await db.execute(
            select(
                func.count(Trip.id),
                func.coalesce(func.sum(TRIP_DISTANCE), 0),
                func.coalesce(func.sum(Trip.cargo_weight), 0),
                func.coalesce(func.sum(Trip.revenue), 0)
            ).where(Trip.status == TripStatus.COMPLETED, *scoped(Trip.vehicle_id))
        )).one()
        completed = CompletedTripStats(
            total_trips=completed_row[0],
            total_distance=float(completed_row[1]),
            total_cargo_weight=float(completed_row[2]),
            total_revenue=float(completed_row[3])
        )

        # 4. Costs
        fuel_row = (await db.execute(
            select(
                func.coalesce(func.sum(FuelLog.cost), 0),
                func.coalesce(func.sum(FuelLog.liters), 0),
                func.count(FuelLog.id)
            ).where(*scoped(FuelLog.vehicle_id))
        )).one()
        fuel = FuelCostStats(total_cost=float(fuel_row[0]), total_liters=float(fuel_row[1]), count=fuel_row[2])

        maintenance_row = (await db.execute(
            select(
                func.coalesce(func.sum(MaintenanceLog.cost), 0),
                func.count(MaintenanceLog.id)
            ).where(*scoped(MaintenanceLog.vehicle_id))
        )).one()
        maintenance = MaintenanceCostStats(total_cost=float(maintenance_row[0]), count=maintenance_row[1])

        operational_cost = fuel.total_cost + maintenance.total_cost

        # 5. Trend and recent activity
        monthly_trend = await AnalyticsService._monthly_trend(db, today, trend_months, scoped)

        recent = await db.execute(
            select(Trip).where(*scoped(Trip.vehicle_id))
            .order_by(Trip.created_at.desc(), Trip.id.desc()).limit(5)
        )

        return DashboardStats(
            vehicles=VehicleStats(by_status=vehicles_by_status, by_type=vehicles_by_type, total=total_vehicles),
            drivers=DriverStats(
                by_status=drivers_by_status,
                total=sum(drivers_by_status.values()),
                expiring_licenses=expiring,
                expiring_within_days=expiring_within_days
            ),
            trips=TripStats(by_status=trips_by_status, total=sum(trips_by_status.values()), completed=completed),
            costs=CostStats(fuel=fuel, maintenance=maintenance, total_operational_cost=operational_cost),
            fuel_efficiency=fuel_efficiency(completed.total_distance, fuel.total_liters),
            roi=return_on_investment(completed.total_revenue, operational_cost),
            utilization_rate=utilization_rate(vehicles_by_status[VehicleStatus.ON_TRIP.value], total_vehicles),
            monthly_trend=monthly_trend,
            recent_trips=[TripResponse.model_validate(t) for t in recent.scalars().all()]
        )

    @staticmethod
    async def _monthly_trend(db: AsyncSession, today: date, months: int, scoped) -> List[MonthlyTrendPoint]:
        """
        One point per calendar month, keyed by (year, month) so the same month
        of different years never shares a bucket. Months with no activity are
        zero-filled.
        """
        keys = trailing_months(today, months)
        start = date(keys[0][0], keys[0][1], 1)
        points = {
            (year, month): MonthlyTrendPoint(year=year, month=month, label=f"{year:04d}-{month:02d}")
            for year, month in keys
        }

        trip_year = extract("year", Trip.completed_at)
        trip_month = extract("month", Trip.completed_at)
        trip_rows = await db.execute(
            select(
                trip_year, trip_month,
                func.coalesce(func.sum(Trip.revenue), 0),
                func.coalesce(func.sum(TRIP_DISTANCE), 0)
            ).where(
                Trip.status == TripStatus.COMPLETED,
                Trip.completed_at >= datetime(start.year, start.month, 1, tzinfo=timezone.utc),
                *scoped(Trip.vehicle_id)
            ).group_by(trip_year, trip_month)
        )
        for year, month, revenue, distance in trip_rows.all():
            point = points.get((int(year), int(month)))
            if point:
                point.revenue = float(revenue)
                point.distance = float(distance)

        fuel_year = extract("year", FuelLog.date)
        fuel_month = extract("month", FuelLog.date)
        fuel_rows = await db.execute(
            select(
                fuel_year, fuel_month,
                func.coalesce(func.sum(FuelLog.cost), 0),
                func.coalesce(func.sum(FuelLog.liters), 0)
            ).where(FuelLog.date >= start, *scoped(FuelLog.vehicle_id))
            .group_by(fuel_year, fuel_month)
        )
        for year, month, cost, liters in fuel_rows.all():
            point = points.get((int(year), int(month)))
            if point:
                point.fuel_cost = float(cost)
                point.fuel_liters = float(liters)

        maintenance_year = extract("year", MaintenanceLog.date)
        maintenance_month = extract("month", MaintenanceLog.date)
        maintenance_rows = await db.execute(
            select(
                maintenance_year, maintenance_month,
                func.coalesce(func.sum(MaintenanceLog.cost), 0)
            ).where(MaintenanceLog.date >= start, *scoped(MaintenanceLog.vehicle_id))
            .group_by(maintenance_year, maintenance_month)
        )
        for year, month, cost in maintenance_rows.all():
            point = points.get((int(year), int(month)))
            if point:
                point.maintenance_cost = float(cost)

        for point in points.values():
            point.net_profit = round(point.revenue - point.fuel_cost - point.maintenance_cost, 2)
            point.fuel_efficiency = fuel_efficiency(point.distance, point.fuel_liters)

        return [points[key] for key in keys]

    @staticmethod
    async def get_fuel_efficiency_report(db: AsyncSession) -> List[FuelEfficiencyEntry]:
        """Every non-Retired vehicle, most efficient first, vehicles without fuel data last."""
        distance_by_vehicle = (
            select(Trip.vehicle_id, func.sum(TRIP_DISTANCE).label("distance"))
            .where(Trip.status == TripStatus.COMPLETED)
            .group_by(Trip.vehicle_id)
            .subquery()
        )
        liters_by_vehicle = (
            select(FuelLog.vehicle_id, func.sum(FuelLog.liters).label("liters"))
            .group_by(FuelLog.vehicle_id)
            .subquery()
        )
        rows = await db.execute(
            select(
                Vehicle,
                func.coalesce(distance_by_vehicle.c.distance, 0),
                func.coalesce(liters_by_vehicle.c.liters, 0)
            )
            .outerjoin(distance_by_vehicle, distance_by_vehicle.c.vehicle_id == Vehicle.id)
            .outerjoin(liters_by_vehicle, liters_by_vehicle.c.vehicle_id == Vehicle.id)
            .where(Vehicle.status != VehicleStatus.RETIRED)
            .order_by(Vehicle.id)
        )

        report = []
        for vehicle, distance, liters in rows.all():
            report.append(FuelEfficiencyEntry(
                vehicle_id=vehicle.id,
                name=vehicle.name,
                license_plate=vehicle.license_plate,
                vehicle_type=vehicle.vehicle_type,
                total_distance=float(distance),
                total_liters=float(liters),
                fuel_efficiency=fuel_efficiency(float(distance), float(liters))
            ))

        report.sort(key=lambda e: (e.fuel_efficiency is None, -(e.fuel_efficiency or 0)))
        return report

    @staticmethod
    async def get_vehicle_analytics(db: AsyncSession, vehicle_id: int) -> VehicleAnalytics:
        vehicle = await db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError("Vehicle", vehicle_id)

        trip_rows = await db.execute(
            select(Trip.status, func.count(Trip.id)).where(Trip.vehicle_id == vehicle_id).group_by(Trip.status)
        )
        completed_row = (await db.execute(
            select(
                func.count(Trip.id),
                func.coalesce(func.sum(TRIP_DISTANCE), 0),
                func.coalesce(func.sum(Trip.cargo_weight), 0),
                func.coalesce(func.sum(Trip.revenue), 0),
                func.coalesce(func.avg(Trip.cargo_weight), 0)
            ).where(Trip.vehicle_id == vehicle_id, Trip.status == TripStatus.COMPLETED)
        )).one()

        fuel_row = (await db.execute(
            select(
                func.coalesce(func.sum(FuelLog.cost), 0),
                func.coalesce(func.sum(FuelLog.liters), 0),
                func.count(FuelLog.id)
            ).where(FuelLog.vehicle_id == vehicle_id)
        )).one()
        maintenance_row = (await db.execute(
            select(
                func.coalesce(func.sum(MaintenanceLog.cost), 0),
                func.count(MaintenanceLog.id)
            ).where(MaintenanceLog.vehicle_id == vehicle_id)
        )).one()

        recent_trips = await db.execute(
            select(Trip).where(Trip.vehicle_id == vehicle_id)
            .order_by(Trip.created_at.desc(), Trip.id.desc()).limit(10)
        )
        recent_maintenance = await db.execute(
            select(MaintenanceLog).where(MaintenanceLog.vehicle_id == vehicle_id)
            .order_by(MaintenanceLog.date.desc(), MaintenanceLog.id.desc()).limit(5)
        )
        recent_fuel = await db.execute(
            select(FuelLog).where(FuelLog.vehicle_id == vehicle_id)
            .order_by(FuelLog.date.desc(), FuelLog.id.desc()).limit(5)
        )

        distance = float(completed_row[1])
        fuel_cost, liters = float(fuel_row[0]), float(fuel_row[1])
        maintenance_cost = float(maintenance_row[0])

        return VehicleAnalytics(
            vehicle=VehicleResponse.model_validate(vehicle),
            trips=VehicleTripStats(
                by_status=_zero_filled(trip_rows.all(), TripStatus),
                completed=VehicleCompletedTripStats(
                    total_trips=completed_row[0],
                    total_distance=distance,
                    total_cargo_weight=float(completed_row[2]),
                    total_revenue=float(completed_row[3]),
                    avg_cargo_weight=round(float(completed_row[4]), 2)
                )
            ),
            fuel=VehicleFuelStats(
                total_cost=fuel_cost,
                total_liters=liters,
                refill_count=fuel_row[2],
                efficiency=fuel_efficiency(distance, liters)
            ),
            maintenance=VehicleMaintenanceStats(total_cost=maintenance_cost, service_count=maintenance_row[1]),
            costs=VehicleCostStats(fuel=fuel_cost, maintenance=maintenance_cost, total=fuel_cost + maintenance_cost),
            recent_activity=VehicleRecentActivity(
                trips=[TripResponse.model_validate(t) for t in recent_trips.scalars().all()],
                maintenance=[MaintenanceResponse.model_validate(m) for m in recent_maintenance.scalars().all()],
                fuel=[FuelLogResponse.model_validate(f) for f in recent_fuel.scalars().all()]
            )
        )
