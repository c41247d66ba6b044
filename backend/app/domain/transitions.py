"""
Status transition tables for trips, vehicles and drivers.

Pure functions of (current status, event) -> next status. No I/O happens
here; services load records, ask these functions for the next status and
persist the result inside one transaction.
"""

from typing import Dict, FrozenSet, Optional

from backend.app.core.exceptions import ConflictError, InvalidTransitionError, UnavailableError
from backend.app.models.driver_enums import DriverEvent, DriverStatus
from backend.app.models.trip_enums import TripStatus
from backend.app.models.vehicle_enums import VehicleEvent, VehicleStatus


TRIP_TRANSITIONS: Dict[TripStatus, FrozenSet[TripStatus]] = {
    TripStatus.DRAFT: frozenset({TripStatus.DISPATCHED, TripStatus.CANCELLED}),
    TripStatus.DISPATCHED: frozenset({TripStatus.COMPLETED, TripStatus.CANCELLED}),
    TripStatus.COMPLETED: frozenset(),
    TripStatus.CANCELLED: frozenset(),
}

TERMINAL_TRIP_STATUSES = frozenset(
    status for status, targets in TRIP_TRANSITIONS.items() if not targets
)

# event -> (allowed source statuses or None for any, target status)
VEHICLE_EVENTS: Dict[VehicleEvent, tuple] = {
    VehicleEvent.DISPATCH: (frozenset({VehicleStatus.AVAILABLE}), VehicleStatus.ON_TRIP),
    VehicleEvent.RELEASE: (None, VehicleStatus.AVAILABLE),
    VehicleEvent.ENTER_SHOP: (
        frozenset({VehicleStatus.AVAILABLE, VehicleStatus.IN_SHOP, VehicleStatus.RETIRED}),
        VehicleStatus.IN_SHOP,
    ),
    VehicleEvent.LEAVE_SHOP: (None, VehicleStatus.AVAILABLE),
}

DRIVER_EVENTS: Dict[DriverEvent, tuple] = {
    DriverEvent.DISPATCH: (frozenset({DriverStatus.AVAILABLE}), DriverStatus.ON_DUTY),
    DriverEvent.RELEASE: (None, DriverStatus.AVAILABLE),
}


def allowed_trip_targets(current: TripStatus) -> FrozenSet[TripStatus]:
    return TRIP_TRANSITIONS.get(current, frozenset())


def next_trip_status(current: TripStatus, requested: TripStatus) -> TripStatus:
    """
    Validate a trip status change against the transition table.

    Raises:
        InvalidTransitionError: if `requested` is not reachable from `current`
    """
    allowed = allowed_trip_targets(current)
    if requested not in allowed:
        raise InvalidTransitionError(
            current,
            requested,
            allowed=sorted(allowed, key=lambda s: s.value)
        )
    return requested


def next_vehicle_status(
    current: VehicleStatus,
    event: VehicleEvent,
    vehicle_id: Optional[int] = None
) -> VehicleStatus:
    """
    Resolve the vehicle status an event leads to.

    DISPATCH needs an Available vehicle (UnavailableError otherwise).
    ENTER_SHOP is refused for a vehicle in transit (ConflictError).
    RELEASE and LEAVE_SHOP are accepted from any status.
    """
    sources, target = VEHICLE_EVENTS[event]
    if sources is None or current in sources:
        return target

    if event == VehicleEvent.ENTER_SHOP:
        raise ConflictError(
            "Cannot create maintenance log for a vehicle that is currently on a trip",
            details={
                "resource": "Vehicle",
                "id": vehicle_id,
                "field": "status",
                "actual": current.value
            }
        )
    raise UnavailableError("Vehicle", vehicle_id, current, VehicleStatus.AVAILABLE)


def next_driver_status(
    current: DriverStatus,
    event: DriverEvent,
    driver_id: Optional[int] = None
) -> DriverStatus:
    """Resolve the driver status an event leads to; DISPATCH needs an Available driver."""
    sources, target = DRIVER_EVENTS[event]
    if sources is None or current in sources:
        return target
    raise UnavailableError("Driver", driver_id, current, DriverStatus.AVAILABLE)
