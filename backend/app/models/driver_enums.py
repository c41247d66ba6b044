"""
Driver-related enumerations.
"""

import enum


class DriverStatus(str, enum.Enum):
    """Driver status enumeration."""
    AVAILABLE = "Available"
    ON_DUTY = "OnDuty"
    SUSPENDED = "Suspended"


class DriverEvent(str, enum.Enum):
    """Workflow events that move a driver between statuses."""
    DISPATCH = "DISPATCH"
    RELEASE = "RELEASE"


# Statuses that put a driver behind the wheel and therefore need a valid license
ACTIVE_DRIVER_STATUSES = frozenset({DriverStatus.AVAILABLE, DriverStatus.ON_DUTY})
