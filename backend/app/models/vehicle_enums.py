"""
Vehicle-related enumerations.
"""

import enum


class VehicleStatus(str, enum.Enum):
    """Vehicle status enumeration."""
    AVAILABLE = "Available"  # Ready to be assigned to a trip
    ON_TRIP = "OnTrip"  # Assigned to a dispatched trip
    IN_SHOP = "InShop"  # Under maintenance
    RETIRED = "Retired"  # Out of service


class VehicleType(str, enum.Enum):
    """Vehicle type enumeration."""
    TRUCK = "Truck"
    VAN = "Van"
    BIKE = "Bike"


class VehicleEvent(str, enum.Enum):
    """Workflow events that move a vehicle between statuses."""
    DISPATCH = "DISPATCH"
    RELEASE = "RELEASE"
    ENTER_SHOP = "ENTER_SHOP"
    LEAVE_SHOP = "LEAVE_SHOP"
