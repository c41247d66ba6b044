"""
Trip-related enumerations.
"""

import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    DRAFT = "Draft"  # Created and validated, nothing reserved yet
    DISPATCHED = "Dispatched"  # Vehicle OnTrip, driver OnDuty
    COMPLETED = "Completed"  # Terminal, odometer recorded
    CANCELLED = "Cancelled"  # Terminal
