"""
User roles enumeration and shared enum helpers.

Defines the role types for the fleet logistics system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        FLEET_MANAGER: Owns fleet assets, full administrative access
        DISPATCHER: Creates and advances trips, records fuel
        SAFETY_OFFICER: Manages driver compliance and maintenance
        FINANCIAL_ANALYST: Read access to costs and analytics
    """
    FLEET_MANAGER = "FleetManager"
    DISPATCHER = "Dispatcher"
    SAFETY_OFFICER = "SafetyOfficer"
    FINANCIAL_ANALYST = "FinancialAnalyst"


def enum_values(enum_cls) -> list:
    """Persist enum values ("OnTrip") rather than member names ("ON_TRIP")."""
    return [member.value for member in enum_cls]
