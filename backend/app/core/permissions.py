"""
Role permission matrix.

Every protected endpoint names one Action; PERMISSIONS maps it to the roles
allowed to perform it.
"""

import enum
from typing import Dict, FrozenSet, Union

from backend.app.models.enums import UserRole


class Action(str, enum.Enum):
    VEHICLES_READ = "vehicles:read"
    VEHICLES_CREATE = "vehicles:create"
    VEHICLES_UPDATE = "vehicles:update"
    VEHICLES_DELETE = "vehicles:delete"

    DRIVERS_READ = "drivers:read"
    DRIVERS_CREATE = "drivers:create"
    DRIVERS_UPDATE = "drivers:update"
    DRIVERS_DELETE = "drivers:delete"
    DRIVERS_EXPIRING = "drivers:expiring"

    TRIPS_READ = "trips:read"
    TRIPS_CREATE = "trips:create"
    TRIPS_UPDATE_STATUS = "trips:update_status"

    MAINTENANCE_READ = "maintenance:read"
    MAINTENANCE_WRITE = "maintenance:write"

    FUEL_READ = "fuel:read"
    FUEL_CREATE = "fuel:create"

    ANALYTICS_READ = "analytics:read"


_ALL_ROLES = frozenset(UserRole)
_MANAGER = frozenset({UserRole.FLEET_MANAGER})

PERMISSIONS: Dict[Action, FrozenSet[UserRole]] = {
    Action.VEHICLES_READ: _ALL_ROLES,
    Action.VEHICLES_CREATE: _MANAGER,
    Action.VEHICLES_UPDATE: _MANAGER,
    Action.VEHICLES_DELETE: _MANAGER,

    Action.DRIVERS_READ: frozenset({UserRole.FLEET_MANAGER, UserRole.DISPATCHER, UserRole.SAFETY_OFFICER}),
    Action.DRIVERS_CREATE: _MANAGER,
    Action.DRIVERS_UPDATE: frozenset({UserRole.FLEET_MANAGER, UserRole.SAFETY_OFFICER}),
    Action.DRIVERS_DELETE: _MANAGER,
    Action.DRIVERS_EXPIRING: frozenset({UserRole.FLEET_MANAGER, UserRole.SAFETY_OFFICER}),

    Action.TRIPS_READ: _ALL_ROLES,
    Action.TRIPS_CREATE: frozenset({UserRole.FLEET_MANAGER, UserRole.DISPATCHER}),
    Action.TRIPS_UPDATE_STATUS: frozenset({UserRole.FLEET_MANAGER, UserRole.DISPATCHER}),

    Action.MAINTENANCE_READ: frozenset({UserRole.FLEET_MANAGER, UserRole.SAFETY_OFFICER, UserRole.FINANCIAL_ANALYST}),
    Action.MAINTENANCE_WRITE: frozenset({UserRole.FLEET_MANAGER, UserRole.SAFETY_OFFICER}),

    Action.FUEL_READ: frozenset({UserRole.FLEET_MANAGER, UserRole.DISPATCHER, UserRole.FINANCIAL_ANALYST}),
    Action.FUEL_CREATE: frozenset({UserRole.FLEET_MANAGER, UserRole.DISPATCHER}),

    Action.ANALYTICS_READ: frozenset({UserRole.FLEET_MANAGER, UserRole.FINANCIAL_ANALYST}),
}


def has_permission(role: Union[UserRole, str, None], action: Action) -> bool:
    """True if `role` may perform `action`. Unknown roles are denied."""
    if role is None:
        return False
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return role in PERMISSIONS.get(action, frozenset())
