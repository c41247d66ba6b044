"""
Security guards for role-based access control.

Provides dependencies for protecting endpoints.
"""

from fastapi import Depends
from backend.app.core.dependencies import get_current_user
from backend.app.core.exceptions import InsufficientPermissionsError
from backend.app.core.permissions import Action, PERMISSIONS, has_permission


def require_permission(action: Action):
    """
    Dependency factory for permission-based access control.
    
    Usage:
        @router.post("/vehicles")
        async def create_vehicle(current_user: dict = Depends(require_permission(Action.VEHICLES_CREATE))):
            ...
    
    Returns:
        FastAPI dependency returning the authenticated user payload
        
    Raises:
        InsufficientPermissionsError (403) if the user's role may not perform `action`
    """
    async def permission_checker(current_user: dict = Depends(get_current_user)) -> dict:
        role = current_user.get("role")
        
        if not has_permission(role, action):
            raise InsufficientPermissionsError(
                f"Role '{role}' is not allowed to perform '{action.value}'",
                details={
                    "action": action.value,
                    "role": role,
                    "allowed_roles": sorted(r.value for r in PERMISSIONS.get(action, ()))
                }
            )
        
        return current_user
    
    return permission_checker
