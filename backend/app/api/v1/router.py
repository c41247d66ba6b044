"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    auth, vehicles, drivers, trips, maintenance, fuel, analytics
)

router = APIRouter()

# Authentication
router.include_router(auth.router)

# Fleet records
router.include_router(vehicles.router)
router.include_router(drivers.router)

# Workflows
router.include_router(trips.router)
router.include_router(maintenance.router)
router.include_router(fuel.router)

# Reporting
router.include_router(analytics.router)
