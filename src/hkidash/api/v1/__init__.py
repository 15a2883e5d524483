"""API v1 routes."""

from fastapi import APIRouter

from hkidash.api.v1 import auth, dashboard, health, master, records, users

router = APIRouter()

# Include all v1 routes
router.include_router(health.router, tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(records.router, prefix="/records", tags=["records"])
router.include_router(master.router, prefix="/master", tags=["master"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])

__all__ = ["router"]
