"""
Health check endpoints.
"""

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hkidash.api.deps import DbSession
from hkidash.core.config import settings
from hkidash.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    environment: str
    version: str


class ReadinessResponse(BaseModel):
    status: str
    database: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns application status without checking dependencies.
    """
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        version=settings.app_version,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(db: DbSession) -> ReadinessResponse:
    """Check that the database answers."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Database readiness check failed: {e}")
        return ReadinessResponse(status="unhealthy", database=f"error: {e}")
    return ReadinessResponse(status="ready", database="connected")


@router.get("/info")
async def app_info() -> dict:
    """
    Application information endpoint.

    Returns non-sensitive configuration the dashboard front end needs.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "features": {
            "export_formats": ["csv", "xlsx"],
            "export_max_rows": settings.export_max_rows,
            "allowed_extensions": settings.allowed_extensions,
            "max_upload_size_mb": settings.max_upload_size_mb,
            "default_page_size": settings.default_page_size,
        },
    }
