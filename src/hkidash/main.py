"""
HKI Dashboard FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hkidash.api.v1 import router as v1_router
from hkidash.core.config import settings
from hkidash.core.exceptions import HkiDashError
from hkidash.core.logging import get_logger, setup_logging
from hkidash.core.request_logging import RequestLoggingMiddleware
from hkidash.db.session import close_db, get_db_context, init_db
from hkidash.services.storage_service import get_storage_service
from hkidash.services.user_service import UserService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    try:
        await init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    # The dashboard still lists and edits records without storage
    try:
        get_storage_service().ensure_bucket()
    except HkiDashError as e:
        logger.warning(f"Certificate storage unavailable: {e.message}")

    async with get_db_context() as db:
        await UserService().ensure_super_admin(db)

    yield

    logger.info("Shutting down...")
    await close_db()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging(
        log_level=settings.log_level,
        json_logs=settings.environment == "production",
    )

    app = FastAPI(
        title=settings.app_name,
        description="Admin backend for HKI (intellectual property) facilitation records",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(v1_router, prefix=settings.api_v1_prefix)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(HkiDashError)
    async def hkidash_exception_handler(
        request: Request,
        exc: HkiDashError,
    ) -> JSONResponse:
        """Handle dashboard exceptions."""
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message}", extra={"details": exc.details})
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        errors = []
        for error in exc.errors():
            errors.append(
                {
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
            )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": {"errors": errors},
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(f"Unexpected error: {exc}")

        # In production, don't expose internal error details
        if settings.environment == "production":
            message = "An unexpected error occurred"
        else:
            message = str(exc)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": message,
                }
            },
        )


# Create the application instance
app = create_app()
