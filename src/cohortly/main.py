"""
Cohortly FastAPI Application

Role-based program management: programs, applications, enrollments and
assessments for students, mentors and admins.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from cohortly.config import settings
from cohortly.core.database import close_db, engine
from cohortly.core.errors import CohortlyError
from cohortly.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events.

    Startup:
    - Verify database connection

    Shutdown:
    - Close database connections
    """
    logger.info("Cohortly starting...")

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except Exception:
        logger.exception("Database connection failed")
        raise

    logger.info("Cohortly ready")

    yield

    logger.info("Cohortly shutting down...")
    await close_db()
    logger.info("Shutdown complete")


async def handle_cohortly_error(request: Request, exc: CohortlyError) -> JSONResponse:
    """Render taxonomy errors as `{"error", "kind"}` with their status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; never return it (development adds the message)."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    content: dict[str, Any] = {"error": "Internal server error"}
    if settings.is_local:
        content["details"] = str(exc)
    return JSONResponse(status_code=500, content=content)


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    configure_logging()

    app = FastAPI(
        title="Cohortly",
        description="Program, enrollment and assessment management API",
        version="0.1.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "content-type"],
    )

    app.add_exception_handler(CohortlyError, handle_cohortly_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)

    # Health check endpoints
    @app.get("/", tags=["Health"])
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": "Cohortly",
            "status": "operational",
            "version": "0.1.0",
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/health", tags=["Health"], response_model=None)
    async def health_check() -> JSONResponse:
        """Health check endpoint for load balancers."""
        checks: dict[str, dict[str, Any]] = {}

        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = {"status": "healthy"}
        except Exception as e:
            checks["database"] = {"status": "unhealthy", "error": str(e)}

        all_healthy = all(check["status"] == "healthy" for check in checks.values())
        return JSONResponse(
            status_code=200 if all_healthy else 503,
            content={
                "status": "healthy" if all_healthy else "unhealthy",
                "environment": settings.ENVIRONMENT,
                "checks": checks,
            },
        )

    @app.get("/health/live", tags=["Health"])
    async def liveness_check() -> dict[str, str]:
        """Liveness check. Returns 200 if the process is up."""
        return {"status": "alive"}

    # Register API routers
    from cohortly.api.v1 import actions, profiles

    app.include_router(actions.router, prefix="/api/v1/actions", tags=["Actions"])
    app.include_router(profiles.router, prefix="/api/v1/profiles", tags=["Profiles"])

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cohortly.main:app",
        host="0.0.0.0",  # nosec B104 - Intentional for containerized deployment
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
