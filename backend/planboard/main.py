"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from planboard.api import router as api_router
from planboard.config import get_settings
from planboard.db.session import close_db, init_db
from planboard.exceptions import PlanboardError
from planboard.logging_config import configure_logging
from planboard.middleware import RequestContextMiddleware

logger = structlog.get_logger()
settings = get_settings()

ERROR_STATUS_CODES = {
    "BACKEND_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "FIELD_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "RELATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    configure_logging()
    logger.info("starting_planboard_api", version=settings.app_version)
    if settings.database_url:
        await init_db()
        logger.info("database_connection_initialized")
    else:
        logger.warning("database_not_configured")

    yield

    logger.info("shutting_down_planboard_api")
    await close_db()


async def planboard_error_handler(request: Request, exc: PlanboardError) -> ORJSONResponse:
    status_code = ERROR_STATUS_CODES.get(exc.code, status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("request_error", code=exc.code, error=exc.message)
    return ORJSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Entity relations with lookup and rollup fields for project planning",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    # Trust proxy headers (X-Forwarded-Proto, X-Forwarded-For) from the load balancer
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    app.add_exception_handler(PlanboardError, planboard_error_handler)

    # Include API router
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()
