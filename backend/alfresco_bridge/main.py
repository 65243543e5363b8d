import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables
load_dotenv()

from alfresco_bridge.api.routes import alfresco, notifications, repository, settings as settings_routes
from alfresco_bridge.core.config import Settings, settings as app_settings
from alfresco_bridge.core.errors import (
    NotificationConfigError,
    ObjectNotFoundError,
    RepositoryConnectionError,
    RepositoryError,
    RepositoryPermissionError,
    UploadError,
)
from alfresco_bridge.core.limiter import limiter, set_upload_rate_limit
from alfresco_bridge.core.logging import setup_logging
from alfresco_bridge.services.connection_pool import ConnectionPool

logger = logging.getLogger(__name__)


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def permission_error_handler(request: Request, exc: RepositoryPermissionError):
    logger.warning("Permission denied on %s: %s", request.url.path, exc)
    return _error_response(403, exc)


async def not_found_error_handler(request: Request, exc: ObjectNotFoundError):
    return _error_response(404, exc)


async def connection_error_handler(request: Request, exc: RepositoryConnectionError):
    logger.error("Alfresco unreachable on %s: %s", request.url.path, exc)
    return _error_response(502, exc)


async def repository_error_handler(request: Request, exc: RepositoryError):
    logger.error("Alfresco request failed on %s: %s", request.url.path, exc)
    return _error_response(502, exc)


async def upload_error_handler(request: Request, exc: UploadError):
    logger.error("Upload failed on %s: %s", request.url.path, exc)
    return _error_response(500, exc)


async def notification_config_error_handler(request: Request, exc: NotificationConfigError):
    logger.error("Notification settings are invalid: %s", exc)
    return _error_response(500, exc)


def create_app(config: Settings = app_settings) -> FastAPI:
    setup_logging(config.log_level)

    app = FastAPI(
        title="Alfresco Microservice",
        version="1.0.0",
        description="Uploads ticket files to Alfresco over CMIS and forwards notification emails",
    )

    app.state.settings = config

    # Attach limiter to app state
    app.state.limiter = limiter
    set_upload_rate_limit(config.upload_rate_limit)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(RepositoryPermissionError, permission_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_error_handler)
    app.add_exception_handler(RepositoryConnectionError, connection_error_handler)
    app.add_exception_handler(RepositoryError, repository_error_handler)
    app.add_exception_handler(UploadError, upload_error_handler)
    app.add_exception_handler(NotificationConfigError, notification_config_error_handler)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(alfresco.router)
    app.include_router(notifications.router)
    app.include_router(repository.router)
    app.include_router(settings_routes.router)
    if config.enable_test_route:
        logger.warning("Test route /test is enabled; do not use in production")
        app.include_router(alfresco.test_router)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.on_event("startup")
    async def startup():
        """Create the Alfresco connection pool on startup."""
        app.state.connection_pool = ConnectionPool(config.alfresco_url, timeout=config.alfresco_timeout)

    @app.on_event("shutdown")
    async def shutdown():
        """Close every Alfresco session on shutdown."""
        pool = getattr(app.state, "connection_pool", None)
        if pool is not None:
            await pool.close()

    return app


app = create_app()
