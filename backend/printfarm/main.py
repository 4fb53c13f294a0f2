"""
FastAPI application entry point with health endpoints and service routing.

This module builds the FastAPI application with CORS configuration, request
and station correlation, health check endpoints and the mapping from domain
errors to HTTP responses. The entity store is created by the lifespan unless
one is handed to ``create_app`` (tests do this).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from printfarm.api.v1 import api_router
from printfarm.core.config import Settings, get_settings
from printfarm.core.exceptions import PrintFarmError
from printfarm.core.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    log_performance,
    set_request_id,
    set_station_id,
)
from printfarm.database.store import EntityStore

# Configure logging before application initialization
configure_logging()
logger = get_logger(__name__)

ERROR_STATUS_CODES: dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "duplicate_key": status.HTTP_409_CONFLICT,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "noop_transition": status.HTTP_409_CONFLICT,
    "not_ready": status.HTTP_409_CONFLICT,
    "transaction_conflict": status.HTTP_409_CONFLICT,
    "unknown_part": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "inactive_reference": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "invalid_input": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "storage_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan context manager for startup and shutdown events.

    Creates the entity store on startup when none was injected, optionally
    ensures the schema, and disposes the engine on shutdown if this lifespan
    created it.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    settings: Settings = app.state.settings
    owns_store = app.state.store is None

    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        version=settings.app_version,
    )

    with log_performance(logger, "application_startup"):
        if owns_store:
            app.state.store = EntityStore.from_settings(settings)
        if settings.auto_create_schema:
            await app.state.store.create_schema()
        logger.info("Resources initialized successfully")

    yield

    logger.info("Application shutting down")
    with log_performance(logger, "application_shutdown"):
        if owns_store:
            await app.state.store.dispose()
            app.state.store = None
        logger.info("Resources cleaned up successfully")


def _error_body(error: str, message: str, details=None) -> dict:
    return {
        "error": error,
        "message": message,
        "details": details,
        "request_id": get_request_id(),
    }


def create_app(
    settings: Optional[Settings] = None, store: Optional[EntityStore] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings, defaults to the cached environment settings
        store: Pre-built entity store; when given, the application does not
            dispose it on shutdown

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Print farm order tracking and production workflow API",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """
        Middleware for request logging and correlation ID management.

        Sets the request ID and the calling station for correlation, logs
        request details and measures response time. Clears context after
        request processing.
        """
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        set_station_id(request.headers.get("X-Station-ID"))

        logger.info(
            "Request received",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            with log_performance(
                logger,
                "request_processing",
                method=request.method,
                path=request.url.path,
            ):
                response = await call_next(request)

            response.headers["X-Request-ID"] = request_id

            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
            return response
        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        finally:
            clear_context()

    @app.exception_handler(PrintFarmError)
    async def domain_exception_handler(
        request: Request, exc: PrintFarmError
    ) -> JSONResponse:
        """Map a domain error to its HTTP status using the error code."""
        status_code = ERROR_STATUS_CODES.get(
            exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "Request rejected",
            method=request.method,
            path=request.url.path,
            error_code=exc.code,
            error=str(exc),
            context=exc.context,
        )
        return JSONResponse(
            status_code=status_code,
            content=_error_body(
                exc.code, str(exc), jsonable_encoder(exc.context) or None
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Handle request validation errors with structured error response.

        Args:
            request: HTTP request that caused validation error
            exc: Validation exception with error details

        Returns:
            JSON response with validation error details
        """
        errors = jsonable_encoder(
            [
                {key: value for key, value in error.items() if key != "ctx"}
                for error in exc.errors()
            ]
        )
        logger.warning(
            "Request validation failed",
            method=request.method,
            path=request.url.path,
            errors=errors,
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body("validation_error", "Request validation failed", errors),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """
        Handle unexpected exceptions with structured error response.

        Logs error with full context and returns generic error message
        to avoid exposing internal details.
        """
        logger.error(
            "Unhandled exception",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("internal_error", "An unexpected error occurred"),
        )

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health check endpoint",
    )
    async def health_check() -> dict[str, str]:
        """Always returns 200 OK while the process is running."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        }

    @app.get(
        "/ready",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Readiness check endpoint",
    )
    async def readiness_check(request: Request):
        """
        Readiness check endpoint for orchestration.

        Verifies database connectivity through the entity store and returns
        503 until it answers.
        """
        store: Optional[EntityStore] = request.app.state.store
        database_ready = store is not None and await store.is_healthy()

        if not database_ready:
            logger.warning("Readiness check failed", dependencies_ready=False)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": "not_ready",
                    "service": settings.app_name,
                    "dependencies_ready": False,
                    "database": "unhealthy",
                },
            )

        return {
            "status": "ready",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "dependencies_ready": True,
            "database": "healthy",
        }

    app.include_router(api_router, prefix=settings.api_v1_prefix)
    return app


app = create_app()


def run() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "printfarm.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_config=None,
    )
