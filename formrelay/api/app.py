"""FastAPI application factory for the formrelay proxy.

This module provides the proxy application with all routes, middleware and
exception handlers. Every failure is answered with a JSON envelope.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from formrelay.api.forwarding import DestinationForwarder
from formrelay.api.submit import router as submit_router
from formrelay.config.settings import Settings, load_settings
from formrelay.exceptions import ConfigurationError, SubmissionValidationError
from formrelay.models import utc_now_iso
from formrelay.version import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _envelope(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("Starting formrelay proxy")
    logger.info("Version: %s", __version__)
    logger.info("Environment: %s", settings.environment)
    logger.info("Destination URL: %s", settings.google_script_url or "(not configured)")

    yield

    # Shutdown
    logger.info("Shutting down formrelay proxy")


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers that turn every error into a JSON envelope."""

    @app.exception_handler(SubmissionValidationError)
    async def validation_error_handler(
        request: Request, exc: SubmissionValidationError
    ) -> JSONResponse:
        logger.warning("Rejected submission", extra={"error": str(exc)})
        return _envelope(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("Malformed request body", extra={"error": str(exc.errors())})
        return _envelope(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error("Configuration error: %s", exc)
        return _envelope(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _envelope(exc.status_code, "Endpoint not found")
        return _envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error", exc_info=exc)
        return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the proxy application.

    Args:
        settings: Server settings, loaded from file and environment if omitted
        transport: httpx transport for outbound requests to the destination

    Returns:
        Configured FastAPI application instance
    """
    settings = settings if settings is not None else load_settings()
    logging.getLogger("formrelay").setLevel(settings.logging.level.upper())

    app = FastAPI(
        title="formrelay proxy",
        description="""
        Contact form relay proxy

        Receives contact form submissions on a same-origin endpoint and
        forwards them to the spreadsheet append handler.

        ## Endpoints

        - **Submit**: JSON and form-encoded submission relays
        - **Test connection**: Probe a candidate destination URL
        - **Health**: Liveness check
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.forwarder = DestinationForwarder(
        timeout=settings.timeouts.forward,
        test_timeout=settings.timeouts.connection_test,
        transport=transport,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(submit_router)

    # Root endpoint
    @app.get(
        "/",
        summary="API Root",
        description="Get basic information about the API",
        tags=["root"],
    )
    async def root() -> JSONResponse:
        return JSONResponse(
            content={
                "name": "formrelay proxy",
                "version": __version__,
                "docs": "/docs",
                "openapi": "/openapi.json",
            }
        )

    # Health check endpoint
    @app.get(
        "/health",
        summary="Health Check",
        description="Check if the proxy is running",
        tags=["health"],
    )
    async def health_check() -> JSONResponse:
        """Health check endpoint.

        Returns:
            JSONResponse with status, current time and environment
        """
        return JSONResponse(
            content={
                "status": "OK",
                "timestamp": utc_now_iso(),
                "environment": settings.environment,
            }
        )

    return app


def main() -> None:
    """Main entry point for running the proxy via the formrelay-api command."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
