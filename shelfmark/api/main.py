"""
Shelfmark API

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI, Request
from loguru import logger

from .schemas import HealthResponse
from .routes import auth, books, consultations
from .middleware import (
    setup_cors,
    setup_logging,
    setup_exception_handlers,
    LoggingConfig,
    get_cors_config,
    get_security_headers_config,
    setup_security_headers,
)
from .dependencies import (
    get_settings,
    build_database,
    Settings,
)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown tasks:
    - Open the connection pool
    - Create tables and indexes
    - Release connections on shutdown
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting Shelfmark in {settings.environment} mode")

    database = build_database(settings)
    try:
        await database.create_all()
        app.state.database = database
        logger.info("Shelfmark started successfully")

        yield

    finally:
        logger.info("Shutting down Shelfmark...")
        app.state.database = None
        await database.dispose()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Shelfmark",
        description="Historical society library catalog and consultation requests.",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = None

    # ==========================================================================
    # Middleware (order matters - last added = outermost)
    # ==========================================================================

    setup_exception_handlers(app, expose_traceback=not settings.is_production)

    setup_security_headers(app, config=get_security_headers_config(settings.environment))

    setup_cors(
        app,
        config=get_cors_config(settings.environment, frontend_url=settings.frontend_url),
    )

    # Outermost, so unhandled errors are logged and their 500 sees the request ID
    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug and not settings.is_production,
        ),
        structured=settings.environment != "development",
    )

    # ==========================================================================
    # Routers
    # ==========================================================================

    api_prefix = "/api"

    app.include_router(auth.router, prefix=api_prefix)
    app.include_router(books.router, prefix=api_prefix)
    app.include_router(consultations.router, prefix=api_prefix)

    # ==========================================================================
    # System Routes
    # ==========================================================================

    @app.get(f"{api_prefix}/health", response_model=HealthResponse, tags=["System"])
    async def health_check(request: Request) -> HealthResponse:
        """Liveness check; does not touch the database."""
        return HealthResponse(
            status="OK",
            message="Shelfmark API is running",
            timestamp=datetime.now(timezone.utc),
            environment=request.app.state.settings.environment,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "shelfmark.api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug and not settings.is_production,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
