"""
Stream Classification Service - Main Application Entry Point

- create_app(settings) builds a FastAPI app with an explicitly
  constructed store and classifier
- uvicorn stream_classifier.main:create_app --factory starts the service

Patterns Applied:
- Lifespan context manager
- One-time configure_logging() at startup
- Settings passed in, not read at import time

Anti-Patterns Avoided:
- Deprecated @app.on_event - using modern lifespan pattern
- Module-level service singletons
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stream_classifier.api.errors import register_exception_handlers
from stream_classifier.api.health import HealthService
from stream_classifier.api.health import router as health_router
from stream_classifier.api.streams import streams_router
from stream_classifier.classifiers.classifier import StreamClassifier
from stream_classifier.classifiers.store import CombinationStore
from stream_classifier.core.config import Settings, get_settings
from stream_classifier.core.logging import configure_logging, get_logger
from stream_classifier.core.tracing import configure_tracing

API_ROOT = "/api"

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Reference data is loaded before the app is returned, so a bad seed
    file fails fast instead of on the first request.

    Args:
        settings: Configuration; read from the environment when omitted.

    Returns:
        Configured FastAPI application.

    Raises:
        ReferenceDataError: If the seed file cannot be loaded.
    """
    settings = settings or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_output=settings.log_json,
        service_name=settings.service_name,
    )

    store = CombinationStore.from_seed(settings.resolved_seed_path)
    classifier = StreamClassifier(
        store,
        fallback_to_common=settings.fallback_to_common,
        strict_subjects=settings.strict_subjects,
    )

    health = HealthService(version=settings.version, service=settings.service_name)
    health.set_reference_data_loaded(True, combinations=len(store))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager for startup/shutdown events."""
        # =====================================================================
        # STARTUP
        # =====================================================================
        logger.info(
            "startup",
            service=settings.service_name,
            version=settings.version,
            environment=settings.environment,
            combinations=len(store),
        )

        if settings.tracing_enabled:
            configure_tracing(
                service_name=settings.service_name,
                service_version=settings.version,
                console_export=settings.tracing_console_export,
            )
            logger.info("tracing_configured")

        app.state.initialized = True

        yield

        # =====================================================================
        # SHUTDOWN
        # =====================================================================
        logger.info("shutdown", service=settings.service_name)
        app.state.initialized = False

    app = FastAPI(
        title="Stream-Classification-Service",
        description="Classifies A/L subject combinations into academic streams",
        version=settings.version,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.classifier = classifier
    app.state.health = health
    app.state.no_match_status_code = settings.no_match_status_code
    app.state.environment = settings.environment

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.environment == "development" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(streams_router, prefix=API_ROOT)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint pointing at the docs."""
        return {
            "service": settings.service_name,
            "version": settings.version,
            "docs": "/docs",
        }

    return app


def main() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "stream_classifier.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
