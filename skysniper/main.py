"""
SkySniper — FastAPI Application.

Entry point for the prediction API.
Run: uvicorn skysniper.main:app --host 0.0.0.0 --port 3000 --reload

Routes:
  - POST /api/predict          ← consensus / fallback forecast
  - GET  /api/latency          ← latency windows per operation
  - GET  /api/cache/stats      ← cache size and hit rate
  - GET  /health               ← liveness + latency health
  - GET  /metrics              ← Prometheus metrics
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skysniper.config import settings
from skysniper.container import AppContainer, build_container
from skysniper.middleware.error_handler import ErrorHandlerMiddleware
from skysniper.middleware.request_context import RequestContextMiddleware

from skysniper.api.routers.metrics import router as metrics_router
from skysniper.api.routers.monitoring import router as monitoring_router
from skysniper.api.routers.predict import router as predict_router


def configure_logging() -> None:
    """Route structlog through stdlib logging at the configured level."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — start and stop the cache sweep."""
    container: AppContainer = app.state.container
    logger.info("skysniper_starting", version=settings.app_version)
    if not settings.oracle_api_key:
        logger.warning("oracle_api_key_not_set", msg="Predictions will use the fallback generator")
    container.sweeper.start()
    yield
    container.sweeper.stop()
    logger.info("skysniper_shutdown")


def create_app(container: Optional[AppContainer] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="SkySniper",
        description=(
            "# SkySniper — Crash Multiplier Prediction API\n\n"
            "Parallel oracle fan-out with consensus voting, TTL caching, "
            "latency monitoring and a deterministic fallback.\n"
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.container = container or build_container(settings)

    # ── Middleware (last added = outermost) ──────────────────────────
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routes ────────────────────────────────────────────────────────
    app.include_router(predict_router)
    app.include_router(monitoring_router)
    app.include_router(metrics_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness probe plus latency-based health status."""
        monitor = app.state.container.latency_monitor
        return {
            "status": monitor.health(),
            "version": settings.app_version,
            "service": "skysniper",
            "cache": app.state.container.cache.stats(),
        }

    return app


# Application instance
app = create_app()
