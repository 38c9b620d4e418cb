from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..schema import HealthStatus
from ..search.config import SearchSettings, get_cached_settings
from ..search.search_service import SearchService
from ..utils.logging import get_logger
from .routers.search import router as search_router

logger = get_logger(__name__)


async def initialize_search_service(app: FastAPI, settings: SearchSettings) -> None:
    """Initialize the search service on startup."""
    try:
        app.state.search_service = SearchService.from_settings(settings)
        logger.info("search_service_initialized", semantic=settings.enable_semantic_search)
    except Exception as e:
        # Let the app start; the router answers 503 until the service exists
        logger.error("search_service_init_failed", error=str(e))
        app.state.search_service = None


async def shutdown_search_service(app: FastAPI) -> None:
    """Cleanup search service on shutdown."""
    service: Optional[SearchService] = getattr(app.state, "search_service", None)
    if service:
        try:
            await service.close()
            logger.info("search_service_shutdown")
        except Exception as e:
            logger.error("search_service_shutdown_failed", error=str(e))
        finally:
            app.state.search_service = None


def create_app(service: Optional[SearchService] = None, settings: Optional[SearchSettings] = None) -> FastAPI:
    """
    Build the API application.

    When ``service`` is given it is used as-is and its lifecycle belongs to
    the caller; otherwise one is built from settings on startup.
    """
    settings = settings or get_cached_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        if service is None:
            await initialize_search_service(app, settings)
        yield
        if service is None:
            await shutdown_search_service(app)

    app = FastAPI(title="Portal Search", version=settings.service_version, lifespan=lifespan)
    app.state.search_service = service

    app.include_router(search_router, prefix="/api/public")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check() -> HealthStatus:
        return HealthStatus(status="ok", version=settings.service_version)

    return app
