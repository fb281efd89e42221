"""
Model Registry Server
Unified LLM model registry and model selection service

Architecture:
- Capability Catalog: Built-in model capability table (src/config/model_capabilities.json)
- Dynamic Discovery: Models served by a local Ollama instance
- Model Registry: Static + dynamic models indexed by id and provider
- Selection: Hint mapping and weighted capability scoring
- Parameters: Temperature / max tokens / extended thinking resolution
"""

from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config.settings import settings, get_cors_config
from src.services.llm import ensure_model_registry

logger = logging.getLogger(__name__)


def _log_discovery_result(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.info("Background model discovery cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background model discovery failed: {exc!r}")
    else:
        logger.info(f"Background model discovery finished: {len(task.result())} models")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the model registry before serving requests."""
    registry = await ensure_model_registry(settings, discover=not settings.BACKGROUND_DISCOVERY)

    discovery_task = None
    if settings.BACKGROUND_DISCOVERY:
        discovery_task = asyncio.create_task(registry.refresh_dynamic_models())
        discovery_task.add_done_callback(_log_discovery_result)

    yield

    # A finished task was already reported by _log_discovery_result.
    if discovery_task is not None and not discovery_task.done():
        discovery_task.cancel()
        try:
            await discovery_task
        except asyncio.CancelledError:
            pass


def create_app() -> FastAPI:
    """Create and configure Model Registry Server application."""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Unified LLM model registry and model selection",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    cors_config = get_cors_config()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config["allow_origins"],
        allow_credentials=cors_config["allow_credentials"],
        allow_methods=cors_config["allow_methods"],
        allow_headers=cors_config["allow_headers"],
    )

    # Import routes (deferred to avoid circular imports)
    from src.api.routes import models

    app.include_router(models.router)

    @app.get("/")
    async def root():
        """Root endpoint - service information"""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "description": "Unified LLM model registry and model selection",
            "status": "operational",
            "endpoints": {
                "models": "/api/models",
                "select": "/api/models/select",
                "refresh": "/api/models/refresh",
                "health": "/health",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        registry = models.get_registry()
        return {
            "status": "ok" if registry.initialized else "starting",
            "service": "model-registry-server",
            "version": settings.APP_VERSION,
            "models": len(registry.get_all_models(include_hidden=True)) if registry.initialized else 0,
        }

    logger.info(f"Model Registry Server initialized on port {settings.PORT}")
    return app

# Create app instance
app = create_app()
