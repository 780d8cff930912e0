"""
PharmaSync Dev Server - FastAPI stub of the marketplace REST surface

Serves exactly the endpoints the client consumes, from in-memory state,
for local development (``python run.py``) and end-to-end tests (httpx
``ASGITransport``).
"""

from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlsplit

from fastapi import FastAPI

from ..config.settings import Settings, settings as default_settings
from ..utils.logger import get_logger
from .middleware import CorrelationIdMiddleware, register_error_handlers
from .routes import api_router, dev_router
from .state import DevState, seed_demo_state

logger = get_logger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting PharmaSync dev server...")
    yield
    logger.info("Dev server shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    config: Optional[Settings] = None,
    state: Optional[DevState] = None,
    seed: bool = True
) -> FastAPI:
    """
    Create and configure the dev server.

    Args:
        config: Settings (API prefix is taken from ``api_base_url``)
        state: Pre-built state; a fresh one is created when omitted
        seed: Add the demo accounts to a fresh state

    Returns:
        Configured FastAPI application instance
    """
    config = config or default_settings
    if state is None:
        state = DevState(config)
        if seed:
            seed_demo_state(state)

    application = FastAPI(
        title="PharmaSync Dev Server",
        description="In-memory stub of the pharmacy marketplace API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if config.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if config.debug else None,
    )
    application.state.dev_state = state

    application.add_middleware(CorrelationIdMiddleware)
    register_error_handlers(application)

    prefix = urlsplit(config.api_base_url).path.rstrip("/")
    application.include_router(api_router, prefix=prefix)
    if not config.is_production:
        application.include_router(dev_router, prefix=f"{prefix}/dev", tags=["Dev"])

    @application.get("/health", tags=["Health"])
    async def health():
        return {"status": "healthy", "environment": config.environment}

    return application
