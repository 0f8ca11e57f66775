"""
Navia Agent Core - Main Application
===================================

FastAPI application entry point.

This module:
- Creates the FastAPI application
- Configures middleware and CORS
- Builds the service container once at startup
- Includes API routes

RUNNING THE APP:
    Development: uvicorn navia.main:app --reload
    Production:  uvicorn navia.main:app --host 0.0.0.0 --port 8000

API DOCUMENTATION:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from navia import __version__
from navia.api.routes import router
from navia.config import get_settings
from navia.logging_config import setup_logging
from navia.services.container import NaviaServices, build_services

logger = logging.getLogger(__name__)


def create_app(services: Optional[NaviaServices] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Prebuilt services (tests pass fakes here); built at
            startup from settings when omitted

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging()
        owned = services is None
        app.state.services = build_services(settings) if owned else services

        logger.info(f"Starting Navia agent core v{__version__}")
        active = app.state.services.settings
        logger.info(f"LLM provider: {active.llm_provider} ({active.get_model_name()})")
        logger.info(f"Knowledge index path: {active.faiss_index_path}")

        yield  # Application runs here

        # Shutdown
        if owned:
            await app.state.services.aclose()
        logger.info("Shutting down Navia agent core")

    app = FastAPI(
        title="Navia Agent Core",
        description=(
            "Multi-agent executive-function coaching: intent routing, "
            "finance / career / daily-task agents, task breakdowns, "
            "and merged multi-domain answers."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Configure CORS for frontend access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/", include_in_schema=False)
    async def root():
        """Redirect root to API documentation."""
        return RedirectResponse(url="/docs")

    return app


# Create the application instance
app = create_app()


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "navia.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug_mode,
        log_level=settings.log_level.lower(),
    )
