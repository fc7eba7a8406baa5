"""
FastAPI application for the document entity extraction service.

Provides endpoints for:
- Uploading PDF/DOCX documents for entity extraction
- Listing, searching and exporting extracted entities
- Retrieving and deleting single entities
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import Settings, get_settings
from .database import create_db_engine, create_session_factory, init_db
from .models import HealthResponse
from .routers import entities, upload
from .services.ai import ExtractionClient, create_openai_client
from .services.storage import PersistenceError
from .services.text_extractor import TextExtractor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler: build collaborators once, dispose on shutdown."""
    settings: Settings = app.state.settings
    logger.info("Starting Document Entity Extractor...")

    engine = create_db_engine(settings.database_url, echo=settings.sql_debug)
    if settings.auto_create_tables:
        init_db(engine)

    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.text_extractor = TextExtractor()
    app.state.openai_client = create_openai_client(
        settings.openai_api_key,
        timeout=settings.openai_timeout_seconds,
    )
    app.state.extraction_client = ExtractionClient(
        app.state.openai_client,
        model=settings.openai_model,
        max_tokens=settings.llm_max_tokens,
        max_input_chars=settings.max_input_chars,
    )
    logger.info("Services initialized successfully (model=%s)", settings.openai_model)

    yield

    logger.info("Shutting down Document Entity Extractor...")
    if app.state.openai_client is not None:
        await app.state.openai_client.close()
    engine.dispose()


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings. Defaults to get_settings().
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Document Entity Extractor API",
        description="Extracts people and contact details from PDF/DOCX documents using AI",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Health Endpoints
    # =========================================================================

    @app.get("/", response_model=HealthResponse)
    async def root() -> HealthResponse:
        """Root endpoint - health check."""
        return HealthResponse(
            status="healthy",
            message="Document Entity Extractor API is running",
            version=__version__,
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", message="Service is healthy", version=__version__)

    # =========================================================================
    # Include Routers
    # =========================================================================

    app.include_router(upload.router)
    app.include_router(entities.router)

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error("Storage failure: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

    return app


app = create_app()
