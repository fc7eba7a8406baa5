"""
FastAPI dependency providers.

Long-lived collaborators (settings, text extractor, extraction client) are
built once in the application lifespan and stored on ``app.state``; these
providers hand them to the routers.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import Settings
from .database import get_db
from .services.ai import ExtractionClient
from .services.pipeline import PipelineOrchestrator
from .services.storage import EntityStore
from .services.text_extractor import TextExtractor


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_text_extractor(request: Request) -> TextExtractor:
    return request.app.state.text_extractor


def get_extraction_client(request: Request) -> ExtractionClient:
    return request.app.state.extraction_client


def get_entity_store(db: Session = Depends(get_db)) -> EntityStore:
    """Entity store bound to the request's database session."""
    return EntityStore(db)


def get_pipeline(
    text_extractor: TextExtractor = Depends(get_text_extractor),
    extraction_client: ExtractionClient = Depends(get_extraction_client),
    store: EntityStore = Depends(get_entity_store),
) -> PipelineOrchestrator:
    """Pipeline orchestrator for one upload request."""
    return PipelineOrchestrator(text_extractor, extraction_client, store)
