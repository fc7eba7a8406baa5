"""
Router for extracted entity endpoints.

Handles:
- Listing entities (paginated) and free-text search
- CSV export
- Getting and deleting single entities
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..dependencies import get_entity_store
from ..models import DeleteEntityResponse, EntityListResponse, StoredEntity
from ..services.export import entities_to_csv, export_filename
from ..services.storage import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/entities", tags=["entities"])

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def _validate_id(entity_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(entity_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid entity ID format",
        )


@router.get("", response_model=EntityListResponse)
async def list_entities(
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    search: str | None = None,
    store: EntityStore = Depends(get_entity_store),
) -> EntityListResponse:
    """
    List entities with pagination, or search them.

    Args:
        page: Page number (default: 1).
        limit: Items per page (default: 50, max: 100).
        search: Optional search query across name, email, organisation and role.
    """
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))

    if search and search.strip():
        entities = store.search_by_text(search.strip(), limit)
        return EntityListResponse(
            entities=entities,
            total=len(entities),
            page=1,
            limit=limit,
            has_more=False,
        )

    entities, total = store.list_page(page, limit)
    return EntityListResponse(
        entities=entities,
        total=total,
        page=page,
        limit=limit,
        has_more=page * limit < total,
    )


# Declared before /{entity_id} so "export" is not treated as an ID
@router.get("/export/csv")
async def export_entities_csv(
    search: str | None = Query(default=None),
    store: EntityStore = Depends(get_entity_store),
) -> Response:
    """Export all (or all matching) entities as a CSV download."""
    entities = store.iter_all(search)
    logger.info("Exporting %d entities to CSV", len(entities))

    return Response(
        content=entities_to_csv(entities),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename()}"',
        },
    )


@router.get("/{entity_id}", response_model=StoredEntity)
async def get_entity(
    entity_id: str,
    store: EntityStore = Depends(get_entity_store),
) -> StoredEntity:
    """Get a single entity by ID."""
    entity = store.get_by_id(_validate_id(entity_id))
    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Entity not found",
        )
    return entity


@router.delete("/{entity_id}", response_model=DeleteEntityResponse)
async def delete_entity(
    entity_id: str,
    store: EntityStore = Depends(get_entity_store),
) -> DeleteEntityResponse:
    """Delete an entity by ID."""
    if not store.delete_by_id(_validate_id(entity_id)):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Entity not found",
        )
    return DeleteEntityResponse(message="Entity deleted successfully", id=entity_id)
