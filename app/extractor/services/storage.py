"""
Storage service for extracted entities.

Wraps a SQLAlchemy session and exposes the insert / list / get / delete /
search operations used by the pipeline and the entity endpoints.
"""

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import ENTITY_FIELDS, ExtractedEntity, StoredEntity
from ..models_db import ExtractedEntityRecord

logger = logging.getLogger(__name__)

# Columns matched by free-text search
SEARCH_COLUMNS = (
    ExtractedEntityRecord.full_name,
    ExtractedEntityRecord.email,
    ExtractedEntityRecord.organisation,
    ExtractedEntityRecord.role_title,
)


class PersistenceError(Exception):
    """Raised when a storage operation fails."""

    pass


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the query is matched literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_id(entity_id: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(entity_id, uuid.UUID):
        return entity_id
    try:
        return uuid.UUID(str(entity_id))
    except ValueError:
        return None


class EntityStore:
    """Persistence operations for extracted entities."""

    def __init__(self, db: Session):
        self.db = db

    def _record(
        self,
        entity: ExtractedEntity,
        source_filename: str,
        audit: dict[str, Any] | None,
    ) -> ExtractedEntityRecord:
        return ExtractedEntityRecord(
            **{name: getattr(entity, name) for name in ENTITY_FIELDS},
            source_document_name=source_filename,
            raw_json=audit,
        )

    def insert_one(
        self,
        entity: ExtractedEntity,
        source_filename: str,
        audit: dict[str, Any] | None,
    ) -> StoredEntity:
        """
        Save a single extracted entity.

        Raises:
            PersistenceError: If the insert fails.
        """
        return self.insert_many([entity], source_filename, audit)[0]

    def insert_many(
        self,
        entities: Sequence[ExtractedEntity],
        source_filename: str,
        audit: dict[str, Any] | None,
    ) -> list[StoredEntity]:
        """
        Save all entities of one document in a single transaction.

        Either every entity is stored or none is.

        Args:
            entities: Validated entities from one document.
            source_filename: Original filename of the document.
            audit: Audit payload of the LLM call, stored with every entity.

        Returns:
            The stored entities, in input order.

        Raises:
            PersistenceError: If the insert fails.
        """
        if not entities:
            return []

        records = [self._record(e, source_filename, audit) for e in entities]
        try:
            self.db.add_all(records)
            self.db.commit()
        except Exception as e:
            # Any flush failure leaves the session needing a rollback
            self.db.rollback()
            logger.error("Database batch insert error for %s: %s", source_filename, e)
            raise PersistenceError(f"Failed to save entities: {e}") from e

        logger.info("Saved %d entities from %s", len(records), source_filename)
        return [StoredEntity.model_validate(r) for r in records]

    def rollback(self) -> None:
        """Discard any pending changes so the session can be reused."""
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            logger.warning("Session rollback failed: %s", e)

    def list_page(self, page: int = 1, page_size: int = 50) -> tuple[list[StoredEntity], int]:
        """
        Get one page of entities, newest first.

        Returns:
            Tuple of (entities on the page, total entity count).
        """
        page = max(1, page)
        offset = (page - 1) * page_size
        try:
            total = self.db.scalar(select(func.count()).select_from(ExtractedEntityRecord)) or 0
            records = self.db.scalars(
                select(ExtractedEntityRecord)
                .order_by(ExtractedEntityRecord.created_at.desc())
                .offset(offset)
                .limit(page_size)
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to fetch entities: {e}") from e

        return [StoredEntity.model_validate(r) for r in records], total

    def get_by_id(self, entity_id: str | uuid.UUID) -> StoredEntity | None:
        """Get a single entity, or None if it does not exist."""
        record_id = _parse_id(entity_id)
        if record_id is None:
            return None
        try:
            record = self.db.get(ExtractedEntityRecord, record_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to fetch entity: {e}") from e

        return StoredEntity.model_validate(record) if record else None

    def delete_by_id(self, entity_id: str | uuid.UUID) -> bool:
        """
        Delete an entity.

        Returns:
            True if an entity was deleted, False if it did not exist.
        """
        record_id = _parse_id(entity_id)
        if record_id is None:
            return False
        try:
            record = self.db.get(ExtractedEntityRecord, record_id)
            if record is None:
                return False
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to delete entity: {e}") from e

        logger.info("Deleted entity %s", record_id)
        return True

    def search_by_text(self, query: str, limit: int = 50) -> list[StoredEntity]:
        """
        Case-insensitive partial match across name, email, organisation and role.

        Returns:
            Matching entities, newest first.
        """
        pattern = f"%{_escape_like(query.strip())}%"
        condition = or_(*(column.ilike(pattern, escape="\\") for column in SEARCH_COLUMNS))
        try:
            records = self.db.scalars(
                select(ExtractedEntityRecord)
                .where(condition)
                .order_by(ExtractedEntityRecord.created_at.desc())
                .limit(limit)
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to search entities: {e}") from e

        return [StoredEntity.model_validate(r) for r in records]

    def iter_all(self, search: str | None = None, limit: int = 10_000) -> list[StoredEntity]:
        """All entities (optionally filtered by search), used for CSV export."""
        if search and search.strip():
            return self.search_by_text(search, limit)
        entities, _ = self.list_page(1, limit)
        return entities
