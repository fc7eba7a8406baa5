"""
SQLAlchemy database models for the Document Entity Extractor.

This module defines the ORM model used to persist extracted entities.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (stored without timezone)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ExtractedEntityRecord(Base):
    """
    A person extracted from an uploaded document.

    Entity columns mirror ``ExtractedEntity``; ``raw_json`` keeps the audit
    payload of the LLM call that produced the entity.
    """

    __tablename__ = "extracted_entities"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    full_name: Mapped[str | None] = mapped_column(String(512), nullable=True, index=True)
    email: Mapped[str | None] = mapped_column(String(512), nullable=True, index=True)
    phone_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    organisation: Mapped[str | None] = mapped_column(String(512), nullable=True)
    role_title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    technology_stack: Mapped[str | None] = mapped_column(Text, nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_document_name: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
    )
    raw_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Audit payload of the LLM call (model, usage, raw output)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ExtractedEntityRecord(id={self.id}, full_name='{self.full_name}', "
            f"source='{self.source_document_name}')>"
        )
