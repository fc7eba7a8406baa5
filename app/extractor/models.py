"""
Pydantic models for the entity extraction pipeline.

Defines strict types for extracted entities, LLM extraction outcomes,
stored entities and the per-file / per-batch upload results.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Canonical entity fields, in prompt/export order
ENTITY_FIELDS: tuple[str, ...] = (
    "full_name",
    "email",
    "phone_number",
    "address",
    "organisation",
    "role_title",
    "technology_stack",
    "comments",
)


class ExtractedEntity(BaseModel):
    """
    A person extracted from a document by the LLM.

    Every field is independently nullable. ``None`` means the information
    was not present in the document; empty strings never appear here.
    """

    model_config = ConfigDict(frozen=True)

    full_name: str | None = Field(default=None, description="Person's complete name")
    email: str | None = Field(default=None, description="Email address")
    phone_number: str | None = Field(default=None, description="Phone number, any format")
    address: str | None = Field(default=None, description="Full or partial address")
    organisation: str | None = Field(default=None, description="Current employer")
    role_title: str | None = Field(default=None, description="Current job title")
    technology_stack: str | None = Field(
        default=None,
        description="Technologies, languages or tools the person works with",
    )
    comments: str | None = Field(
        default=None,
        description="Notes about uncertainty or data quality",
    )

    def is_empty(self) -> bool:
        """True when every field is None (placeholder entity)."""
        return all(getattr(self, name) is None for name in ENTITY_FIELDS)


class ExtractionOutcome(BaseModel):
    """
    Result of a single LLM extraction call.

    ``audit`` holds the raw call metadata (model id, input length, raw
    output text, token usage, stop reason) and is stored for traceability
    only; it is never re-parsed.
    """

    entities: list[ExtractedEntity] = Field(default_factory=list)
    audit: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-fatal diagnostics from response validation",
    )


class StoredEntity(ExtractedEntity):
    """An extracted entity as persisted, with server-assigned identity."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(..., description="Unique entity ID (UUID)")
    source_document_name: str = Field(..., description="Originating filename")
    raw_json: dict[str, Any] | None = Field(
        default=None,
        description="Audit payload of the LLM call",
    )
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        """Accept UUID objects from the ORM."""
        if isinstance(v, uuid.UUID):
            return str(v)
        return v


class PerFileResult(BaseModel):
    """Outcome of processing one uploaded file."""

    success: bool = Field(..., description="Whether the file was processed")
    filename: str = Field(..., description="Original filename")
    entities_count: int = Field(default=0, ge=0, description="Number of stored entities")
    entities: list[StoredEntity] = Field(default_factory=list)
    error: str | None = Field(default=None, description="Error message (if failed)")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal diagnostics")


class BatchResult(BaseModel):
    """Aggregated outcome of an upload batch."""

    files_processed: int = Field(..., ge=0)
    files_successful: int = Field(..., ge=0)
    total_entities_extracted: int = Field(..., ge=0)
    results: list[PerFileResult] = Field(default_factory=list)
    message: str = Field(default="", description="Human-readable summary")


class EntityListResponse(BaseModel):
    """Response model for listing or searching entities."""

    entities: list[StoredEntity] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Total number of matching entities")
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    has_more: bool = Field(default=False)


class DeleteEntityResponse(BaseModel):
    """Response model for entity deletion."""

    message: str
    id: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    message: str = Field(default="")
    version: str = Field(default="1.0.0")
