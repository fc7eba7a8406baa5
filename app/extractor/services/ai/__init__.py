"""
AI service package for LLM-based entity extraction.

This package is split into:
- prompts: System and user prompt templates
- extraction: The ExtractionClient performing the LLM call
- validation: Parsing and normalization of the model output
"""

import logging

from .exceptions import AIServiceError, LLMCallError, MalformedResponseError
from .extraction import TRUNCATION_MARKER, ExtractionClient, truncate_text
from .validation import (
    ResponseValidator,
    ValidationResult,
    normalize_field,
    parse_entities,
    parse_extraction_response,
    strip_code_fences,
)

logger = logging.getLogger(__name__)

__all__ = [
    "AIServiceError",
    "ExtractionClient",
    "LLMCallError",
    "MalformedResponseError",
    "ResponseValidator",
    "TRUNCATION_MARKER",
    "ValidationResult",
    "create_openai_client",
    "normalize_field",
    "parse_entities",
    "parse_extraction_response",
    "strip_code_fences",
    "truncate_text",
]


def create_openai_client(api_key: str | None, timeout: float = 120.0):
    """
    Create the AsyncOpenAI client used for extraction.

    Automatic retries are disabled: a failed call is reported to the caller.

    Returns:
        AsyncOpenAI client, or None if no API key is configured.
    """
    if not api_key:
        logger.warning(
            "OPENAI_API_KEY is not set. Uploads will fail until an API key is configured."
        )
        return None

    from openai import AsyncOpenAI

    return AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
