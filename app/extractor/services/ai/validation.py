"""
Validation and normalization of LLM extraction responses.

Handles:
- Code fence stripping (the only lenient step, applied before parsing)
- Strict JSON parsing of the response envelope
- Field-by-field normalization into ExtractedEntity records
"""

import json
import logging
import re
from typing import Any

from ...models import ENTITY_FIELDS, ExtractedEntity
from .exceptions import MalformedResponseError

logger = logging.getLogger(__name__)

# Envelope key holding the entity array
ENTITIES_KEY = "entities"

# Maximum characters of a bad response quoted in error messages
EXCERPT_LENGTH = 200

_OPENING_FENCE = re.compile(r"^```[A-Za-z0-9_+.-]*[ \t]*\r?\n?")
_CLOSING_FENCE = re.compile(r"\r?\n?```$")


class ValidationResult:
    """Result of response validation."""

    def __init__(self):
        self.entities: list[ExtractedEntity] = []
        self.warnings: list[str] = []


def strip_code_fences(raw_text: str) -> str:
    """
    Remove a surrounding markdown code fence from model output.

    Handles an opening fence with or without a language tag
    (```json, ```) and a closing fence. Text without fences is only trimmed.
    """
    text = raw_text.strip()
    if text.startswith("```"):
        text = _OPENING_FENCE.sub("", text, count=1)
    if text.endswith("```"):
        text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def _excerpt(text: str) -> str:
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH] + "..."


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def normalize_field(value: Any) -> str | None:
    """
    Normalize a single entity field to a trimmed string or None.

    - None -> None
    - Strings are trimmed; empty results become None
    - Booleans -> "true" / "false"
    - Numbers -> str(value)
    - Lists of scalars -> items joined with ", "
    - Other containers -> JSON text
    """
    if value is None:
        return None

    if isinstance(value, str):
        text = value
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (int, float)):
        text = str(value)
    elif isinstance(value, list) and all(
        item is None or isinstance(item, (str, int, float, bool)) for item in value
    ):
        parts = [normalize_field(item) for item in value]
        text = ", ".join(p for p in parts if p is not None)
    else:
        text = json.dumps(value, ensure_ascii=False)

    text = text.strip()
    return text if text else None


def normalize_entity(raw: dict[str, Any]) -> ExtractedEntity:
    """Build an ExtractedEntity from one response object, ignoring unknown keys."""
    return ExtractedEntity(**{name: normalize_field(raw.get(name)) for name in ENTITY_FIELDS})


def _entity_list(parsed: Any) -> list[Any]:
    """Locate the entity array in a parsed response."""
    if isinstance(parsed, list):
        logger.info("Response is a bare array, treating it as the entity list")
        return parsed

    if not isinstance(parsed, dict):
        raise MalformedResponseError(
            f"Response is not a JSON object (got {type(parsed).__name__})"
        )

    entities = parsed.get(ENTITIES_KEY)
    if not isinstance(entities, list):
        raise MalformedResponseError(f"Response missing '{ENTITIES_KEY}' array")
    return entities


def parse_extraction_response(raw_text: str) -> ValidationResult:
    """
    Parse and validate raw model output.

    Args:
        raw_text: The model's text output.

    Returns:
        ValidationResult with one entity per array element (in order) and
        any non-fatal warnings.

    Raises:
        MalformedResponseError: If the output is not valid JSON or does not
            contain an entity array.
    """
    json_str = strip_code_fences(raw_text or "")

    try:
        parsed = json.loads(json_str, parse_constant=_reject_constant)
    except ValueError as e:
        logger.error("Failed to parse extraction response as JSON: %s", _excerpt(raw_text or ""))
        raise MalformedResponseError(
            f"Model returned invalid JSON ({e})",
            excerpt=_excerpt(raw_text or ""),
        ) from e

    items = _entity_list(parsed)

    result = ValidationResult()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            warning = f"Entity {index} is not an object ({type(item).__name__}), using empty entity"
            logger.warning(warning)
            result.warnings.append(warning)
            result.entities.append(ExtractedEntity())
            continue
        result.entities.append(normalize_entity(item))

    logger.info(
        "Validated %d entities (%d warnings)",
        len(result.entities),
        len(result.warnings),
    )
    return result


def parse_entities(raw_text: str) -> list[ExtractedEntity]:
    """Parse raw model output into entities, discarding warnings."""
    return parse_extraction_response(raw_text).entities


class ResponseValidator:
    """Injectable wrapper around parse_extraction_response."""

    def parse(self, raw_text: str) -> ValidationResult:
        return parse_extraction_response(raw_text)
