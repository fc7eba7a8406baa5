"""
Entity extraction functionality using the OpenAI chat completions API.

Builds the prompt, performs a single LLM call per document and hands the
raw output to the response validator.
"""

import logging
from typing import Any

import openai

from ...models import ExtractionOutcome
from .exceptions import LLMCallError
from .prompts import EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt
from .validation import ResponseValidator

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4.1"
DEFAULT_MAX_TOKENS = 4096

# The model has a bounded context window; keep headroom for the prompt and output
DEFAULT_MAX_INPUT_CHARS = 50_000

TRUNCATION_MARKER = "\n\n[Document truncated...]"


def truncate_text(text: str, max_chars: int = DEFAULT_MAX_INPUT_CHARS) -> tuple[str, bool]:
    """
    Truncate document text to the input budget.

    Keeps the beginning of the document and appends TRUNCATION_MARKER when
    anything was cut.

    Returns:
        Tuple of (text to send, whether truncation happened).
    """
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars] + TRUNCATION_MARKER, True


def _usage_to_dict(usage: Any) -> dict[str, Any] | None:
    """Convert the SDK usage object to a plain dict for storage."""
    if usage is None:
        return None
    if hasattr(usage, "model_dump"):
        return usage.model_dump(exclude_none=True)
    if isinstance(usage, dict):
        return usage
    return {"value": str(usage)}


class ExtractionClient:
    """
    Client for LLM-based entity extraction.

    The OpenAI client is created once at start-up and injected here; this
    class never builds network clients itself.
    """

    def __init__(
        self,
        client: Any | None,  # openai.AsyncOpenAI
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
        validator: ResponseValidator | None = None,
    ):
        """
        Initialize the extraction client.

        Args:
            client: AsyncOpenAI client, or None when no API key is configured.
            model: Chat completions model name.
            max_tokens: Maximum output tokens for the response.
            max_input_chars: Character budget for document text.
            validator: Response validator (defaults to ResponseValidator()).
        """
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.max_input_chars = max_input_chars
        self.validator = validator or ResponseValidator()

    async def extract_entities(self, document_text: str) -> ExtractionOutcome:
        """
        Extract person entities from document text.

        Args:
            document_text: Plain text extracted from a PDF/DOCX.

        Returns:
            ExtractionOutcome with validated entities and the audit payload.

        Raises:
            LLMCallError: If the provider call fails.
            MalformedResponseError: If the output violates the JSON contract.
        """
        if self.client is None:
            raise LLMCallError("OpenAI API key not configured. Set OPENAI_API_KEY.")

        text, truncated = truncate_text(document_text, self.max_input_chars)
        if truncated:
            logger.warning(
                "Document text truncated from %d to %d characters",
                len(document_text),
                self.max_input_chars,
            )

        logger.info("Calling %s with %d characters of text...", self.model, len(text))
        response = await self._create_completion(text)

        output_text, stop_reason = self._response_text(response)
        logger.info("LLM response received (stop_reason=%s), parsing JSON...", stop_reason)

        validation = self.validator.parse(output_text)

        audit = {
            "model": getattr(response, "model", None) or self.model,
            "input_length": len(text),
            "output_text": output_text,
            "usage": _usage_to_dict(getattr(response, "usage", None)),
            "stop_reason": stop_reason,
        }

        return ExtractionOutcome(
            entities=validation.entities,
            audit=audit,
            warnings=validation.warnings,
        )

    async def _create_completion(self, text: str) -> Any:
        """Send the single chat completion request."""
        try:
            return await self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                    {"role": "user", "content": build_extraction_prompt(text)},
                ],
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as e:
            logger.error("LLM API error: %s %s", e.status_code, e.message)
            raise LLMCallError(e.message, status_code=e.status_code) from e
        except openai.APIConnectionError as e:
            logger.error("LLM connection error: %s", e)
            raise LLMCallError(f"Connection error: {e}") from e
        except openai.OpenAIError as e:
            logger.error("LLM client error: %s", e)
            raise LLMCallError(str(e)) from e

    @staticmethod
    def _response_text(response: Any) -> tuple[str, str | None]:
        """Pull the text content and finish reason out of a completion."""
        choices = getattr(response, "choices", None)
        if not choices:
            raise LLMCallError("Malformed response from LLM: no choices returned")

        choice = choices[0]
        message = getattr(choice, "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            refusal = getattr(message, "refusal", None)
            detail = f"refusal: {refusal}" if refusal else "no text content"
            raise LLMCallError(f"Unexpected response from LLM ({detail})")

        return content, getattr(choice, "finish_reason", None)
