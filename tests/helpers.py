"""Test helpers shared by several test modules."""

import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock


def make_completion(
    content: str | None,
    finish_reason: str = "stop",
    model: str = "gpt-4.1-2025-04-14",
) -> SimpleNamespace:
    """Build an object shaped like an OpenAI chat completion."""
    return SimpleNamespace(
        model=model,
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content=content, refusal=None),
                finish_reason=finish_reason,
            )
        ],
        usage={"prompt_tokens": 1200, "completion_tokens": 85, "total_tokens": 1285},
    )


def make_openai_client(content: str | None = '{"entities": []}') -> MagicMock:
    """Mock AsyncOpenAI client returning ``content`` from chat completions."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=make_completion(content))
    return client


def make_docx(*paragraphs: str, table: list[list[str]] | None = None) -> bytes:
    """Build a DOCX document in memory."""
    import docx

    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table:
        t = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                t.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()
