"""Pytest configuration and fixtures."""

import json
from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.extractor.config import Settings
from app.extractor.database import create_db_engine, create_session_factory, init_db
from app.extractor.dependencies import get_extraction_client
from app.extractor.main import create_app
from app.extractor.services.ai import ExtractionClient

from helpers import make_docx, make_openai_client


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: in-memory database, no API key."""
    return Settings(
        database_url="sqlite://",
        openai_api_key=None,
        max_upload_files=3,
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Session on a fresh in-memory SQLite database."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def jane_response() -> str:
    """A model response with two people."""
    return json.dumps(
        {
            "entities": [
                {
                    "full_name": "Jane Doe",
                    "email": " jane@example.com ",
                    "phone_number": "+1 (555) 010-2000",
                    "address": None,
                    "organisation": "Acme Corp",
                    "role_title": "CTO",
                    "technology_stack": ["Python", "PostgreSQL"],
                    "comments": "",
                },
                {
                    "full_name": "John Smith",
                    "email": "john.smith@example.org",
                    "organisation": "Globex",
                    "role_title": "Engineer",
                },
            ]
        }
    )


@pytest.fixture
def openai_client(jane_response: str) -> MagicMock:
    """Mock OpenAI client returning the two-person response."""
    return make_openai_client(jane_response)


@pytest.fixture
def app(settings: Settings, openai_client: MagicMock) -> FastAPI:
    """Application wired to the mock OpenAI client."""
    application = create_app(settings)
    extraction_client = ExtractionClient(openai_client, model="gpt-4.1")
    application.dependency_overrides[get_extraction_client] = lambda: extraction_client
    return application


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_docx_bytes() -> bytes:
    """A small resume-like DOCX document."""
    return make_docx(
        "Jane Doe",
        "CTO at Acme Corp",
        "jane@example.com | +1 (555) 010-2000",
    )


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-document) file bytes for testing."""
    return b"This is not a PDF or DOCX file"


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal one-page PDF whose text layer reads "Test".

    The xref offsets are not exact; the parser falls back to scanning objects.
    """
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792]
   /Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>
endobj
4 0 obj
<< /Length 44 >>
stream
BT
/F1 12 Tf
100 700 Td
(Test) Tj
ET
endstream
endobj
5 0 obj
<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>
endobj
xref
0 6
0000000000 65535 f 
0000000009 00000 n 
0000000058 00000 n 
0000000115 00000 n 
0000000263 00000 n 
0000000356 00000 n 
trailer
<< /Size 6 /Root 1 0 R >>
startxref
425
%%EOF"""
