"""Tests for the document processing pipeline."""

from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.extractor.models import ExtractedEntity, ExtractionOutcome
from app.extractor.models_db import ExtractedEntityRecord
from app.extractor.services.ai import LLMCallError, MalformedResponseError
from app.extractor.services.pipeline import (
    NO_TEXT_ERROR,
    NoFilesError,
    PipelineOrchestrator,
    UploadedFile,
    cleanup_files,
)
from app.extractor.services.storage import EntityStore
from app.extractor.services.text_extractor import TextExtractionError


class FakeTextExtractor:
    """Returns canned text per filename, or raises a canned error."""

    def __init__(self, texts: dict[str, str | Exception]):
        self.texts = texts
        self.calls: list[str] = []

    def extract_from_path(self, path: Path, original_name: str) -> str:
        self.calls.append(original_name)
        value = self.texts[original_name]
        if isinstance(value, Exception):
            raise value
        return value


class FakeExtractionClient:
    """Maps document text to an outcome, or raises a canned error."""

    def __init__(self, outcomes: dict[str, ExtractionOutcome | Exception]):
        self.outcomes = outcomes
        self.calls: list[str] = []

    async def extract_entities(self, text: str) -> ExtractionOutcome:
        self.calls.append(text)
        value = self.outcomes[text]
        if isinstance(value, Exception):
            raise value
        return value


def outcome(*names: str) -> ExtractionOutcome:
    return ExtractionOutcome(
        entities=[ExtractedEntity(full_name=name) for name in names],
        audit={"model": "gpt-4.1", "input_length": 10, "output_text": "{}", "usage": None, "stop_reason": "stop"},
    )


def make_uploads(tmp_path: Path, *names: str) -> list[UploadedFile]:
    uploads = []
    for name in names:
        path = tmp_path / f"upload-{name}"
        path.write_bytes(b"content")
        uploads.append(UploadedFile(filename=name, path=path, size=7))
    return uploads


@pytest.fixture
def store(db_session: Session) -> EntityStore:
    return EntityStore(db_session)


class TestProcessBatch:
    """Tests for PipelineOrchestrator.process_batch."""

    @pytest.mark.asyncio
    async def test_failure_in_one_file_is_isolated(self, tmp_path, store, db_session):
        """Test that a failing middle file does not affect the others."""
        extractor = FakeTextExtractor({"a.pdf": "text a", "b.pdf": "text b", "c.docx": "text c"})
        client = FakeExtractionClient(
            {
                "text a": outcome("Jane Doe"),
                "text b": LLMCallError("Rate limit exceeded", status_code=429),
                "text c": outcome("John Smith", "Ana Lima"),
            }
        )
        pipeline = PipelineOrchestrator(extractor, client, store)

        result = await pipeline.process_batch(make_uploads(tmp_path, "a.pdf", "b.pdf", "c.docx"))

        assert result.files_processed == 3
        assert result.files_successful == 2
        assert result.total_entities_extracted == 3
        assert [r.filename for r in result.results] == ["a.pdf", "b.pdf", "c.docx"]
        assert [r.success for r in result.results] == [True, False, True]
        assert "429" in result.results[1].error
        assert result.results[1].entities == []
        assert result.message == "Processed 2/3 files, extracted 3 entities"

        names = {r.full_name for r in db_session.query(ExtractedEntityRecord).all()}
        assert names == {"Jane Doe", "John Smith", "Ana Lima"}

    @pytest.mark.asyncio
    async def test_failed_insert_does_not_poison_later_files(self, tmp_path, store, db_session):
        """Test that a driver-level insert error in one file leaves the next file unaffected."""
        extractor = FakeTextExtractor({"a.pdf": "text a", "b.pdf": "text b"})
        client = FakeExtractionClient({"text a": outcome("Jane \ud83d"), "text b": outcome("John")})
        pipeline = PipelineOrchestrator(extractor, client, store)

        result = await pipeline.process_batch(make_uploads(tmp_path, "a.pdf", "b.pdf"))

        first, second = result.results
        assert first.success is False
        assert first.error.startswith("Failed to save entities")
        assert second.success is True
        assert second.entities[0].full_name == "John"
        assert result.files_successful == 1
        assert [r.full_name for r in db_session.query(ExtractedEntityRecord).all()] == ["John"]

    @pytest.mark.asyncio
    async def test_session_rolled_back_after_unexpected_error(self, tmp_path, store, db_session):
        """Test that the shared session is reset after a failure outside the store."""
        extractor = FakeTextExtractor({"a.pdf": "text a", "b.pdf": "text b"})
        client = FakeExtractionClient({"text a": RuntimeError("boom"), "text b": outcome("John")})
        pipeline = PipelineOrchestrator(extractor, client, store)

        with patch.object(db_session, "rollback", wraps=db_session.rollback) as rollback:
            result = await pipeline.process_batch(make_uploads(tmp_path, "a.pdf", "b.pdf"))

        rollback.assert_called_once()
        assert [r.success for r in result.results] == [False, True]

    @pytest.mark.asyncio
    async def test_files_processed_in_order(self, tmp_path, store):
        extractor = FakeTextExtractor({"1.pdf": "one", "2.pdf": "two", "3.pdf": "three"})
        client = FakeExtractionClient({"one": outcome(), "two": outcome(), "three": outcome()})
        pipeline = PipelineOrchestrator(extractor, client, store)

        await pipeline.process_batch(make_uploads(tmp_path, "1.pdf", "2.pdf", "3.pdf"))

        assert extractor.calls == ["1.pdf", "2.pdf", "3.pdf"]
        assert client.calls == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_empty_batch_raises(self, store):
        pipeline = PipelineOrchestrator(FakeTextExtractor({}), FakeExtractionClient({}), store)
        with pytest.raises(NoFilesError):
            await pipeline.process_batch([])

    @pytest.mark.asyncio
    async def test_temp_files_removed(self, tmp_path, store):
        """Test that temporary files are removed on success and failure."""
        extractor = FakeTextExtractor(
            {"ok.pdf": "text", "bad.pdf": TextExtractionError("bad.pdf", "corrupt")}
        )
        client = FakeExtractionClient({"text": outcome("Jane Doe")})
        uploads = make_uploads(tmp_path, "ok.pdf", "bad.pdf")

        await PipelineOrchestrator(extractor, client, store).process_batch(uploads)

        for upload in uploads:
            assert not upload.path.exists()

    @pytest.mark.asyncio
    async def test_counts_match_results(self, tmp_path, store):
        """Test the aggregate counters against the per-file results."""
        extractor = FakeTextExtractor({"a.pdf": "a", "b.pdf": "   ", "c.pdf": "c"})
        client = FakeExtractionClient({"a": outcome("X", "Y"), "c": outcome()})

        result = await PipelineOrchestrator(extractor, client, store).process_batch(
            make_uploads(tmp_path, "a.pdf", "b.pdf", "c.pdf")
        )

        assert result.files_processed == len(result.results)
        assert result.files_successful == sum(r.success for r in result.results)
        assert result.total_entities_extracted == sum(r.entities_count for r in result.results)
        for r in result.results:
            assert r.entities_count == len(r.entities)
            if not r.success:
                assert r.entities_count == 0
                assert r.error


class TestProcessFile:
    """Tests for PipelineOrchestrator.process_file."""

    @pytest.mark.asyncio
    async def test_success_returns_stored_entities(self, tmp_path, store):
        extractor = FakeTextExtractor({"cv.docx": "Jane Doe, CTO"})
        client = FakeExtractionClient({"Jane Doe, CTO": outcome("Jane Doe")})
        (upload,) = make_uploads(tmp_path, "cv.docx")

        result = await PipelineOrchestrator(extractor, client, store).process_file(upload)

        assert result.success is True
        assert result.entities_count == 1
        assert result.entities[0].full_name == "Jane Doe"
        assert result.entities[0].source_document_name == "cv.docx"
        assert result.entities[0].raw_json["model"] == "gpt-4.1"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_blank_text_fails_without_llm_call(self, tmp_path, store):
        """Test that a document without text is a failure and skips the LLM."""
        extractor = FakeTextExtractor({"scan.pdf": " \n\t "})
        client = FakeExtractionClient({})
        (upload,) = make_uploads(tmp_path, "scan.pdf")

        result = await PipelineOrchestrator(extractor, client, store).process_file(upload)

        assert result.success is False
        assert result.error == NO_TEXT_ERROR
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_zero_entities_is_success(self, tmp_path, store, db_session):
        extractor = FakeTextExtractor({"memo.pdf": "Quarterly figures"})
        client = FakeExtractionClient({"Quarterly figures": outcome()})
        (upload,) = make_uploads(tmp_path, "memo.pdf")

        result = await PipelineOrchestrator(extractor, client, store).process_file(upload)

        assert result.success is True
        assert result.entities_count == 0
        assert result.entities == []
        assert db_session.query(ExtractedEntityRecord).count() == 0

    @pytest.mark.asyncio
    async def test_malformed_response_is_failure(self, tmp_path, store):
        """Test that a malformed model response is never reported as zero entities."""
        extractor = FakeTextExtractor({"cv.pdf": "text"})
        client = FakeExtractionClient(
            {"text": MalformedResponseError("Response is not valid JSON", excerpt="nope")}
        )
        (upload,) = make_uploads(tmp_path, "cv.pdf")

        result = await PipelineOrchestrator(extractor, client, store).process_file(upload)

        assert result.success is False
        assert "not valid JSON" in result.error

    @pytest.mark.asyncio
    async def test_extraction_error_is_failure(self, tmp_path, store):
        extractor = FakeTextExtractor({"cv.pdf": TextExtractionError("cv.pdf", "EOF marker not found")})
        (upload,) = make_uploads(tmp_path, "cv.pdf")

        result = await PipelineOrchestrator(extractor, FakeExtractionClient({}), store).process_file(upload)

        assert result.success is False
        assert "EOF marker not found" in result.error

    @pytest.mark.asyncio
    async def test_persistence_error_is_failure(self, tmp_path, store, db_session):
        """Test that a failed insert marks the file failed and stores nothing."""
        extractor = FakeTextExtractor({"cv.pdf": "text"})
        client = FakeExtractionClient({"text": outcome("Jane Doe", "John Smith")})
        (upload,) = make_uploads(tmp_path, "cv.pdf")

        with patch.object(
            db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("locked"))
        ):
            result = await PipelineOrchestrator(extractor, client, store).process_file(upload)

        assert result.success is False
        assert result.entities_count == 0
        assert db_session.query(ExtractedEntityRecord).count() == 0

    @pytest.mark.asyncio
    async def test_warnings_are_reported(self, tmp_path, store):
        extractor = FakeTextExtractor({"cv.pdf": "text"})
        result_outcome = outcome("Jane Doe")
        result_outcome.warnings.append("Entity 1 is not an object (str), using empty entity")
        client = FakeExtractionClient({"text": result_outcome})
        (upload,) = make_uploads(tmp_path, "cv.pdf")

        result = await PipelineOrchestrator(extractor, client, store).process_file(upload)

        assert result.warnings == ["Entity 1 is not an object (str), using empty entity"]


class TestCleanupFiles:
    """Tests for temporary file cleanup."""

    def test_missing_files_ignored(self, tmp_path):
        uploads = [UploadedFile(filename="gone.pdf", path=tmp_path / "gone")]
        cleanup_files(uploads)

    def test_removes_existing(self, tmp_path):
        uploads = make_uploads(tmp_path, "a.pdf")
        cleanup_files(uploads)
        assert not uploads[0].path.exists()
