"""
Document processing pipeline.

Runs every uploaded file through text extraction, LLM entity extraction
and persistence, one file at a time, isolating per-file failures.
"""

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ..models import BatchResult, PerFileResult
from .ai import ExtractionClient
from .storage import EntityStore
from .text_extractor import TextExtractor

logger = logging.getLogger(__name__)

NO_TEXT_ERROR = "No text could be extracted from the file"


class NoFilesError(Exception):
    """Raised when a batch contains no files."""

    pass


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded file stored in a temporary location on disk."""

    filename: str
    path: Path
    content_type: str | None = None
    size: int = 0


class PipelineOrchestrator:
    """
    Processes upload batches sequentially.

    Files are handled in submission order so that only one document is in
    memory and only one LLM call is in flight at a time.
    """

    def __init__(
        self,
        text_extractor: TextExtractor,
        extraction_client: ExtractionClient,
        store: EntityStore,
    ):
        self.text_extractor = text_extractor
        self.extraction_client = extraction_client
        self.store = store

    async def process_batch(self, files: Sequence[UploadedFile]) -> BatchResult:
        """
        Process every file and aggregate the per-file results.

        Temporary files are removed afterwards, whatever the outcome.

        Raises:
            NoFilesError: If ``files`` is empty.
        """
        if not files:
            raise NoFilesError("No files uploaded")

        logger.info("Processing %d file(s)...", len(files))
        results: list[PerFileResult] = []
        try:
            for upload in files:
                results.append(await self.process_file(upload))
        finally:
            cleanup_files(files)

        successful = sum(1 for r in results if r.success)
        total_entities = sum(r.entities_count for r in results)

        logger.info(
            "Batch complete: %d/%d files successful, %d entities extracted",
            successful,
            len(files),
            total_entities,
        )

        return BatchResult(
            files_processed=len(files),
            files_successful=successful,
            total_entities_extracted=total_entities,
            results=results,
            message=f"Processed {successful}/{len(files)} files, extracted {total_entities} entities",
        )

    async def process_file(self, upload: UploadedFile) -> PerFileResult:
        """
        Process a single uploaded file.

        Never raises: any failure becomes a failed PerFileResult.
        """
        filename = upload.filename
        logger.info("Processing file: %s", filename)

        try:
            text = self.text_extractor.extract_from_path(upload.path, filename)

            if not text or not text.strip():
                logger.warning("No text extracted from %s", filename)
                return PerFileResult(success=False, filename=filename, error=NO_TEXT_ERROR)

            outcome = await self.extraction_client.extract_entities(text)

            if not outcome.entities:
                logger.info("No entities found in %s", filename)
                return PerFileResult(
                    success=True,
                    filename=filename,
                    warnings=outcome.warnings,
                )

            stored = self.store.insert_many(outcome.entities, filename, outcome.audit)

            logger.info("Successfully processed %s: %d entities", filename, len(stored))
            return PerFileResult(
                success=True,
                filename=filename,
                entities_count=len(stored),
                entities=stored,
                warnings=outcome.warnings,
            )

        except Exception as e:
            logger.error("Error processing %s: %s", filename, e)
            # Keep the shared session usable for the next file
            self.store.rollback()
            return PerFileResult(
                success=False,
                filename=filename,
                error=str(e) or type(e).__name__,
            )


def cleanup_files(files: Sequence[UploadedFile]) -> None:
    """Remove temporary upload files. Failures are logged, never raised."""
    for upload in files:
        try:
            os.unlink(upload.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to cleanup temp file %s: %s", upload.path, e)
