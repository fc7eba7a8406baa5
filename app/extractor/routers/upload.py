"""
Router for document upload endpoints.

Handles:
- Bulk PDF/DOCX upload with text extraction, LLM extraction and storage
"""

import logging
import tempfile
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..config import Settings
from ..dependencies import get_app_settings, get_pipeline
from ..models import BatchResult
from ..services.pipeline import PipelineOrchestrator, UploadedFile, cleanup_files
from ..services.text_extractor import SUPPORTED_EXTENSIONS, is_supported_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["upload"])

# Read uploads in chunks so oversized files are rejected early
_CHUNK_SIZE = 1024 * 1024


async def _save_to_temp(file: UploadFile, max_bytes: int) -> UploadedFile:
    """Write an upload to a temporary file, enforcing the size ceiling."""
    suffix = Path(file.filename or "").suffix.lower()
    size = 0
    with tempfile.NamedTemporaryFile(prefix="upload-", suffix=suffix, delete=False) as tmp:
        temp_path = Path(tmp.name)
        try:
            while chunk := await file.read(_CHUNK_SIZE):
                size += len(chunk)
                if size > max_bytes:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=(
                            f"File too large: {file.filename}. "
                            f"Maximum size is {max_bytes // (1024 * 1024)}MB."
                        ),
                    )
                tmp.write(chunk)
        except BaseException:
            tmp.close()
            temp_path.unlink(missing_ok=True)
            raise

    return UploadedFile(
        filename=file.filename or temp_path.name,
        path=temp_path,
        content_type=file.content_type,
        size=size,
    )


@router.post("", response_model=BatchResult)
async def upload_documents(
    files: Annotated[
        list[UploadFile] | None,
        File(description="PDF or DOCX files to process"),
    ] = None,
    settings: Settings = Depends(get_app_settings),
    pipeline: PipelineOrchestrator = Depends(get_pipeline),
) -> BatchResult:
    """
    Upload one or more PDF/DOCX files for processing.

    Each file is processed independently; a failure in one file does not
    affect the others. Returns the stored entities for each file.
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded",
        )

    if len(files) > settings.max_upload_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files. Maximum is {settings.max_upload_files} files per upload.",
        )

    for file in files:
        if not file.filename:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="All files must have filenames",
            )
        if not is_supported_file(file.filename):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Only PDF and DOCX files are supported ({', '.join(SUPPORTED_EXTENSIONS)}): "
                    f"{file.filename}"
                ),
            )

    saved: list[UploadedFile] = []
    try:
        for file in files:
            upload = await _save_to_temp(file, settings.max_upload_bytes)
            saved.append(upload)
            if upload.size == 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Empty file: {file.filename}",
                )
            await file.close()
    except BaseException:
        # The pipeline never ran, so the temp files are ours to remove
        cleanup_files(saved)
        raise

    logger.info(
        "Received %d file(s): %s",
        len(saved),
        [f.filename for f in saved],
    )

    return await pipeline.process_batch(saved)
