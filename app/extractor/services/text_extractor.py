"""
Text extraction service for uploaded documents.

Dispatches on the declared document type and extracts plain text using
pdfplumber (PDF) or python-docx (DOCX).
"""

import io
import logging
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class DocumentType(str, Enum):
    """Supported document types."""

    PDF = "pdf"
    DOCX = "docx"


SUPPORTED_EXTENSIONS: tuple[str, ...] = tuple(f".{t.value}" for t in DocumentType)

_MIME_TYPES: dict[str, DocumentType] = {
    "application/pdf": DocumentType.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentType.DOCX,
}


class UnsupportedTypeError(Exception):
    """Raised when a document type is not one of the supported types."""

    def __init__(self, declared_type: str):
        self.declared_type = declared_type
        super().__init__(
            f"Unsupported file type: {declared_type or '(none)'}. "
            f"Supported types: {', '.join(SUPPORTED_EXTENSIONS)}"
        )


class TextExtractionError(Exception):
    """Raised when a document cannot be read (corrupt, encrypted, malformed)."""

    def __init__(self, filename: str, cause: str):
        self.filename = filename
        self.cause = cause
        super().__init__(f"Failed to extract text from '{filename}': {cause}")


def resolve_document_type(declared_type: str) -> DocumentType:
    """
    Map a declared type to a DocumentType.

    Accepts an extension (".pdf", "docx"), a MIME type or a filename.

    Raises:
        UnsupportedTypeError: If the type is not supported.
    """
    value = (declared_type or "").strip().lower()

    if value in _MIME_TYPES:
        return _MIME_TYPES[value]

    # Filenames and dotted extensions: keep the last suffix only
    if "." in value:
        value = value.rsplit(".", 1)[1]

    try:
        return DocumentType(value)
    except ValueError:
        raise UnsupportedTypeError(declared_type) from None


def is_supported_file(filename: str) -> bool:
    """Check whether a filename has a supported extension."""
    return Path(filename or "").suffix.lower() in SUPPORTED_EXTENSIONS


class TextExtractor:
    """Extracts plain text from PDF and DOCX documents."""

    def extract(
        self,
        data: bytes,
        declared_type: str,
        filename: str | None = None,
    ) -> str:
        """
        Extract plain text from a document.

        Args:
            data: Raw file contents.
            declared_type: Extension, MIME type or filename of the document.
            filename: Original filename, used in error messages.

        Returns:
            The extracted text, stripped. May be empty.

        Raises:
            UnsupportedTypeError: If the document type is not supported.
            TextExtractionError: If the document cannot be parsed.
        """
        doc_type = resolve_document_type(declared_type)
        name = filename or f"document.{doc_type.value}"

        if not data:
            raise TextExtractionError(name, "file is empty")

        logger.info("Extracting text from %s (%s, %d bytes)", name, doc_type.value, len(data))

        if doc_type is DocumentType.PDF:
            text = self._extract_pdf(data, name)
        else:
            text = self._extract_docx(data, name)

        logger.info("Extracted %d characters from %s", len(text), name)
        return text

    def extract_from_path(self, path: str | Path, original_name: str) -> str:
        """
        Extract text from a file on disk.

        The document type comes from ``original_name`` since temporary
        upload paths do not always keep the original extension.
        """
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise TextExtractionError(original_name, f"could not read uploaded file: {e}") from e
        return self.extract(data, original_name, filename=original_name)

    def _extract_pdf(self, data: bytes, filename: str) -> str:
        """Concatenate the text of every page in document order."""
        import pdfplumber

        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                page_texts = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            logger.warning("PDF parsing failed for %s: %s", filename, e)
            raise TextExtractionError(filename, f"Failed to parse PDF: {_describe(e)}") from e

        return "\n".join(page_texts).strip()

    def _extract_docx(self, data: bytes, filename: str) -> str:
        """Extract paragraph and table text, discarding styling."""
        import docx
        from docx.table import Table

        try:
            document = docx.Document(io.BytesIO(data))
            blocks: list[str] = []
            for block in document.iter_inner_content():
                if isinstance(block, Table):
                    for row in block.rows:
                        cells = [cell.text.strip() for cell in row.cells]
                        blocks.append("\t".join(c for c in cells if c))
                else:
                    blocks.append(block.text)
            image_count = len(document.inline_shapes)
        except Exception as e:
            logger.warning("DOCX parsing failed for %s: %s", filename, e)
            raise TextExtractionError(filename, f"Failed to parse DOCX: {_describe(e)}") from e

        text = "\n".join(blocks).strip()

        # Non-fatal diagnostics
        if image_count:
            logger.warning(
                "DOCX extraction warning for %s: %d embedded image(s) ignored",
                filename,
                image_count,
            )
        if not text:
            logger.warning("DOCX extraction warning for %s: no text content found", filename)

        return text


def _describe(error: Exception) -> str:
    """Human-readable description of a parser exception."""
    message = str(error).strip()
    if not message:
        return type(error).__name__
    return message
