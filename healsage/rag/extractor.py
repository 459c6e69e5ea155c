"""Text extraction for downloaded drive documents.

Handles:
- PDF (pypdf)
- DOCX (python-docx)
- Plain text
"""
import io
import re
from typing import Callable, Dict

import structlog
from docx import Document as DocxDocument
from pypdf import PdfReader

from healsage.errors import DocumentProcessingError, UnsupportedDocumentError

logger = structlog.get_logger()

PDF_MIME_TYPE = "application/pdf"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME_TYPE = "text/plain"

WHITESPACE_PATTERN = re.compile(r"\s+")


def extract_pdf_text(data: bytes) -> str:
    """Extract text from all pages of a PDF."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        raise DocumentProcessingError(f"Failed to parse PDF: {e}") from e

    logger.debug("pdf_text_extracted", page_count=len(pages))
    return "\n".join(pages)


def extract_docx_text(data: bytes) -> str:
    """Extract paragraph text from a Word document."""
    try:
        document = DocxDocument(io.BytesIO(data))
    except Exception as e:
        raise DocumentProcessingError(f"Failed to parse DOCX: {e}") from e

    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def extract_plain_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def normalize_text(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return WHITESPACE_PATTERN.sub(" ", text).strip()


class DocumentExtractor:
    """Dispatches raw document bytes to a format-specific extractor by mime type."""

    def __init__(self):
        self.handlers: Dict[str, Callable[[bytes], str]] = {
            PDF_MIME_TYPE: extract_pdf_text,
            DOCX_MIME_TYPE: extract_docx_text,
            TEXT_MIME_TYPE: extract_plain_text,
        }

    @property
    def supported_mime_types(self) -> list:
        return list(self.handlers)

    def extract(self, data: bytes, mime_type: str) -> str:
        """Convert document bytes into normalized text.

        Args:
            data: Raw file contents
            mime_type: Mime type reported by the document source

        Returns:
            Whitespace-normalized text

        Raises:
            UnsupportedDocumentError: If the mime type has no extractor
            DocumentProcessingError: If the file can't be parsed
        """
        handler = self.handlers.get(mime_type)
        if handler is None:
            logger.warning("unsupported_mime_type", mime_type=mime_type)
            raise UnsupportedDocumentError(mime_type)

        text = normalize_text(handler(data))

        logger.info(
            "document_text_extracted",
            mime_type=mime_type,
            bytes=len(data),
            text_length=len(text),
        )

        return text
