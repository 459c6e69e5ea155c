"""Error types raised by the HealSage service.

The HTTP layer maps these onto status codes:

- NotFoundError -> 404
- ProviderError, DocumentProcessingError, UnsupportedDocumentError -> 500

Request validation is handled by pydantic and reported as 400.
"""
from typing import Any, Dict, Optional


class HealSageError(Exception):
    """Base exception for all HealSage errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotFoundError(HealSageError):
    """Raised when operating on a conversation (or other record) that doesn't exist."""


class ProviderError(HealSageError):
    """Raised when the embedding, completion or drive provider call fails."""


class DocumentProcessingError(HealSageError):
    """Raised when a downloaded document can't be turned into text."""


class UnsupportedDocumentError(DocumentProcessingError):
    """Raised for document mime types the extractor doesn't handle."""

    def __init__(self, mime_type: str):
        super().__init__(
            f"Unsupported file type: {mime_type}", details={"mime_type": mime_type}
        )
        self.mime_type = mime_type
