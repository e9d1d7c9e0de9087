"""Error taxonomy for ingestion and retrieval.

Every failure carries an ``ErrorKind`` so callers branch on structure
instead of inspecting message text.
"""

from enum import Enum as PyEnum


class ErrorKind(str, PyEnum):
    """Machine-readable failure categories."""

    VALIDATION = "validation"
    NO_CONTENT = "no_content"
    EMBEDDING_SERVICE = "embedding_service"
    PARSING = "parsing"
    PARSING_TIMEOUT = "parsing_timeout"
    STORAGE = "storage"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class PolicyRAGError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class ValidationError(PolicyRAGError):
    """Raised when ingestion input is empty or malformed."""

    kind = ErrorKind.VALIDATION


class NoContentExtractedError(PolicyRAGError):
    """Raised when a document yields no text or no chunks."""

    kind = ErrorKind.NO_CONTENT


class EmbeddingServiceError(PolicyRAGError):
    """Raised when the embedding provider fails or breaks its contract."""

    kind = ErrorKind.EMBEDDING_SERVICE


class ExtractionError(PolicyRAGError):
    """Raised when text extraction fails."""

    kind = ErrorKind.PARSING


class ParsingTimeoutError(ExtractionError):
    """Raised when a parsing job exceeds its polling budget."""

    kind = ErrorKind.PARSING_TIMEOUT


class StorageError(PolicyRAGError):
    """Raised when persistence fails."""

    kind = ErrorKind.STORAGE


class OperationTimeoutError(PolicyRAGError):
    """Raised when a caller-supplied timeout expires."""

    kind = ErrorKind.TIMEOUT


class OperationCancelledError(PolicyRAGError):
    """Raised when a caller cancels a long-running wait."""

    kind = ErrorKind.CANCELLED
