"""
Error types raised by the review index.

Every error carries a stable tag that is surfaced to API callers in the
error payload: {error, message, details, timestamp}.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ReviewIndexError(Exception):
    """Base class for all review index failures."""

    tag = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> dict:
        """Convert to the user-visible failure payload."""
        return {
            "error": self.tag,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


class ValidationError(ReviewIndexError):
    """
    Input shape or value violates a field constraint.

    Attributes:
        field: Name of the offending field (e.g. "title", "line_3")
        kind: One of MissingField, TooShort, TooLong, InvalidRating, InvalidValue
    """

    tag = "validation_error"

    def __init__(self, field: str, kind: str, message: str, boundary: Optional[int] = None):
        super().__init__(message)
        self.field = field
        self.kind = kind
        self.boundary = boundary

    @classmethod
    def missing_field(cls, field: str) -> "ValidationError":
        return cls(field, "MissingField", f"Missing required field: {field}")

    @classmethod
    def too_short(cls, field: str, min_length: int) -> "ValidationError":
        return cls(
            field,
            "TooShort",
            f"Field too short: {field} must be at least {min_length} characters",
            boundary=min_length,
        )

    @classmethod
    def too_long(cls, field: str, max_length: int) -> "ValidationError":
        return cls(
            field,
            "TooLong",
            f"Field too long: {field} must be at most {max_length} characters",
            boundary=max_length,
        )

    @classmethod
    def invalid_rating(cls) -> "ValidationError":
        return cls("rating", "InvalidRating", "Invalid rating: must be between 1 and 5")

    @classmethod
    def invalid_value(cls, field: str, reason: str) -> "ValidationError":
        return cls(field, "InvalidValue", f"Invalid field value: {field} - {reason}")


class SerializationError(ReviewIndexError):
    """Structural JSON failure in a request payload."""

    tag = "serialization_error"


class FileOperationError(ReviewIndexError):
    """I/O failure against the data directory."""

    tag = "file_operation_error"


class ConcurrencyError(ReviewIndexError):
    """Writer lock could not be acquired. Transient; callers may retry."""

    tag = "concurrency_error"


class EmbeddingError(ReviewIndexError):
    """Embedding generation failed."""

    tag = "embedding_error"


class VectorSearchError(ReviewIndexError):
    """Vector index is unreadable or out of sync with the metadata log."""

    tag = "vector_search_error"


class InternalError(ReviewIndexError):
    """Unexpected invariant break."""

    tag = "internal_error"
