"""
Review data models.

ReviewInput is the user-supplied payload; ReviewRecord is the persisted
form stored one-per-line in the metadata log.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional
import uuid

from src.models.errors import SerializationError

REVIEW_INPUT_FIELDS = ("title", "body", "product_id", "rating")


def _require_str(data: dict, key: str) -> str:
    if key not in data:
        raise SerializationError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, str):
        raise SerializationError(f"invalid type for `{key}`: expected a string")
    return value


def _require_int(data: dict, key: str) -> int:
    if key not in data:
        raise SerializationError(f"missing field `{key}`")
    value = data[key]
    # bool is an int subclass; JSON true/false is not a rating
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"invalid type for `{key}`: expected an integer")
    return value


@dataclass
class ReviewInput:
    """
    Review as submitted by a user.
    Values are kept verbatim; trimming only happens during validation.
    """
    title: str
    body: str
    product_id: str
    rating: int  # 1-5 star rating

    @classmethod
    def from_dict(cls, data: Any) -> "ReviewInput":
        """
        Parse a decoded JSON value into a ReviewInput.

        Unknown keys are ignored.

        Raises:
            SerializationError: If the value is not an object or a field is
                missing or has the wrong JSON type
        """
        if not isinstance(data, dict):
            raise SerializationError(
                f"invalid type: expected a review object, got {type(data).__name__}"
            )
        return cls(
            title=_require_str(data, "title"),
            body=_require_str(data, "body"),
            product_id=_require_str(data, "product_id"),
            rating=_require_int(data, "rating"),
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "body": self.body,
            "product_id": self.product_id,
            "rating": self.rating,
        }

    def to_record(self, vector_index: int) -> "ReviewRecord":
        """Materialize a ReviewRecord with a fresh id and current UTC timestamp."""
        return ReviewRecord(
            id=str(uuid.uuid4()),
            title=self.title,
            body=self.body,
            product_id=self.product_id,
            rating=self.rating,
            timestamp=datetime.now(timezone.utc).isoformat(),
            vector_index=vector_index,
        )


@dataclass
class ReviewRecord:
    """
    Persisted review.

    vector_index is the record's 0-based position in the metadata log and
    its slot number in the vector index.
    """
    id: str
    title: str
    body: str
    product_id: str
    rating: int
    timestamp: str  # ISO-8601 UTC with offset
    vector_index: int

    @classmethod
    def from_dict(cls, data: Any) -> "ReviewRecord":
        """Create ReviewRecord from a decoded JSON line."""
        if not isinstance(data, dict):
            raise SerializationError("invalid type: expected a review record object")
        review = ReviewInput.from_dict(data)
        vector_index = _require_int(data, "vector_index")
        if vector_index < 0:
            raise SerializationError("invalid value for `vector_index`: must be non-negative")
        return cls(
            id=_require_str(data, "id"),
            title=review.title,
            body=review.body,
            product_id=review.product_id,
            rating=review.rating,
            timestamp=_require_str(data, "timestamp"),
            vector_index=vector_index,
        )

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict (key order is the on-disk order)."""
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "product_id": self.product_id,
            "rating": self.rating,
            "timestamp": self.timestamp,
            "vector_index": self.vector_index,
        }

    @property
    def text(self) -> str:
        """Text used for scoring and embedding."""
        return f"{self.title} {self.body}"


@dataclass
class InsertReceipt:
    """Result of a single insert."""
    id: str
    vector_index: int
    timestamp: str


@dataclass
class BulkFailure:
    """One rejected item of a bulk upload."""
    line_number: int  # 1-based position within the batch
    error: str
    data: Optional[Any] = None

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "error": self.error,
            "data": self.data,
        }


@dataclass
class BulkUploadReport:
    """Outcome of a bulk upload."""
    total_processed: int
    successful_count: int
    starting_vector_index: int
    ending_vector_index: int
    failed: List[BulkFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_processed": self.total_processed,
            "successful": self.successful_count,
            "failed": [failure.to_dict() for failure in self.failed],
        }
