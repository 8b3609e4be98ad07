"""
Ingestion Coordinator.

Assigns stable positions to new reviews and persists them. Every write
runs under the directory lock, so positions are handed out in lock
acquisition order with no gaps or duplicates.
"""

import logging
from typing import Any, Callable, List, Optional

from src.models.errors import InternalError, ValidationError, VectorSearchError
from src.models.review import (
    BulkFailure,
    BulkUploadReport,
    InsertReceipt,
    ReviewInput,
    ReviewRecord,
)
from src.services.bulk_parser import parse_bulk_payload
from src.services.validator import validate_review
from src.storage.lock import DirectoryLock
from src.storage.metadata_log import MetadataLog
from src.storage.vector_index import VectorIndex
from src.utils.embeddings import EmbeddingGenerator

logger = logging.getLogger(__name__)


class IngestionCoordinator:
    """
    Orchestrates single and bulk inserts.

    Write path:
    Lock → Log.count → validate → assign positions → [embed]
    → Log.append / append_batch → [VectorIndex.append] → release
    """

    def __init__(
        self,
        log: MetadataLog,
        lock_factory: Callable[[], DirectoryLock],
        embedder: Optional[EmbeddingGenerator] = None,
        vector_index: Optional[VectorIndex] = None
    ):
        """
        Initialize ingestion coordinator.

        Args:
            log: Metadata log to append to
            lock_factory: Returns a fresh, unacquired directory lock
            embedder: Embedding generator (vector backend only)
            vector_index: Slot store written in step with the log (vector backend only)
        """
        if (embedder is None) != (vector_index is None):
            raise ValueError("embedder and vector_index must be configured together")

        self.log = log
        self.lock_factory = lock_factory
        self.embedder = embedder
        self.vector_index = vector_index

    @property
    def vectors_enabled(self) -> bool:
        return self.vector_index is not None

    def insert(self, review: ReviewInput) -> InsertReceipt:
        """
        Insert one review at the next free position.

        Raises:
            ValidationError: If the review violates a field constraint
            ConcurrencyError: If the writer lock is unavailable
            EmbeddingError: If the vector backend cannot embed the review
            FileOperationError: On I/O failure
        """
        validate_review(review)

        with self.lock_factory():
            base = self.log.count()
            record = review.to_record(vector_index=base)

            self._check_slots(base)
            vectors = self._embed([record])
            self.log.append(record)
            self._store_vectors(base, vectors)

        logger.info(f"Stored review {record.id} at position {base}")
        return InsertReceipt(id=record.id, vector_index=base, timestamp=record.timestamp)

    def insert_bulk(self, payload: Any) -> BulkUploadReport:
        """
        Insert a batch of reviews in submission order.

        Items that fail validation are reported in `failed` and do not
        consume a position; successful items receive contiguous positions.

        Args:
            payload: Bulk envelope (JSON array, object or JSONL string)

        Raises:
            ValidationError: If the envelope is empty or malformed
            SerializationError: If an array element is not a review object
            ConcurrencyError: If the writer lock is unavailable
            FileOperationError: On I/O failure
        """
        with self.lock_factory():
            base = self.log.count()

            inputs, originals = parse_bulk_payload(payload)
            if not inputs:
                raise ValidationError.invalid_value(
                    "reviews", "No valid reviews found in bulk data"
                )

            successful: List[ReviewRecord] = []
            failed: List[BulkFailure] = []
            for item_number, (review, original) in enumerate(zip(inputs, originals), start=1):
                try:
                    validate_review(review)
                except ValidationError as e:
                    failed.append(BulkFailure(line_number=item_number, error=str(e), data=original))
                    continue
                successful.append(review.to_record(vector_index=base + len(successful)))

            if successful:
                self._check_slots(base)
                vectors = self._embed(successful)
                self.log.append_batch(successful)
                self._store_vectors(base, vectors)

        report = BulkUploadReport(
            total_processed=len(inputs),
            successful_count=len(successful),
            starting_vector_index=base,
            ending_vector_index=base + len(successful) - 1,
            failed=failed,
        )
        logger.info(
            f"Bulk upload: {report.successful_count} stored, {len(failed)} failed "
            f"(positions {report.starting_vector_index}-{report.ending_vector_index})"
        )
        return report

    def backfill_vectors(self) -> int:
        """
        Embed records whose vector slot is missing.

        Covers stores that were written while the text backend was active.

        Returns:
            Number of vectors written
        """
        if not self.vectors_enabled:
            raise ValueError("backfill requires the vector backend")

        with self.lock_factory():
            start = self.vector_index.count()
            total = self.log.count()
            if start >= total:
                logger.info("Vector index is up to date, nothing to backfill")
                return 0

            records = self.log.get_many(list(range(start, total)))
            missing = [r for r in records if r is None]
            if missing:
                raise InternalError(f"{len(missing)} log positions vanished during backfill")

            vectors = self._embed(records)
            self._store_vectors(start, vectors)

        logger.info(f"Backfilled {len(records)} vectors at slots {start}-{total - 1}")
        return len(records)

    def _check_slots(self, base: int) -> None:
        """Refuse to write when the vector index does not end where the log does."""
        if not self.vectors_enabled:
            return
        slots = self.vector_index.count()
        if slots != base:
            raise VectorSearchError(
                f"Vector index out of sync: {slots} slots for {base} records. "
                f"Run the backfill command before writing."
            )

    def _embed(self, records: List[ReviewRecord]) -> Optional[List[List[float]]]:
        """Embed record texts. Called before any write."""
        if not self.vectors_enabled:
            return None
        return self.embedder.generate_batch([record.text for record in records])

    def _store_vectors(self, start_slot: int, vectors: Optional[List[List[float]]]) -> None:
        if vectors is None:
            logger.info(f"Vector slots from {start_slot} would be stored in reviews.index (text backend active)")
            return
        self.vector_index.append(start_slot, vectors)


# Design Rationale and Trade-offs:
#
# 1. Why embed before appending to the log?
#    - An embedding failure then leaves both files untouched
#    - Trade-off: The writer lock is held for the duration of the API call
#
# 2. Why refuse writes when reviews.index is out of sync?
#    - Slot i must hold the vector of log position i
#    - Trade-off: Stores written under the text backend need a backfill first
#
# 3. Why validate bulk items after parsing the whole envelope?
#    - Structural errors abort early; value errors are reported per item
#    - Trade-off: The whole payload is held in memory
