"""
Review Index.

Wires storage, scoring and the two coordinators together for one data
directory. The API and the CLI both go through this object.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import config.settings as settings
from src.models.review import BulkUploadReport, InsertReceipt, ReviewInput
from src.models.search import SearchQuery, SearchResponse
from src.scoring import Scorer, TextSimilarityScorer, VectorSimilarityScorer
from src.services.ingestion import IngestionCoordinator
from src.services.search import SearchCoordinator
from src.storage.lock import DirectoryLock
from src.storage.metadata_log import LogValidationReport, MetadataLog
from src.storage.paths import DataPaths
from src.storage.vector_index import VectorIndex
from src.utils.embeddings import EmbeddingGenerator

logger = logging.getLogger(__name__)

SEARCH_BACKENDS = ("text", "vector")


class ReviewIndex:
    """
    Review index over a single data directory.

    Coordinates:
    - Writes: IngestionCoordinator (single, bulk, vector backfill)
    - Reads: SearchCoordinator with the configured scorer
    """

    def __init__(
        self,
        data_dir: Union[str, Path] = settings.DATA_DIR,
        search_backend: str = settings.SEARCH_BACKEND,
        api_key: str = settings.GOOGLE_API_KEY,
        lock_timeout: Optional[float] = settings.LOCK_TIMEOUT_SECONDS,
        embedder: Optional[EmbeddingGenerator] = None
    ):
        """
        Initialize the review index.

        Args:
            data_dir: Root directory for reviews.jsonl, reviews.index and .lock
            search_backend: "text" or "vector"
            api_key: Google API key (vector backend only)
            lock_timeout: Seconds to wait for the writer lock
            embedder: Pre-built embedding generator (overrides api_key)
        """
        if search_backend not in SEARCH_BACKENDS:
            raise ValueError(
                f"Invalid search backend: {search_backend}. Must be one of {SEARCH_BACKENDS}"
            )

        self.paths = DataPaths(data_dir)
        self.paths.ensure_directories()
        self.search_backend = search_backend
        self.lock_timeout = lock_timeout

        self.log = MetadataLog(self.paths.reviews_jsonl)
        self.vector_index: Optional[VectorIndex] = None
        self.embedder: Optional[EmbeddingGenerator] = None

        if search_backend == "vector":
            self.embedder = embedder or EmbeddingGenerator(
                api_key=api_key,
                model_name=settings.EMBEDDING_MODEL,
                embedding_dimensions=settings.EMBEDDING_DIMENSIONS,
                max_retries=settings.EMBEDDING_MAX_RETRIES
            )
            self.vector_index = VectorIndex(
                self.paths.reviews_index,
                dimensions=self.embedder.embedding_dimensions
            )

        self.ingestion = IngestionCoordinator(
            log=self.log,
            lock_factory=self._new_lock,
            embedder=self.embedder,
            vector_index=self.vector_index
        )
        self.searcher = SearchCoordinator(log=self.log, scorer=self._build_scorer())

        logger.info(f"Initialized ReviewIndex at {self.paths.data_dir} (backend={search_backend})")

    def _new_lock(self) -> DirectoryLock:
        return DirectoryLock(self.paths.lock_file, timeout=self.lock_timeout)

    def _build_scorer(self) -> Scorer:
        if self.search_backend == "vector":
            return VectorSimilarityScorer(
                embedder=self.embedder,
                vector_index=self.vector_index,
                log=self.log
            )
        return TextSimilarityScorer()

    @property
    def search_type(self) -> str:
        return self.searcher.search_type

    def add_review(self, review: ReviewInput) -> InsertReceipt:
        """Insert one review. See IngestionCoordinator.insert."""
        return self.ingestion.insert(review)

    def add_reviews_bulk(self, payload: Any) -> BulkUploadReport:
        """Insert a bulk envelope. See IngestionCoordinator.insert_bulk."""
        return self.ingestion.insert_bulk(payload)

    def search(self, request: SearchQuery) -> SearchResponse:
        """Run a query. See SearchCoordinator.search."""
        return self.searcher.search(request)

    def validate_log(self) -> LogValidationReport:
        """Integrity scan of the metadata log (operator tool)."""
        return self.log.validate()

    def backfill_vectors(self) -> int:
        """Embed records that have no vector slot yet."""
        return self.ingestion.backfill_vectors()

    def stats(self) -> dict:
        """Summary of the data directory."""
        jsonl_exists, index_exists = self.paths.files_exist()
        return {
            "data_dir": str(self.paths.data_dir),
            "search_type": self.search_type,
            "total_reviews": self.log.count(),
            "vector_slots": self.vector_index.count() if self.vector_index else None,
            "reviews_jsonl_exists": jsonl_exists,
            "reviews_index_exists": index_exists,
        }
