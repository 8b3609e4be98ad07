"""
Search Coordinator.

Validates the query, hands the corpus to the active scorer and assembles
the response. Readers never take the writer lock; they see whatever
prefix of the log exists when the read starts.
"""

import logging

from src.models.search import SearchQuery, SearchResponse
from src.scoring.base import Scorer
from src.services.validator import validate_search
from src.storage.metadata_log import MetadataLog

logger = logging.getLogger(__name__)


class SearchCoordinator:
    """Runs queries against the metadata log through a pluggable scorer."""

    def __init__(self, log: MetadataLog, scorer: Scorer):
        self.log = log
        self.scorer = scorer

    @property
    def search_type(self) -> str:
        return self.scorer.search_type

    def search(self, request: SearchQuery) -> SearchResponse:
        """
        Execute a search.

        Raises:
            ValidationError: For an invalid query or limit
            FileOperationError: If the log cannot be read
        """
        validate_search(request)
        limit = request.get_limit()

        records = self.log.read_all() if self.scorer.needs_corpus else None
        hits = self.scorer.rank(request.query, records, limit)

        logger.info(
            f"Search performed for query: '{request.query}', found {len(hits)} results "
            f"({self.scorer.search_type})"
        )
        return SearchResponse(
            query=request.query,
            limit=limit,
            search_type=self.scorer.search_type,
            results=hits,
        )
