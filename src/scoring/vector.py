"""
Vector Similarity Scorer.

Embeds the query, finds the nearest slots in reviews.index and resolves
them to records through the metadata log. Slot number and log position
are the same number, so no mapping table is needed.
"""

import logging
from typing import Dict, List, Optional, Sequence

from src.models.review import ReviewRecord
from src.models.search import SearchHit
from src.scoring.base import Scorer, clamp_score
from src.storage.metadata_log import MetadataLog
from src.storage.vector_index import VectorIndex
from src.utils.embeddings import EmbeddingGenerator

logger = logging.getLogger(__name__)


class VectorSimilarityScorer(Scorer):
    """Ranks reviews by cosine similarity of their embeddings to the query."""

    search_type = "vector_similarity"
    needs_corpus = False

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        vector_index: VectorIndex,
        log: MetadataLog
    ):
        """
        Args:
            embedder: Generates the query embedding
            vector_index: Slot store to search
            log: Metadata log used to resolve slots to records
        """
        self.embedder = embedder
        self.vector_index = vector_index
        self.log = log

    def rank(
        self,
        query: str,
        records: Optional[Sequence[ReviewRecord]],
        limit: int
    ) -> List[SearchHit]:
        if not query.split():
            return []

        query_vector = self.embedder.generate_query(query)

        by_slot: Optional[Dict[int, ReviewRecord]] = None
        slots = None
        if records is not None:
            by_slot = {record.vector_index: record for record in records}
            slots = list(by_slot)

        matches = self.vector_index.search(query_vector, limit, slots=slots)
        matches = [(slot, clamp_score(score)) for slot, score in matches]
        matches = [(slot, score) for slot, score in matches if score > 0.0]

        if by_slot is not None:
            resolved = [by_slot.get(slot) for slot, _ in matches]
        else:
            resolved = self.log.get_many([slot for slot, _ in matches])

        hits = []
        for (slot, score), record in zip(matches, resolved):
            if record is None:
                logger.warning(f"Vector slot {slot} has no record in the metadata log, skipping")
                continue
            hits.append(SearchHit(review=record, similarity_score=score))

        logger.debug(f"Vector scorer returned {len(hits)} hits")
        return hits
