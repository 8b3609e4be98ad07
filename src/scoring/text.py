"""
Text Similarity Scorer.

Lexical heuristic used until the embedding backend is enabled:
phrase match, per-word matches weighted toward the title, a coverage
bonus and a small rating preference.
"""

import logging
from typing import List, Optional, Sequence

from src.models.review import ReviewRecord
from src.models.search import SearchHit
from src.scoring.base import Scorer, clamp_score

logger = logging.getLogger(__name__)

PHRASE_WEIGHT = 1.0
TITLE_WORD_WEIGHT = 0.8
BODY_WORD_WEIGHT = 0.5
COVERAGE_WEIGHT = 0.5
RATING_WEIGHT = 0.1
NEUTRAL_RATING = 3


def score_record(query_lower: str, query_words: List[str], record: ReviewRecord) -> float:
    """
    Compute the similarity of one record to an already lowercased query.

    Returns:
        Score clamped to [0, 1]
    """
    title_lower = record.title.lower()
    combined = f"{title_lower} {record.body.lower()}"

    score = 0.0

    # Exact phrase
    if query_lower in combined:
        score += PHRASE_WEIGHT

    # Individual words, title matches weigh more
    word_matches = 0
    for word in query_words:
        if word in combined:
            word_matches += 1
            score += TITLE_WORD_WEIGHT if word in title_lower else BODY_WORD_WEIGHT

    score += (word_matches / len(query_words)) * COVERAGE_WEIGHT
    score += (record.rating - NEUTRAL_RATING) * RATING_WEIGHT

    return clamp_score(score)


class TextSimilarityScorer(Scorer):
    """Ranks the full corpus with the lexical heuristic."""

    search_type = "text_similarity"
    needs_corpus = True

    def rank(
        self,
        query: str,
        records: Optional[Sequence[ReviewRecord]],
        limit: int
    ) -> List[SearchHit]:
        query_lower = query.lower()
        query_words = query_lower.split()
        if not query_words or not records:
            return []

        hits = []
        for record in records:
            score = score_record(query_lower, query_words, record)
            if score > 0.0:
                hits.append(SearchHit(review=record, similarity_score=score))

        # sorted() is stable, so equal scores keep log order
        hits = sorted(hits, key=lambda hit: hit.similarity_score, reverse=True)

        logger.debug(f"Text scorer matched {len(hits)} of {len(records)} records")
        return hits[:limit]
