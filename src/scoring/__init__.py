"""
Scorers for the query path.

All scorers share one contract, rank(query, records, limit), so the
search coordinator does not care which backend is active:
- TextSimilarityScorer: Lexical heuristic over the metadata log
- VectorSimilarityScorer: Cosine similarity over reviews.index
"""

from src.scoring.base import Scorer
from src.scoring.text import TextSimilarityScorer
from src.scoring.vector import VectorSimilarityScorer

__all__ = ["Scorer", "TextSimilarityScorer", "VectorSimilarityScorer"]
