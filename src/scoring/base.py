"""
Scorer contract.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from src.models.review import ReviewRecord
from src.models.search import SearchHit


def clamp_score(score: float) -> float:
    """Clamp a raw score into [0, 1]."""
    return min(1.0, max(0.0, score))


class Scorer(ABC):
    """
    Turns a text query into an ordered list of scored reviews.

    Implementations must be deterministic: the same corpus and query give
    the same hits in the same order.
    """

    # Reported to API callers as search_type
    search_type: str = ""

    # Whether the search coordinator should load the full corpus and pass
    # it as `records`. Index-backed scorers fetch their own candidates.
    needs_corpus: bool = True

    @abstractmethod
    def rank(
        self,
        query: str,
        records: Optional[Sequence[ReviewRecord]],
        limit: int
    ) -> List[SearchHit]:
        """
        Score and order reviews against `query`.

        Args:
            query: Validated query text
            records: Candidate records in position order (None lets an
                index-backed scorer search everything)
            limit: Maximum number of hits

        Returns:
            Hits sorted by descending score; ties keep position order
        """
