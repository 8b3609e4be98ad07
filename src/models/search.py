"""
Search data models.

SearchQuery is the request; SearchHit pairs a stored review with its
similarity score.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import config.settings as settings
from src.models.errors import SerializationError
from src.models.review import ReviewRecord


@dataclass
class SearchQuery:
    """Natural-language query with an optional result limit."""
    query: str
    limit: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "SearchQuery":
        """
        Parse a decoded JSON request body.

        Raises:
            SerializationError: If query is missing or not a string, or limit
                is present but not an integer
        """
        if not isinstance(data, dict):
            raise SerializationError("invalid type: expected a search request object")
        if "query" not in data:
            raise SerializationError("missing field `query`")
        query = data["query"]
        if not isinstance(query, str):
            raise SerializationError("invalid type for `query`: expected a string")

        limit = data.get("limit")
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int)):
            raise SerializationError("invalid type for `limit`: expected an integer")

        return cls(query=query, limit=limit)

    def get_limit(self) -> int:
        """Limit with the default applied."""
        if self.limit is None:
            return settings.DEFAULT_SEARCH_LIMIT
        return self.limit


@dataclass
class SearchHit:
    """A review paired with its similarity score in [0, 1]."""
    review: ReviewRecord
    similarity_score: float

    def to_dict(self) -> dict:
        return {
            "review": self.review.to_dict(),
            "similarity_score": self.similarity_score,
        }


@dataclass
class SearchResponse:
    """Assembled result of a query."""
    query: str
    limit: int
    search_type: str
    results: List[SearchHit] = field(default_factory=list)

    @property
    def total_results(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "results": [hit.to_dict() for hit in self.results],
            "total_results": self.total_results,
            "limit": self.limit,
            "search_type": self.search_type,
        }
