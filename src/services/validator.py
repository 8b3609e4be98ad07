"""
Validator.

Sole authority for input shape. Downstream components assume that
anything reaching them has passed these checks.
"""

import config.settings as settings
from src.models.errors import ValidationError
from src.models.review import ReviewInput
from src.models.search import SearchQuery


def _check_length(field: str, value: str, min_length: int, max_length: int) -> None:
    # Lengths are in code points of the trimmed value
    length = len(value.strip())
    if length < min_length:
        raise ValidationError.too_short(field, min_length)
    if length > max_length:
        raise ValidationError.too_long(field, max_length)


def validate_review(review: ReviewInput) -> None:
    """
    Check a review against the field constraints.

    Raises:
        ValidationError: Naming the first offending field
    """
    # Required fields
    for field in ("title", "body", "product_id"):
        if not getattr(review, field).strip():
            raise ValidationError.missing_field(field)

    _check_length("title", review.title, settings.TITLE_MIN_LENGTH, settings.TITLE_MAX_LENGTH)
    _check_length("body", review.body, settings.BODY_MIN_LENGTH, settings.BODY_MAX_LENGTH)
    _check_length("product_id", review.product_id, 1, settings.PRODUCT_ID_MAX_LENGTH)

    if not (settings.RATING_MIN <= review.rating <= settings.RATING_MAX):
        raise ValidationError.invalid_rating()


def validate_search(search: SearchQuery) -> None:
    """
    Check a search request.

    Raises:
        ValidationError: For an empty or oversized query, or a limit outside [1, 100]
    """
    if not search.query.strip():
        raise ValidationError.missing_field("query")

    if len(search.query.strip()) > settings.QUERY_MAX_LENGTH:
        raise ValidationError.too_long("query", settings.QUERY_MAX_LENGTH)

    if search.limit is not None and not (1 <= search.limit <= settings.MAX_SEARCH_LIMIT):
        raise ValidationError.invalid_value(
            "limit", f"must be between 1 and {settings.MAX_SEARCH_LIMIT}"
        )
