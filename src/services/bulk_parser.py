"""
Bulk Parser.

Accepts the outer JSON value of a bulk upload and normalizes it into an
ordered list of review inputs. Three envelopes are supported:

- JSON array: [{"title": ...}, ...]
- JSON object: a single review
- JSON string: newline-delimited JSON, one review per line

Structural failures abort the whole upload. Value constraints are not
checked here; the ingestion coordinator validates each item and reports
failures per item.
"""

import json
import logging
from typing import Any, List, Tuple

from src.models.errors import SerializationError, ValidationError
from src.models.review import ReviewInput

logger = logging.getLogger(__name__)


def parse_bulk_payload(payload: Any) -> Tuple[List[ReviewInput], List[Any]]:
    """
    Parse a bulk envelope.

    Args:
        payload: Decoded JSON value of the request body

    Returns:
        (inputs, originals): parsed reviews and the raw values they came
        from, index-aligned

    Raises:
        SerializationError: An array element or object is not a review
        ValidationError: An NDJSON line is not a review, or the envelope
            is neither array, object nor string
    """
    if isinstance(payload, list):
        inputs = [ReviewInput.from_dict(item) for item in payload]
        logger.debug(f"Parsed {len(inputs)} reviews from JSON array")
        return inputs, list(payload)

    if isinstance(payload, dict):
        return [ReviewInput.from_dict(payload)], [payload]

    if isinstance(payload, str):
        return _parse_ndjson(payload)

    raise ValidationError.invalid_value(
        "bulk_data", "Expected JSON array, object, or JSONL string"
    )


def _parse_ndjson(content: str) -> Tuple[List[ReviewInput], List[Any]]:
    inputs = []
    originals = []
    for line_number, line in enumerate(content.split("\n"), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            value = json.loads(line)
            inputs.append(ReviewInput.from_dict(value))
        except json.JSONDecodeError as e:
            raise ValidationError.invalid_value(f"line_{line_number}", f"Invalid JSON: {e}") from e
        except SerializationError as e:
            raise ValidationError.invalid_value(
                f"line_{line_number}", f"Invalid JSON: {e.message}"
            ) from e
        originals.append(value)

    logger.debug(f"Parsed {len(inputs)} reviews from JSONL string")
    return inputs, originals
