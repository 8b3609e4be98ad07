"""
HTTP surface of the review index.

Routes:
- GET  /health        service liveness
- POST /reviews       create one review
- POST /reviews/bulk  bulk upload (JSON array, object or JSONL string)
- POST /search        similarity search

Run with: uvicorn src.api.app:app
"""

import logging
from typing import Any, Optional

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import config.settings as settings
from src.models.errors import (
    ConcurrencyError,
    ReviewIndexError,
    SerializationError,
    ValidationError,
)
from src.models.review import ReviewInput
from src.models.search import SearchQuery
from src.review_index import ReviewIndex

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


def status_for(error: ReviewIndexError) -> int:
    """HTTP status code for a review index error."""
    if isinstance(error, (ValidationError, SerializationError)):
        return 400
    if isinstance(error, ConcurrencyError):
        return 503
    return 500


def create_app(review_index: Optional[ReviewIndex] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        review_index: Index to serve; built from settings on first request if None
    """
    app = FastAPI(title="Review Semantic Search", version=settings.SERVICE_VERSION)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.review_index = review_index

    def get_index() -> ReviewIndex:
        if app.state.review_index is None:
            app.state.review_index = ReviewIndex()
        return app.state.review_index

    @app.exception_handler(ReviewIndexError)
    def handle_review_index_error(request: Request, exc: ReviewIndexError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc}")
        return JSONResponse(status_code=status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    def handle_malformed_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = SerializationError(
            "Data serialization failed",
            details={"serde_error": str(exc.errors())},
        )
        return JSONResponse(status_code=400, content=error.to_response())

    @app.get("/health", response_model=HealthResponse)
    def health_check() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service=settings.SERVICE_NAME,
            version=settings.SERVICE_VERSION,
        )

    @app.post("/reviews")
    def create_review(payload: Any = Body(...)):
        review = ReviewInput.from_dict(payload)
        receipt = get_index().add_review(review)
        return {
            "success": True,
            "message": "Review created successfully",
            "review_id": receipt.id,
            "vector_index": receipt.vector_index,
            "timestamp": receipt.timestamp,
        }

    @app.post("/reviews/bulk")
    def bulk_upload(payload: Any = Body(...)):
        report = get_index().add_reviews_bulk(payload)
        return {
            "success": True,
            "message": (
                f"Bulk upload completed: {report.successful_count} successful, "
                f"{len(report.failed)} failed"
            ),
            "result": report.to_dict(),
            "starting_vector_index": report.starting_vector_index,
            "ending_vector_index": report.ending_vector_index,
        }

    @app.post("/search")
    def search_reviews(payload: Any = Body(...)):
        request = SearchQuery.from_dict(payload)
        response = get_index().search(request)
        return {"success": True, **response.to_dict()}

    return app


app = create_app()
