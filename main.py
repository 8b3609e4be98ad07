"""
Review Index - Semantic search over product reviews

CLI entry point for serving the API and operating on a data directory.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import config.settings as settings
from src.models.errors import FileOperationError, ReviewIndexError, SerializationError
from src.models.review import ReviewInput
from src.models.search import SearchQuery
from src.review_index import SEARCH_BACKENDS, ReviewIndex


def setup_logging(log_level: str = "INFO"):
    """Configure logging for the entire application."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=settings.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(settings.LOG_FILE)
        ]
    )


def load_bulk_file(path: str):
    """
    Read a bulk upload file.

    .jsonl/.ndjson files are passed through as a JSONL string; anything
    else is decoded as a JSON array or object.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise FileOperationError(f"Cannot read {path}", details={"io_error": str(e)}) from e

    if path.endswith((".jsonl", ".ndjson")):
        return content
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise SerializationError(
            "Data serialization failed", details={"serde_error": str(e)}
        ) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Review Index - semantic search over product reviews",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the HTTP API
  python main.py serve --port 8000

  # Add a review
  python main.py add --title "Great product!" \\
                     --body "Exceeded my expectations, fast delivery." \\
                     --product-id prod_123 --rating 5

  # Bulk upload a JSON array or a .jsonl file
  python main.py bulk reviews.jsonl

  # Search
  python main.py search "camera quality" --limit 5

  # Check the metadata log after a crash
  python main.py validate

Note: Set GOOGLE_API_KEY before using --backend vector.
        """
    )

    parser.add_argument(
        "--data-dir",
        default=settings.DATA_DIR,
        help=f"Data directory (default: {settings.DATA_DIR})"
    )

    parser.add_argument(
        "--backend",
        default=settings.SEARCH_BACKEND,
        choices=SEARCH_BACKENDS,
        help=f"Search backend (default: {settings.SEARCH_BACKEND})"
    )

    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {settings.LOG_LEVEL})"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.API_HOST)
    serve.add_argument("--port", type=int, default=settings.API_PORT)

    add = subparsers.add_parser("add", help="Add a single review")
    add.add_argument("--title", required=True)
    add.add_argument("--body", required=True)
    add.add_argument("--product-id", required=True)
    add.add_argument("--rating", type=int, required=True)

    bulk = subparsers.add_parser("bulk", help="Bulk upload from a JSON or JSONL file")
    bulk.add_argument("file", help="JSON array/object file, or .jsonl file")

    search = subparsers.add_parser("search", help="Search reviews")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=None)

    subparsers.add_parser("validate", help="Check metadata log integrity")
    subparsers.add_parser("backfill", help="Embed records missing from reviews.index")
    subparsers.add_parser("stats", help="Show data directory summary")

    return parser


def serve(args) -> int:
    import uvicorn
    from src.api.app import create_app

    index = ReviewIndex(data_dir=args.data_dir, search_backend=args.backend)
    print(f"Semantic Search Backend listening on {args.host}:{args.port}")
    uvicorn.run(create_app(index), host=args.host, port=args.port)
    return 0


def run_command(args) -> int:
    """Execute a non-serve subcommand and print its JSON result."""
    index = ReviewIndex(data_dir=args.data_dir, search_backend=args.backend)

    if args.command == "add":
        receipt = index.add_review(ReviewInput(
            title=args.title,
            body=args.body,
            product_id=args.product_id,
            rating=args.rating
        ))
        result = {
            "review_id": receipt.id,
            "vector_index": receipt.vector_index,
            "timestamp": receipt.timestamp
        }

    elif args.command == "bulk":
        report = index.add_reviews_bulk(load_bulk_file(args.file))
        result = {
            "result": report.to_dict(),
            "starting_vector_index": report.starting_vector_index,
            "ending_vector_index": report.ending_vector_index
        }

    elif args.command == "search":
        result = index.search(SearchQuery(query=args.query, limit=args.limit)).to_dict()

    elif args.command == "validate":
        report = index.validate_log()
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return 0 if report.is_valid else 1

    elif args.command == "backfill":
        result = {"backfilled": index.backfill_vectors()}

    else:
        result = index.stats()

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if args.command == "backfill" and args.backend != "vector":
        parser.error("backfill requires --backend vector")

    # Setup logging
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    if args.backend == "vector" and not settings.GOOGLE_API_KEY:
        logger.error(
            "GOOGLE_API_KEY environment variable not set. "
            "It is required for the vector backend."
        )
        sys.exit(1)

    try:
        if args.command == "serve":
            sys.exit(serve(args))
        sys.exit(run_command(args))

    except ReviewIndexError as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps(e.to_response(), indent=2, ensure_ascii=False))
        sys.exit(1)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
