"""
Data directory layout.
"""

import logging
import os
from pathlib import Path
from typing import Tuple, Union

from src.models.errors import FileOperationError

logger = logging.getLogger(__name__)

REVIEWS_JSONL = "reviews.jsonl"
REVIEWS_INDEX = "reviews.index"
LOCK_FILE = ".lock"


class DataPaths:
    """
    Resolves a base directory into the three artifacts of the review index.

    - reviews.jsonl: metadata log
    - reviews.index: vector store
    - .lock: advisory writer lock sentinel
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.reviews_jsonl = self.data_dir / REVIEWS_JSONL
        self.reviews_index = self.data_dir / REVIEWS_INDEX
        self.lock_file = self.data_dir / LOCK_FILE

    def ensure_directories(self) -> None:
        """Create the data directory if missing. Never deletes anything."""
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create data directory {self.data_dir}: {e}")
            raise FileOperationError(
                "File operation failed", details={"io_error": str(e)}
            ) from e

    def files_exist(self) -> Tuple[bool, bool]:
        """Return (metadata log exists, vector index exists)."""
        return self.reviews_jsonl.exists(), self.reviews_index.exists()

    def __repr__(self) -> str:
        return f"DataPaths(data_dir={str(self.data_dir)!r})"
