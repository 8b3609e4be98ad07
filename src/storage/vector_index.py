"""
Vector Index.

Slot-addressed embedding store kept in `reviews.index`. Slot i holds the
embedding of the record at position i of the metadata log.

File format: consecutive little-endian float32 rows of `dimensions`
values, no header. Rows are L2-normalized on write so cosine similarity
is a dot product.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from src.models.errors import FileOperationError, VectorSearchError

logger = logging.getLogger(__name__)

DTYPE = np.dtype("<f4")


def _normalize(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


class VectorIndex:
    """
    Append-only float32 matrix on disk, one row per review position.

    Writers must hold the directory lock.
    """

    def __init__(self, file_path: Union[str, Path], dimensions: int):
        """
        Args:
            file_path: Path to reviews.index (created on first append)
            dimensions: Embedding width
        """
        if dimensions <= 0:
            raise ValueError(f"Invalid dimensions: {dimensions}. Must be positive")
        self.file_path = Path(file_path)
        self.dimensions = dimensions
        self.row_bytes = dimensions * DTYPE.itemsize

    def count(self) -> int:
        """Number of slots written so far."""
        if not self.file_path.exists():
            return 0
        try:
            size = self.file_path.stat().st_size
        except OSError as e:
            logger.error(f"Failed to stat {self.file_path}: {e}")
            raise FileOperationError("File operation failed", details={"io_error": str(e)}) from e

        if size % self.row_bytes != 0:
            raise VectorSearchError(
                f"Vector index {self.file_path} is corrupt: {size} bytes is not a "
                f"multiple of the {self.row_bytes}-byte row size"
            )
        return size // self.row_bytes

    def append(self, start_slot: int, vectors: Sequence[Sequence[float]]) -> None:
        """
        Write vectors into consecutive slots starting at `start_slot`.

        Raises:
            VectorSearchError: If `start_slot` is not the next free slot or a
                vector has the wrong width
            FileOperationError: On I/O failure
        """
        if len(vectors) == 0:
            return

        current = self.count()
        if start_slot != current:
            raise VectorSearchError(
                f"Vector index out of sync: next free slot is {current}, "
                f"refusing to write at slot {start_slot}"
            )

        matrix = np.asarray(vectors, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != self.dimensions:
            raise VectorSearchError(
                f"Expected vectors of {self.dimensions} dimensions, got shape {matrix.shape}"
            )

        data = _normalize(matrix).astype(DTYPE).tobytes()
        try:
            with open(self.file_path, "ab") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            logger.error(f"Failed to append to {self.file_path}: {e}")
            raise FileOperationError("File operation failed", details={"io_error": str(e)}) from e

        logger.info(f"Stored {len(matrix)} vectors at slots {start_slot}-{start_slot + len(matrix) - 1}")

    def load(self) -> np.ndarray:
        """Load the whole index as an (N, dimensions) float32 matrix."""
        n = self.count()
        if n == 0:
            return np.zeros((0, self.dimensions), dtype=DTYPE)
        try:
            return np.fromfile(self.file_path, dtype=DTYPE, count=n * self.dimensions).reshape(
                n, self.dimensions
            )
        except OSError as e:
            logger.error(f"Failed to read {self.file_path}: {e}")
            raise FileOperationError("File operation failed", details={"io_error": str(e)}) from e

    def get(self, slot: int) -> Optional[np.ndarray]:
        """Return the stored (normalized) vector at `slot`, or None."""
        if slot < 0 or slot >= self.count():
            return None
        return np.fromfile(
            self.file_path,
            dtype=DTYPE,
            count=self.dimensions,
            offset=slot * self.row_bytes,
        )

    def search(
        self,
        query_vector: Sequence[float],
        limit: int,
        slots: Optional[Sequence[int]] = None
    ) -> List[Tuple[int, float]]:
        """
        Rank slots by cosine similarity to `query_vector`.

        Args:
            query_vector: Query embedding
            limit: Maximum number of results
            slots: Restrict the search to these slots (default: all)

        Returns:
            List of (slot, similarity) sorted by similarity descending, then
            slot ascending
        """
        matrix = self.load()
        if matrix.shape[0] == 0 or limit <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        if query.shape != (self.dimensions,):
            raise VectorSearchError(
                f"Expected query vector of {self.dimensions} dimensions, got shape {query.shape}"
            )
        norm = np.linalg.norm(query)
        if norm == 0:
            return []
        query = query / norm

        if slots is None:
            candidates = np.arange(matrix.shape[0])
        else:
            candidates = np.array(
                sorted({s for s in slots if 0 <= s < matrix.shape[0]}), dtype=np.int64
            )
            if candidates.size == 0:
                return []

        scores = matrix[candidates].astype(np.float64) @ query
        order = np.lexsort((candidates, -scores))[:limit]
        return [(int(candidates[i]), float(scores[i])) for i in order]


# Design Rationale and Trade-offs:
#
# 1. Why a headerless float32 file instead of .npy?
#    - Appending a row is a plain file append; .npy would need a rewrite
#    - Slot count is derived from the file size
#    - Trade-off: Dimensions are not recorded in the file itself
#
# 2. Why normalize on write?
#    - Search is a single matrix-vector product
#    - Trade-off: Stored vectors lose their original magnitude
