"""
Metadata Log.

Append-only, line-delimited JSON store of review records. The position of
a record (its 0-based ordinal among non-blank lines) is its vector_index.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from src.models.errors import FileOperationError, SerializationError
from src.models.review import ReviewRecord

logger = logging.getLogger(__name__)


@dataclass
class LogError:
    """A line of the metadata log that failed to parse."""
    line_number: int  # 1-based physical line number
    reason: str

    def to_dict(self) -> dict:
        return {"line_number": self.line_number, "reason": self.reason}


@dataclass
class LogValidationReport:
    """Result of an integrity scan of the metadata log."""
    total_lines: int = 0
    valid_lines: int = 0
    errors: List[LogError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "total_lines": self.total_lines,
            "valid_lines": self.valid_lines,
            "errors": [error.to_dict() for error in self.errors],
        }


def _serialize(record: ReviewRecord) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False, separators=(",", ":")) + "\n"


def _io_error(action: str, path: Path, error: OSError) -> FileOperationError:
    logger.error(f"Failed to {action} {path}: {error}")
    return FileOperationError("File operation failed", details={"io_error": str(error)})


class MetadataLog:
    """
    Append-only review store backed by a single JSONL file.

    Writers must hold the directory lock; readers never lock and observe a
    prefix of the log.
    """

    def __init__(self, file_path: Union[str, Path]):
        """
        Args:
            file_path: Path to reviews.jsonl (created on first append)
        """
        self.file_path = Path(file_path)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, record: ReviewRecord) -> None:
        """
        Append one record as a single line and flush it to the OS.

        If the write fails part-way, the file is truncated back to the size
        it had before the call and FileOperationError is raised.

        Raises:
            FileOperationError: On any I/O failure
        """
        self._write(_serialize(record), "append to")
        logger.debug(f"Appended record {record.id} at position {record.vector_index}")

    def append_batch(self, records: Sequence[ReviewRecord]) -> None:
        """
        Append many records in the given order with a single flush.

        Same rollback as append(): a failed batch leaves no partial tail.

        Raises:
            FileOperationError: On any I/O failure
        """
        if not records:
            return

        self._write("".join(_serialize(record) for record in records), "append batch to")
        logger.info(
            f"Appended {len(records)} records at positions "
            f"{records[0].vector_index}-{records[-1].vector_index}"
        )

    def _write(self, payload: str, action: str) -> None:
        try:
            original_size = self.file_path.stat().st_size if self.file_path.exists() else 0
        except OSError as e:
            raise _io_error("stat", self.file_path, e) from e

        try:
            with open(self.file_path, "a", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            self._truncate(original_size)
            raise _io_error(action, self.file_path, e) from e

    def _truncate(self, size: int) -> None:
        """Roll the file back to `size` bytes after a failed write."""
        try:
            if self.file_path.exists():
                os.truncate(self.file_path, size)
                logger.warning(f"Truncated {self.file_path} back to {size} bytes after failed write")
        except OSError as e:
            logger.error(
                f"Could not truncate {self.file_path} to {size} bytes: {e}. "
                f"Run the integrity check before further writes."
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _iter_lines(self) -> Iterator[Tuple[int, str]]:
        """Yield (1-based physical line number, stripped line) for every line."""
        if not self.file_path.exists():
            return
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                for line_number, line in enumerate(f, start=1):
                    yield line_number, line.strip()
        except OSError as e:
            raise _io_error("read", self.file_path, e) from e
        except UnicodeDecodeError as e:
            logger.error(f"Metadata log {self.file_path} is not valid UTF-8: {e}")
            raise FileOperationError(
                "Metadata log is corrupt", details={"io_error": str(e)}
            ) from e

    def _iter_positions(self) -> Iterator[Tuple[int, int, str]]:
        """Yield (position, physical line number, line) for non-blank lines."""
        position = 0
        for line_number, line in self._iter_lines():
            if not line:
                continue
            yield position, line_number, line
            position += 1

    def _decode(self, line: str, line_number: int) -> ReviewRecord:
        """
        Parse one stored line.

        Raises:
            FileOperationError: If the line is not a valid ReviewRecord
        """
        try:
            return ReviewRecord.from_dict(json.loads(line))
        except json.JSONDecodeError as e:
            reason = str(e)
        except SerializationError as e:
            reason = e.message

        logger.error(f"Corrupt line {line_number} in {self.file_path}: {reason}")
        raise FileOperationError(
            "Metadata log is corrupt",
            details={"io_error": reason, "line_number": line_number},
        )

    def count(self) -> int:
        """Number of non-blank lines, i.e. the next available position."""
        return sum(1 for _ in self._iter_positions())

    def get(self, index: int) -> Optional[ReviewRecord]:
        """Return the record at `index`, or None if beyond the end."""
        if index < 0:
            return None
        for position, line_number, line in self._iter_positions():
            if position == index:
                return self._decode(line, line_number)
        return None

    def get_many(self, indices: Sequence[int]) -> List[Optional[ReviewRecord]]:
        """
        Fetch several records in one pass over the file.

        Args:
            indices: Positions to fetch; duplicates and any order are allowed

        Returns:
            List aligned with `indices`; None where a position does not exist
        """
        results: List[Optional[ReviewRecord]] = [None] * len(indices)

        wanted: Dict[int, List[int]] = {}
        for result_idx, position in enumerate(indices):
            if position >= 0:
                wanted.setdefault(position, []).append(result_idx)
        if not wanted:
            return results

        last_wanted = max(wanted)
        for position, line_number, line in self._iter_positions():
            if position in wanted:
                record = self._decode(line, line_number)
                for result_idx in wanted[position]:
                    results[result_idx] = record
            if position >= last_wanted:
                break

        return results

    def iter_records(self) -> Iterator[ReviewRecord]:
        """Stream every record in position order."""
        for _, line_number, line in self._iter_positions():
            yield self._decode(line, line_number)

    def read_all(self) -> List[ReviewRecord]:
        """Read every record in position order."""
        records = list(self.iter_records())
        logger.debug(f"Read {len(records)} records from {self.file_path}")
        return records

    def validate(self) -> LogValidationReport:
        """
        Scan the whole file and report lines that do not parse.

        Blank lines count toward total_lines but are not errors.
        """
        report = LogValidationReport()
        for line_number, line in self._iter_lines():
            report.total_lines += 1
            if not line:
                continue
            try:
                ReviewRecord.from_dict(json.loads(line))
                report.valid_lines += 1
            except json.JSONDecodeError as e:
                report.errors.append(LogError(line_number, str(e)))
            except SerializationError as e:
                report.errors.append(LogError(line_number, e.message))

        if report.errors:
            logger.warning(
                f"Metadata log {self.file_path} has {len(report.errors)} invalid lines "
                f"out of {report.total_lines}"
            )
        return report


# Design Rationale and Trade-offs:
#
# 1. Why positions from line order instead of a stored counter?
#    - The file is the only state; count() can never disagree with it
#    - Blank lines are skipped so a stray newline does not shift positions
#    - Trade-off: count() and get() are O(n) scans of the file
#
# 2. Why truncate on a failed write instead of leaving the tail?
#    - A record the caller was told failed must not occupy a position
#    - A partial line without its newline would swallow the next append
#    - Trade-off: Best effort only; a crash mid-write still needs validate()
#
# 3. Why FileOperationError for an undecodable stored line?
#    - SerializationError means a bad request body (400)
#    - A corrupt log is a server-side failure (500)
