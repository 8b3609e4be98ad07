"""
Directory-wide writer lock.

An advisory exclusive flock() held on the `.lock` file of the data
directory for the duration of every mutating operation.
"""

import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Optional, Union

import config.settings as settings
from src.models.errors import ConcurrencyError

logger = logging.getLogger(__name__)


class DirectoryLock:
    """
    Exclusive lock over the whole data directory.

    Usage:
        with DirectoryLock(paths.lock_file, timeout=10):
            ...  # critical section

    flock() locks belong to the open file description, so two threads of
    one process exclude each other just like two processes do.
    """

    def __init__(
        self,
        lock_path: Union[str, Path],
        timeout: Optional[float] = settings.LOCK_TIMEOUT_SECONDS,
        poll_interval: float = settings.LOCK_POLL_INTERVAL_SECONDS
    ):
        """
        Args:
            lock_path: Path to the lock sentinel (created on first use)
            timeout: Seconds to wait before giving up; None waits forever
            poll_interval: Sleep between non-blocking attempts
        """
        self.lock_path = Path(lock_path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._fd: Optional[int] = None

    @property
    def is_held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        """
        Take the exclusive lock.

        Raises:
            ConcurrencyError: If the lock file cannot be opened or the lock
                is not obtained within the timeout
        """
        if self._fd is not None:
            raise ConcurrencyError("Failed to acquire file lock: already held by this handle")

        try:
            fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            logger.error(f"Failed to open lock file {self.lock_path}: {e}")
            raise ConcurrencyError(f"Failed to acquire file lock: {e}") from e

        try:
            if self.timeout is None:
                fcntl.flock(fd, fcntl.LOCK_EX)
            else:
                self._acquire_with_timeout(fd)
        except BaseException:
            os.close(fd)
            raise

        self._fd = fd
        logger.debug(f"Acquired writer lock {self.lock_path}")

    def _acquire_with_timeout(self, fd: int) -> None:
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    logger.warning(f"Timed out after {self.timeout}s waiting for {self.lock_path}")
                    raise ConcurrencyError(
                        f"Failed to acquire file lock: timed out after {self.timeout} seconds"
                    )
                time.sleep(self.poll_interval)
            except OSError as e:
                raise ConcurrencyError(f"Failed to acquire file lock: {e}") from e

    def release(self) -> None:
        """Release the lock. Safe to call when not held."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug(f"Released writer lock {self.lock_path}")

    def __enter__(self) -> "DirectoryLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()


# Design Rationale and Trade-offs:
#
# 1. Why one lock for the whole directory?
#    - count-then-append must be atomic across the log and reviews.index
#    - Trade-off: Writers are fully serialized, readers are unaffected
#
# 2. Why poll LOCK_NB instead of a blocking flock?
#    - A bounded wait lets the API answer 503 instead of hanging
#    - Trade-off: Up to poll_interval of extra latency under contention
