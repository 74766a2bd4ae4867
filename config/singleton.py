"""Exclusive lock that keeps two sweeps off the same write-ahead log.

Uses file locking (fcntl) which is automatically released when the
process exits, even on crash.

Usage:
    from config.singleton import SingletonLock

    lock = SingletonLock.for_wal(Path("wal.log"))
    if not lock.acquire():
        print(f"Another sweep (PID {lock.get_running_pid()}) owns the WAL")
"""
import fcntl
import os
from pathlib import Path
from typing import Optional

from config.constants import STORAGE
from config.logging_config import get_logger

logger = get_logger(__name__)


class SingletonLock:
    """Ensures only one sweep appends to a given WAL at a time.

    Attributes:
        lock_file: Path of the lock file.

    Example:
        >>> lock = SingletonLock(Path("/tmp/wal.log.lock"))
        >>> if lock.acquire():
        ...     print("Running as the only sweep")
    """

    def __init__(self, lock_file: Path):
        self.lock_file = Path(lock_file)
        self._lock_fd = None

    @classmethod
    def for_wal(cls, wal_path: Path) -> 'SingletonLock':
        """Lock file living next to the WAL, e.g. ``wal.log.lock``."""
        wal_path = Path(wal_path)
        return cls(wal_path.with_name(wal_path.name + STORAGE.LOCK_SUFFIX))

    @property
    def _pid_file(self) -> Path:
        return self.lock_file.with_suffix('.pid')

    @property
    def is_held(self) -> bool:
        return self._lock_fd is not None

    def get_running_pid(self) -> Optional[int]:
        """Get the PID of the sweep holding the lock, if any."""
        if not self._pid_file.exists():
            return None
        try:
            pid_str = self._pid_file.read_text().strip()
            if pid_str:
                pid = int(pid_str)
                os.kill(pid, 0)  # Signal 0 = check if process exists
                return pid
        except (ValueError, OSError):
            pass
        return None

    def acquire(self) -> bool:
        """Try to acquire the lock without blocking.

        Returns:
            True if acquired, False if another sweep holds it.
        """
        if self._lock_fd is not None:
            return True
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            self._lock_fd = open(self.lock_file, 'w')
            fcntl.flock(self._lock_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            if self._lock_fd:
                self._lock_fd.close()
                self._lock_fd = None
            return False

        try:
            self._pid_file.write_text(str(os.getpid()))
        except OSError as e:
            logger.debug(f"Could not write pid file: {e}")  # Non-critical
        logger.debug(f"Sweep lock acquired: {self.lock_file}")
        return True

    def release(self) -> None:
        """Release the lock."""
        if self._lock_fd is None:
            return
        try:
            self._pid_file.unlink(missing_ok=True)
        except OSError:
            pass  # nosec B110 - Cleanup code, safe to ignore errors
        try:
            fcntl.flock(self._lock_fd.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_fd.close()
            self._lock_fd = None
        logger.debug("Sweep lock released")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
