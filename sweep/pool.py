"""Bounded worker pool with blocking slot acquisition.

``ThreadPoolExecutor`` queues without limit, so a ``BoundedSemaphore``
of ``max_workers`` slots sits in front of it. Submitting blocks while
every slot is taken. That blocking is the only backpressure the scan
engine has.

Usage:
    with WorkerPool(max_workers=4) as pool:
        for item in items:
            pool.submit(work, item)   # blocks while 4 units are running
        pool.drain()
"""
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from config import get_logger

logger = get_logger(__name__)


class WorkerPool:
    """Thread pool capped at ``max_workers`` concurrent units.

    Attributes:
        max_workers: Number of worker slots.
    """

    def __init__(self, max_workers: int, thread_name_prefix: str = "sweep-worker"):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._slots = threading.BoundedSemaphore(max_workers)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        """Units holding a slot right now."""
        with self._lock:
            return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of slots held at once."""
        with self._lock:
            return self._peak_in_flight

    def reserve(self, timeout: Optional[float] = None) -> bool:
        """Take a worker slot, blocking while the pool is saturated.

        Args:
            timeout: Seconds to wait. None waits indefinitely.

        Returns:
            True if a slot was taken, False on timeout.
        """
        if not self._slots.acquire(timeout=timeout):
            return False
        with self._lock:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        return True

    def release(self) -> None:
        """Give back a slot taken with ``reserve``."""
        with self._idle:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.notify_all()
        self._slots.release()

    def run_reserved(self, fn: Callable, *args) -> Future:
        """Run ``fn(*args)`` on a slot already taken with ``reserve``.

        The slot is released when the call finishes, whether it returned
        or raised.
        """
        def unit():
            try:
                return fn(*args)
            finally:
                self.release()

        try:
            return self._executor.submit(unit)
        except RuntimeError:
            # Executor already shut down
            self.release()
            raise

    def submit(self, fn: Callable, *args) -> Future:
        """Reserve a slot (blocking) and run ``fn(*args)`` on it."""
        self.reserve()
        return self.run_reserved(fn, *args)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait until no unit holds a slot.

        Returns:
            True once idle, False if the timeout expired first.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._in_flight == 0, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release the worker threads."""
        self._executor.shutdown(wait=wait)
        logger.debug(f"Worker pool shut down (peak in flight: {self._peak_in_flight})")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False
