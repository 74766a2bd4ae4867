"""Resumable, bounded-concurrency scan engine.

The engine walks the address range in order on one coordinating thread.
For every probeable address it:

1. takes a worker slot (blocking while all slots are busy),
2. appends the address to the write-ahead log,
3. hands the probe and the result write to the worker pool.

The slot is held from the WAL append until the result is recorded. WAL
appends happen on the coordinating thread, so the log order matches
dispatch order and its last line is the furthest address dispatched.
Per-address faults are counted in the summary and never stop the scan.
"""
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from config import SCAN, LogContext, get_logger, log_exception
from config.exceptions import ConfigurationError, ScannerError, WALError
from sweep.address import (
    MAX_ADDRESS,
    ZERO_ADDRESS,
    Address,
    is_probeable,
    iter_range,
    range_size,
)
from sweep.pool import WorkerPool
from sweep.prober import Prober, ProbeResult
from sweep.utils import format_duration, format_snapshot, process_snapshot

if TYPE_CHECKING:
    from storage.result_cache import ResultCache
    from storage.wal import WriteAheadLog

logger = get_logger(__name__)


class ScanState(Enum):
    """Lifecycle of a ScanEngine."""
    IDLE = "idle"
    RESUMING = "resuming"
    SCANNING = "scanning"
    DRAINING = "draining"
    DONE = "done"


class UnitOutcome(Enum):
    """What happened to one dispatched address."""
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"
    WAL_FAILED = "wal_failed"
    PROBE_ERROR = "probe_error"


@dataclass(frozen=True)
class UnitResult:
    """Result of one probe-and-record unit."""
    address: Address
    outcome: UnitOutcome
    latency_ms: Optional[float] = None
    cached: bool = False
    error: Optional[str] = None

    @property
    def reachable(self) -> bool:
        return self.outcome is UnitOutcome.REACHABLE


@dataclass
class ScanSummary:
    """Aggregate counts for one run of the engine."""
    start: Address = ZERO_ADDRESS
    end: Address = MAX_ADDRESS
    resume_point: Address = ZERO_ADDRESS
    last_dispatched: Optional[Address] = None
    dispatched: int = 0
    reachable: int = 0
    unreachable: int = 0
    skipped: int = 0
    wal_failures: int = 0
    cache_failures: int = 0
    probe_errors: int = 0
    peak_in_flight: int = 0
    elapsed_seconds: float = 0.0
    completed: bool = False
    state: ScanState = ScanState.IDLE
    resources: dict = field(default_factory=dict)

    @property
    def probed(self) -> int:
        """Units that produced a probe result (including probe errors)."""
        return self.reachable + self.unreachable

    def to_dict(self) -> dict:
        return {
            "start": str(self.start),
            "end": str(self.end),
            "resume_point": str(self.resume_point),
            "last_dispatched": str(self.last_dispatched) if self.last_dispatched else None,
            "dispatched": self.dispatched,
            "reachable": self.reachable,
            "unreachable": self.unreachable,
            "skipped": self.skipped,
            "wal_failures": self.wal_failures,
            "cache_failures": self.cache_failures,
            "probe_errors": self.probe_errors,
            "peak_in_flight": self.peak_in_flight,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "completed": self.completed,
            "state": self.state.value,
        }


class ScanEngine:
    """Sweeps ``[start, end)`` with at most ``max_workers`` probes in flight.

    The WAL, result cache and prober are passed in; the engine owns no
    file handles of its own.

    Example:
        >>> engine = ScanEngine(WriteAheadLog(), ResultCache(), PingProber(),
        ...                     end=parse_address("1.0.1.0"), max_workers=64)
        >>> summary = engine.run()
    """

    def __init__(
        self,
        wal: 'WriteAheadLog',
        cache: 'ResultCache',
        prober: Prober,
        end: Address = MAX_ADDRESS,
        start: Address = ZERO_ADDRESS,
        max_workers: int = SCAN.MAX_WORKERS,
        timeout: float = SCAN.PROBE_TIMEOUT_SECONDS,
        on_result: Optional[Callable[[UnitResult], None]] = None,
    ):
        if max_workers < 1:
            raise ConfigurationError("max_workers must be positive", {"value": max_workers})
        if timeout <= 0:
            raise ConfigurationError("timeout must be positive", {"value": timeout})
        if start > end:
            raise ConfigurationError(
                "start address is beyond end address", {"start": str(start), "end": str(end)}
            )

        self.wal = wal
        self.cache = cache
        self.prober = prober
        self.start = start
        self.end = end
        self.max_workers = max_workers
        self.timeout = timeout
        self.on_result = on_result

        self._state = ScanState.IDLE
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._summary = ScanSummary(start=start, end=end)

    @property
    def state(self) -> ScanState:
        with self._lock:
            return self._state

    def _set_state(self, state: ScanState) -> None:
        with self._lock:
            logger.debug(f"Engine state {self._state.value} -> {state.value}")
            self._state = state
            self._summary.state = state

    def stop(self) -> None:
        """Stop dispatching new probes; in-flight probes still finish."""
        if not self._stop_event.is_set():
            logger.info("Stop requested, draining in-flight probes")
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> ScanSummary:
        """Resume from the WAL and scan up to the end address.

        Returns:
            The summary, with ``completed`` False if stopped early.

        Raises:
            ScannerError: If the engine has already run.
            WALError: If the resume point cannot be read.
        """
        with self._lock:
            if self._state is not ScanState.IDLE:
                raise ScannerError("Scan engine can only run once", {"state": self._state.value})
        started = time.monotonic()

        self._set_state(ScanState.RESUMING)
        try:
            resume_point = self.wal.read_resume_point()
        except WALError:
            self._set_state(ScanState.DONE)
            raise
        begin = max(resume_point, self.start)
        self._summary.resume_point = resume_point
        self._summary.start = begin

        if begin >= self.end:
            logger.info(f"Nothing to scan: resume point {begin} is at or beyond {self.end}")
            self._summary.completed = True
            self._set_state(ScanState.DONE)
            self._summary.elapsed_seconds = time.monotonic() - started
            return self._summary

        logger.info(
            f"Scanning {begin} -> {self.end} ({range_size(begin, self.end)} addresses, "
            f"{self.max_workers} workers, timeout {self.timeout}s)"
        )
        logger.debug(f"Resources at start: {format_snapshot(process_snapshot())}")

        with LogContext(logger, f"Sweep {begin} -> {self.end}"):
            with WorkerPool(self.max_workers) as pool:
                self._set_state(ScanState.SCANNING)
                completed = self._scan(pool, begin)

                self._set_state(ScanState.DRAINING)
                pool.drain()
                self._summary.peak_in_flight = pool.peak_in_flight

        self._summary.resources = process_snapshot()
        self._summary.completed = completed
        self._summary.elapsed_seconds = time.monotonic() - started
        self._set_state(ScanState.DONE)

        logger.info(
            f"Sweep {'completed' if completed else 'interrupted'} in "
            f"{format_duration(self._summary.elapsed_seconds)}: "
            f"{self._summary.reachable} reachable, {self._summary.unreachable} unreachable, "
            f"{self._summary.skipped} skipped, {self._summary.wal_failures} WAL failures, "
            f"{self._summary.cache_failures} cache failures"
        )
        logger.debug(f"Resources at end: {format_snapshot(self._summary.resources)}")
        return self._summary

    def _scan(self, pool: WorkerPool, begin: Address) -> bool:
        """Dispatch every address in range. Returns False if stopped early."""
        for address in iter_range(begin, self.end):
            if self._stop_event.is_set():
                return False

            if not is_probeable(address):
                self._summary.skipped += 1
                continue

            if not self._reserve_slot(pool):
                return False

            try:
                self.wal.append(address)
            except WALError as e:
                pool.release()
                logger.warning(f"Skipping {address}: {e.message}")
                self._finish_unit(UnitResult(address, UnitOutcome.WAL_FAILED, error=e.message))
                continue

            with self._lock:
                self._summary.dispatched += 1
                self._summary.last_dispatched = address
            pool.run_reserved(self._probe_and_record, address)

        return True

    def _reserve_slot(self, pool: WorkerPool) -> bool:
        """Block for a worker slot, giving up if a stop is requested."""
        while not pool.reserve(timeout=SCAN.SLOT_POLL_SECONDS):
            if self._stop_event.is_set():
                return False
        if self._stop_event.is_set():
            pool.release()
            return False
        return True

    def _probe_and_record(self, address: Address) -> UnitResult:
        """Worker unit: probe, record the outcome, report it."""
        try:
            result = self.prober.probe(address, self.timeout)
            outcome = UnitOutcome.REACHABLE if result.reachable else UnitOutcome.UNREACHABLE
            error = None
        except Exception as e:
            # Probers should not raise; treat it as an unreachable host
            log_exception(logger, f"Prober raised for {address}", e)
            result = ProbeResult(reachable=False)
            outcome = UnitOutcome.PROBE_ERROR
            error = f"{type(e).__name__}: {e}"

        cached = self.cache.record(address, result.reachable, result.latency_ms)
        unit = UnitResult(address, outcome, result.latency_ms, cached=cached, error=error)
        self._finish_unit(unit)
        return unit

    def _finish_unit(self, unit: UnitResult) -> None:
        with self._lock:
            summary = self._summary
            if unit.outcome is UnitOutcome.WAL_FAILED:
                summary.wal_failures += 1
            else:
                if unit.outcome is UnitOutcome.REACHABLE:
                    summary.reachable += 1
                else:
                    summary.unreachable += 1
                if unit.outcome is UnitOutcome.PROBE_ERROR:
                    summary.probe_errors += 1
                if not unit.cached:
                    summary.cache_failures += 1

        if self.on_result is not None:
            try:
                self.on_result(unit)
            except Exception as e:
                logger.warning(f"Result callback failed for {unit.address}: {e}")
