"""Append-only audit trail of probe outcomes.

One line per completed probe attempt::

    1.0.0.1: true, 12.345ms
    1.0.0.2: false, 0s

Records are never deduplicated or compacted; a resumed sweep may add a
second line for an address it probed before the interruption.
"""
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from config import STORAGE, get_logger
from config.exceptions import AddressError, ResultCacheError
from sweep.address import Address, parse_address
from sweep.utils import format_latency

logger = get_logger(__name__)

_LINE_PATTERN = re.compile(
    r'^(?P<address>[\d.]+):\s*(?P<reachable>true|false),\s*(?P<latency>\S+)$'
)
_LATENCY_PATTERN = re.compile(r'^(?P<value>\d+(?:\.\d+)?)(?P<unit>ms|s)$')


@dataclass(frozen=True)
class CacheRecord:
    """One probe outcome as stored in the results file."""
    address: Address
    reachable: bool
    latency_ms: Optional[float] = None

    def to_line(self) -> str:
        reachable = "true" if self.reachable else "false"
        return f"{self.address}: {reachable}, {format_latency(self.latency_ms)}\n"

    @classmethod
    def from_line(cls, line: str) -> 'CacheRecord':
        """Parse one results line.

        Raises:
            ValueError: If the line is malformed.
        """
        match = _LINE_PATTERN.match(line.strip())
        if not match:
            raise ValueError(f"Malformed cache line: {line.strip()!r}")
        try:
            address = parse_address(match.group("address"))
        except AddressError as e:
            raise ValueError(e.message) from e

        latency = _LATENCY_PATTERN.match(match.group("latency"))
        if not latency:
            raise ValueError(f"Malformed latency: {match.group('latency')!r}")
        value = float(latency.group("value"))
        if latency.group("unit") == "s":
            value *= 1000
        return cls(
            address=address,
            reachable=match.group("reachable") == "true",
            latency_ms=value if value > 0 else None,
        )


class ResultCache:
    """Durable, append-only record of probe results.

    A failed write is logged and reported through the return value; it
    never raises, so one bad write cannot stop the sweep.
    """

    DEFAULT_PATH = Path(STORAGE.CACHE_DIR) / STORAGE.CACHE_FILE

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else self.DEFAULT_PATH
        self._lock = threading.Lock()

    def record(self, address: Address, reachable: bool,
               latency_ms: Optional[float] = None) -> bool:
        """Append the outcome of one probe.

        Returns:
            True if the line was written, False if the write failed.
        """
        line = CacheRecord(address, reachable, latency_ms).to_line()
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, 'a', encoding='utf-8') as f:
                    f.write(line)
            except OSError as e:
                logger.warning(f"Failed to write result for {address} to {self.path}: {e}")
                return False
        return True

    def check_writable(self) -> None:
        """Verify the results file can be opened for append.

        Raises:
            ResultCacheError: If the location is not writable.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8'):
                pass
        except OSError as e:
            raise ResultCacheError(
                f"Result cache is not writable: {e}", {"path": str(self.path)}
            ) from e

    def records(self) -> Iterator[CacheRecord]:
        """Iterate over stored records; malformed lines are skipped.

        Raises:
            ResultCacheError: If the results file exists but cannot be read.
        """
        try:
            # Undecodable bytes become U+FFFD and the line is skipped as malformed
            with open(self.path, 'r', encoding='utf-8', errors='replace') as f:
                for number, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        record = CacheRecord.from_line(line)
                    except ValueError as e:
                        logger.warning(f"{self.path}:{number}: {e}")
                        continue
                    yield record
        except FileNotFoundError:
            return
        except OSError as e:
            raise ResultCacheError(
                f"Failed to read result cache: {e}", {"path": str(self.path)}
            ) from e
