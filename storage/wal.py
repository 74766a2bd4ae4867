"""Write-ahead log of addresses about to be probed.

Each line is one dotted-quad address, appended *before* the probe is
sent. The last complete line is where an interrupted sweep resumes. The
log only promises "we intended to probe X", not that X was probed, so a
resumed sweep probes X again (at-least-once).
"""
import os
import threading
from pathlib import Path
from typing import Iterator, Optional

from config import STORAGE, get_logger
from config.exceptions import AddressError, WALError
from sweep.address import ZERO_ADDRESS, Address, parse_address

logger = get_logger(__name__)


class WriteAheadLog:
    """Append-only log of dispatched addresses.

    Appends from many workers are serialized by a per-file lock so lines
    never interleave. The file is opened and closed per append; nothing
    holds a handle between writes.

    Attributes:
        path: Location of the log file.
        fsync: Force each append to stable storage before returning.
    """

    DEFAULT_PATH = Path(STORAGE.WAL_FILE)

    def __init__(self, path: Optional[Path] = None, fsync: bool = STORAGE.WAL_FSYNC):
        self.path = Path(path) if path is not None else self.DEFAULT_PATH
        self.fsync = fsync
        self._lock = threading.Lock()

    def append(self, address: Address) -> None:
        """Record that ``address`` is about to be probed.

        Raises:
            WALError: If the line could not be written.
        """
        line = f"{address}\n"
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, 'a', encoding='utf-8') as f:
                    f.write(line)
                    f.flush()
                    if self.fsync:
                        os.fsync(f.fileno())
            except OSError as e:
                raise WALError(
                    f"Failed to append to WAL: {e}",
                    {"path": str(self.path), "address": str(address)},
                ) from e

    def check_writable(self) -> None:
        """Verify the log can be opened for append, creating it if absent.

        Raises:
            WALError: If the location is not writable.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8'):
                pass
        except OSError as e:
            raise WALError(f"WAL is not writable: {e}", {"path": str(self.path)}) from e

    def read_resume_point(self) -> Address:
        """Return the last address written, or 0.0.0.0 if there is none.

        A final line without a newline is a write torn by a crash; it is
        ignored in favour of the line before it.

        Raises:
            WALError: If the log exists but cannot be read, or its last
                complete line is not an address.
        """
        try:
            last_line = self._read_last_line()
        except FileNotFoundError:
            logger.info(f"No WAL at {self.path}, starting from the beginning")
            return ZERO_ADDRESS
        except OSError as e:
            raise WALError(f"Failed to read WAL: {e}", {"path": str(self.path)}) from e

        if last_line is None:
            logger.info(f"WAL at {self.path} is empty, starting from the beginning")
            return ZERO_ADDRESS

        try:
            address = parse_address(last_line)
        except AddressError as e:
            raise WALError(
                "Last WAL entry is not an IPv4 address",
                {"path": str(self.path), "line": last_line[:64]},
            ) from e
        logger.info(f"Resume point from WAL: {address}")
        return address

    def _read_last_line(self) -> Optional[str]:
        """Read backwards from the end of the file to the last complete line."""
        block_size = STORAGE.WAL_TAIL_BLOCK_BYTES
        with open(self.path, 'rb') as f:
            f.seek(0, os.SEEK_END)
            position = f.tell()
            tail = b""
            torn = None
            while position > 0:
                step = min(block_size, position)
                position -= step
                f.seek(position)
                tail = f.read(step) + tail
                if torn is None:
                    torn = not tail.endswith(b"\n")

                end = tail.rfind(b"\n")
                if end == -1:
                    continue
                lines = tail[:end].split(b"\n")
                if position > 0:
                    # The first piece may be the tail of a line starting earlier
                    lines = lines[1:]
                for line in reversed(lines):
                    if line.strip():
                        if torn:
                            logger.warning(
                                f"Ignoring torn trailing WAL line: {tail[end + 1:][:64]!r}"
                            )
                        return line.decode('utf-8', errors='replace').strip()
        return None

    def entries(self) -> Iterator[Address]:
        """Iterate over every complete entry, oldest first.

        Raises:
            WALError: If the log cannot be read or holds a bad line.
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                for line in f:
                    if not line.endswith('\n'):
                        break
                    text = line.strip()
                    if text:
                        yield parse_address(text)
        except FileNotFoundError:
            return
        except OSError as e:
            raise WALError(f"Failed to read WAL: {e}", {"path": str(self.path)}) from e
        except UnicodeDecodeError as e:
            raise WALError(f"WAL is not valid UTF-8: {e}", {"path": str(self.path)}) from e
        except AddressError as e:
            raise WALError(f"Corrupt WAL entry: {e.message}", {"path": str(self.path)}) from e
