"""Exception hierarchy for IP Sweep.

Two kinds of failure exist. Startup faults (bad settings, an unreadable
WAL, storage that cannot be written, a WAL owned by another sweep)
propagate to the entry point, which exits with status 1. Per-address
faults are caught inside the scan engine and only counted.

    IPSweepError
    ├── ConfigurationError
    │   └── AddressError
    ├── StorageError
    │   ├── WALError
    │   └── ResultCacheError
    ├── ScannerError
    └── SubprocessError
"""

from typing import Optional


class IPSweepError(Exception):
    """Base class for every error this package raises on purpose.

    Attributes:
        message: Human-readable error description.
        details: Extra context (paths, offending values) for logs.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} (details: {self.details})"


class ConfigurationError(IPSweepError):
    """A setting is unusable: non-positive worker count or timeout, a
    start bound beyond the end bound, or a settings file that does not
    parse.

    Examples:
        >>> raise ConfigurationError("max_workers must be positive", {"value": 0})
    """


class AddressError(ConfigurationError):
    """Text that is not a dotted-quad IPv4 address.

    Examples:
        >>> raise AddressError("Invalid IPv4 address", {"value": "1.2.3"})
    """


class StorageError(IPSweepError):
    """The WAL or the results file could not be opened, read or written."""


class WALError(StorageError):
    """Write-ahead log failure.

    A failed append skips that one address. A failed read at startup is
    fatal because the resume point cannot be trusted.
    """


class ResultCacheError(StorageError):
    """The results file is not writable at startup."""


class ScannerError(IPSweepError):
    """The engine was misused or the WAL is locked by another sweep.

    Examples:
        >>> raise ScannerError("Scan engine can only run once", {"state": "done"})
    """


class SubprocessError(IPSweepError):
    """A ``ping`` process could not be run to completion.

    Covers commands outside the allowlist, a missing binary, process
    spawn failures and timeouts. The prober turns all of these into an
    unreachable result.

    Attributes:
        command: The command that failed.
        returncode: Exit code if the process ran.
        stdout: Captured output, if any.
        stderr: Captured error output, if any.
    """

    def __init__(
        self,
        message: str,
        command: Optional[list] = None,
        returncode: Optional[int] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        details = dict(details or {})
        if command:
            details["command"] = command
        if returncode is not None:
            details["returncode"] = returncode
        # Keep log lines short
        if stdout:
            details["stdout"] = stdout[:500]
        if stderr:
            details["stderr"] = stderr[:500]

        super().__init__(message, details)
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
