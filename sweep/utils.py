"""Shared utility functions for the sweep.

Formatting helpers for console and log output, plus a psutil snapshot
of the process used to log resource usage around a scan.

Example:
    >>> from sweep.utils import format_latency
    >>> format_latency(12.3456)
    '12.346ms'
    >>> format_latency(None)
    '0s'
"""

from __future__ import annotations

from typing import Optional, Union

import psutil

# Type alias for numeric values
NumericValue = Union[int, float]


def format_bytes(bytes_value: NumericValue) -> str:
    """Format bytes to human-readable string.

    Examples:
        >>> format_bytes(0)
        '0 B'
        >>> format_bytes(1500000)
        '1.4 MB'
    """
    if bytes_value == 0:
        return "0 B"

    value = float(bytes_value)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(value) < 1024.0:
            return f"{value:.1f} {unit}"
        value /= 1024.0
    return f"{value:.1f} PB"


def format_duration(seconds: NumericValue) -> str:
    """Format seconds to human-readable duration string.

    Sub-minute durations keep millisecond precision since small test
    ranges finish in well under a second.

    Examples:
        >>> format_duration(0.25)
        '0.250s'
        >>> format_duration(150)
        '2m 30s'
        >>> format_duration(3665)
        '1h 1m'
    """
    if seconds < 60:
        return f"{seconds:.3f}s"

    seconds = int(seconds)
    if seconds < 3600:
        minutes = seconds // 60
        secs = seconds % 60
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    elif seconds < 86400:
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    else:
        days = seconds // 86400
        hours = (seconds % 86400) // 3600
        return f"{days}d {hours}h" if hours else f"{days}d"


def format_latency(latency_ms: Optional[float]) -> str:
    """Format a round-trip time for the results file.

    Absent latency is written as ``0s``.
    """
    if not latency_ms:
        return "0s"
    return f"{latency_ms:.3f}ms"


def process_snapshot() -> dict:
    """Threads, resident memory and open descriptors of this process."""
    proc = psutil.Process()
    with proc.oneshot():
        snapshot = {
            "threads": proc.num_threads(),
            "rss_bytes": proc.memory_info().rss,
        }
        try:
            snapshot["open_fds"] = proc.num_fds()
        except (AttributeError, psutil.Error):
            # num_fds is POSIX-only
            snapshot["open_fds"] = None
    return snapshot


def format_snapshot(snapshot: dict) -> str:
    fds = snapshot.get("open_fds")
    return (
        f"threads={snapshot['threads']}, rss={format_bytes(snapshot['rss_bytes'])}, "
        f"fds={fds if fds is not None else 'n/a'}"
    )


__all__ = [
    "NumericValue",
    "format_bytes",
    "format_duration",
    "format_latency",
    "process_snapshot",
    "format_snapshot",
]
