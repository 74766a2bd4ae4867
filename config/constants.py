"""Centralized constants and configuration for IP Sweep.

Default values for the scan engine, on-disk storage and the ping prober
live here so the CLI, the settings loader and the tests agree on them.

Usage:
    from config.constants import SCAN, STORAGE, PROBE

    workers = SCAN.MAX_WORKERS
    wal_file = STORAGE.WAL_FILE
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class ScanConfig:
    """Scan engine defaults."""
    # Worker ceiling (concurrent probes in flight)
    MAX_WORKERS: int = 8 * 1024

    # Per-probe deadline in seconds
    PROBE_TIMEOUT_SECONDS: float = 1.0

    # Address range; the end bound is exclusive
    START_ADDRESS: str = "0.0.0.0"
    END_ADDRESS: str = "255.255.255.255"

    # How often a saturated iterator re-checks for cancellation
    SLOT_POLL_SECONDS: float = 0.1


@dataclass(frozen=True)
class StorageConfig:
    """Storage and file-related configuration."""
    # Resume state and results, relative to the working directory
    WAL_FILE: str = "wal.log"
    CACHE_DIR: str = "cache"
    CACHE_FILE: str = "ping_results.txt"
    SETTINGS_FILE: str = "ipsweep.json"
    LOG_FILE: str = "ipsweep.log"
    LOCK_SUFFIX: str = ".lock"

    # fsync after every WAL append (slow, survives power loss)
    WAL_FSYNC: bool = False

    # Tail read block size when locating the last WAL entry
    WAL_TAIL_BLOCK_BYTES: int = 4096

    # Log rotation
    LOG_MAX_BYTES: int = 5_000_000  # 5MB
    LOG_BACKUP_COUNT: int = 3


@dataclass(frozen=True)
class ProbeConfig:
    """Ping prober configuration."""
    PING_COMMAND: str = "ping"
    PING_COUNT: int = 1

    # Extra seconds granted to the ping process beyond its own deadline
    SUBPROCESS_OVERHEAD_SECONDS: float = 2.0


# Global instances - import these
SCAN = ScanConfig()
STORAGE = StorageConfig()
PROBE = ProbeConfig()


# Allowed commands for subprocess safety
ALLOWED_SUBPROCESS_COMMANDS = frozenset({
    'ping',
})
