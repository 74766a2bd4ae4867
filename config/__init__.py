"""Configuration module for IP Sweep.

Provides centralized configuration, logging, exceptions, and utilities.
"""
from config.constants import (
    ALLOWED_SUBPROCESS_COMMANDS,
    PROBE,
    SCAN,
    STORAGE,
    ProbeConfig,
    ScanConfig,
    StorageConfig,
)
from config.exceptions import (
    AddressError,
    ConfigurationError,
    IPSweepError,
    ResultCacheError,
    ScannerError,
    StorageError,
    SubprocessError,
    WALError,
)
from config.logging_config import LogContext, get_logger, log_exception, setup_logging
from config.subprocess_runner import SubprocessRunner, get_subprocess_runner, safe_run

__all__ = [
    # Constants
    "SCAN",
    "STORAGE",
    "PROBE",
    "ScanConfig",
    "StorageConfig",
    "ProbeConfig",
    "ALLOWED_SUBPROCESS_COMMANDS",
    # Exceptions
    "IPSweepError",
    "ConfigurationError",
    "AddressError",
    "StorageError",
    "WALError",
    "ResultCacheError",
    "ScannerError",
    "SubprocessError",
    # Logging
    "setup_logging",
    "get_logger",
    "log_exception",
    "LogContext",
    # Subprocess
    "SubprocessRunner",
    "safe_run",
    "get_subprocess_runner",
]
