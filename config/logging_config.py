"""Logging for IP Sweep.

Everything diagnostic goes to the ``ipsweep`` logger tree: a rotating log
file (DEBUG and up) and stderr (WARNING and up, DEBUG with ``--debug``).
Stdout is reserved for per-address result lines and the final summary.

Usage:
    from config.logging_config import setup_logging, get_logger

    setup_logging(debug=args.debug, log_file=args.log_file)
    logger = get_logger(__name__)   # -> "ipsweep.sweep.engine"
"""
import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from config.constants import STORAGE

ROOT_LOGGER_NAME = 'ipsweep'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',     # Cyan
    logging.INFO: '\033[32m',      # Green
    logging.WARNING: '\033[33m',   # Yellow
    logging.ERROR: '\033[31m',     # Red
    logging.CRITICAL: '\033[35m',  # Magenta
}
RESET = '\033[0m'

_children: Dict[str, logging.Logger] = {}


class SweepFormatter(logging.Formatter):
    """Console formatter that colours the level name on a terminal."""

    def __init__(self, colorize: bool = False):
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        self.colorize = colorize

    def format(self, record: logging.LogRecord) -> str:
        if not self.colorize:
            return super().format(record)
        # Records are shared with the file handler, so colour a copy
        tinted = logging.makeLogRecord(record.__dict__)
        color = LEVEL_COLORS.get(record.levelno, '')
        tinted.levelname = f"{color}{record.levelname}{RESET}"
        return super().format(tinted)


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=STORAGE.LOG_MAX_BYTES,
        backupCount=STORAGE.LOG_BACKUP_COUNT,
        encoding='utf-8',
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _console_handler(debug: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    handler.setFormatter(SweepFormatter(colorize=sys.stderr.isatty()))
    return handler


def setup_logging(
    data_dir: Optional[Path] = None,
    debug: bool = False,
    console_output: bool = True,
    log_to_file: bool = True,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure the ``ipsweep`` logger tree.

    Calling it again replaces the handlers from the previous call.

    Args:
        data_dir: Directory for the log file. Defaults to the working directory.
        debug: Log at DEBUG level and echo debug output to stderr.
        console_output: Attach a stderr handler.
        log_to_file: Attach a rotating file handler.
        log_file: Log file path; takes precedence over ``data_dir``.

    Returns:
        The ``ipsweep`` root logger.
    """
    if log_file is None:
        log_file = (data_dir or Path.cwd()) / STORAGE.LOG_FILE

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.propagate = False

    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)

    if log_to_file:
        root.addHandler(_file_handler(log_file))
    if console_output:
        root.addHandler(_console_handler(debug))
    if not root.handlers:
        root.addHandler(logging.NullHandler())

    root.info(
        f"Logging initialized - level={'DEBUG' if debug else 'INFO'}, "
        f"file={log_file if log_to_file else None}, console={console_output}"
    )
    return root


def get_logger(name: str) -> logging.Logger:
    """Child of the ``ipsweep`` logger named after the last two parts of ``name``."""
    short_name = '.'.join(name.split('.')[-2:])
    if short_name not in _children:
        _children[short_name] = logging.getLogger(f'{ROOT_LOGGER_NAME}.{short_name}')
    return _children[short_name]


def log_exception(logger: logging.Logger, message: str, exc: BaseException) -> None:
    """Log ``exc`` at ERROR with its traceback, prefixed by ``message``."""
    logger.error(
        f"{message}: {type(exc).__name__}: {exc}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )


def log_subprocess_call(
    logger: logging.Logger,
    command: list,
    returncode: int,
    duration_ms: float,
) -> None:
    """Log a finished subprocess with its exit code and run time.

    ``ping`` exits non-zero for every silent address, so only other
    commands are raised to WARNING when they fail.
    """
    level = logging.DEBUG
    if returncode != 0 and command and Path(command[0]).name != 'ping':
        level = logging.WARNING
    shown = ' '.join(str(part) for part in command[:3])
    if len(command) > 3:
        shown += '...'
    logger.log(level, f"Subprocess: {shown} -> rc={returncode}, {duration_ms:.1f}ms")


class LogContext:
    """Logs the start and duration of a block.

    Example:
        >>> with LogContext(logger, "Sweep 1.0.0.0 -> 1.0.1.0") as ctx:
        ...     scan()
        >>> ctx.duration_ms
        1234.5
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self) -> 'LogContext':
        self.start_time = time.monotonic()
        self.logger.log(self.level, f"{self.operation} starting...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = (time.monotonic() - self.start_time) * 1000
        if exc_type is not None:
            self.logger.error(f"{self.operation} failed after {self.duration_ms:.0f}ms: {exc_val}")
        else:
            self.logger.log(self.level, f"{self.operation} completed in {self.duration_ms:.0f}ms")
        return False
