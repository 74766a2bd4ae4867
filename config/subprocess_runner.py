"""Subprocess execution with safety checks and timing.

Security Note:
    The prober shells out to the system ``ping`` utility. Every command is
    validated against ALLOWED_SUBPROCESS_COMMANDS and shell=False is always
    used to prevent shell injection.

Usage:
    from config.subprocess_runner import safe_run

    result = safe_run(['ping', '-c', '1', '1.1.1.1'], timeout=3.0)
"""

# nosec B404 - subprocess usage is required and validated via allowlist
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional

from config.constants import ALLOWED_SUBPROCESS_COMMANDS
from config.exceptions import SubprocessError
from config.logging_config import get_logger, log_subprocess_call

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class SubprocessRunner:
    """Runs subprocesses and keeps thread-safe call statistics.

    Thousands of probe workers share one runner, so the counters are
    guarded by a lock.

    Example:
        >>> runner = SubprocessRunner()
        >>> result = runner.run(['ping', '-c', '1', '127.0.0.1'], timeout=3)
        >>> runner.get_stats()["runs"]
        1
    """

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.default_timeout = default_timeout
        self._lock = threading.Lock()
        self._stats = {
            "runs": 0,
            "timeouts": 0,
            "errors": 0,
        }

    def _count(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1

    def run(
        self,
        cmd: List[str],
        timeout: Optional[float] = None,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        """Run a subprocess command.

        Args:
            cmd: Command and arguments as list.
            timeout: Command timeout in seconds.
            **kwargs: Additional arguments passed to subprocess.run().

        Returns:
            subprocess.CompletedProcess with command output.

        Raises:
            SubprocessError: If command cannot be started or times out.
        """
        timeout = timeout or self.default_timeout
        self._count("runs")
        start_time = time.monotonic()

        try:
            kwargs.setdefault("capture_output", True)
            kwargs.setdefault("text", True)
            kwargs["timeout"] = timeout

            result = subprocess.run(cmd, **kwargs)  # nosec B603 - Commands validated via allowlist
            duration_ms = (time.monotonic() - start_time) * 1000

            log_subprocess_call(logger, cmd, result.returncode, duration_ms)
            return result

        except subprocess.TimeoutExpired as e:
            self._count("timeouts")
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.debug(f"Command timed out after {duration_ms:.0f}ms: {cmd}")
            raise SubprocessError(
                f"Command timed out after {timeout}s", command=cmd, details={"timeout": timeout}
            ) from e

        except FileNotFoundError as e:
            self._count("errors")
            logger.error(f"Command not found: {cmd[0]}")
            raise SubprocessError(f"Command not found: {cmd[0]}", command=cmd) from e

        except OSError as e:
            # EAGAIN/EMFILE when too many workers spawn at once
            self._count("errors")
            logger.warning(f"Subprocess error for {cmd}: {e}")
            raise SubprocessError(f"Subprocess error: {e}", command=cmd) from e

    def get_stats(self) -> dict:
        """Get call statistics."""
        with self._lock:
            return dict(self._stats)


# Global runner instance
_global_runner: Optional[SubprocessRunner] = None
_global_lock = threading.Lock()


def get_subprocess_runner() -> SubprocessRunner:
    """Get or create the global subprocess runner."""
    global _global_runner
    with _global_lock:
        if _global_runner is None:
            _global_runner = SubprocessRunner()
        return _global_runner


def safe_run(
    cmd: List[str], timeout: Optional[float] = None, check_allowed: bool = True, **kwargs
) -> subprocess.CompletedProcess:
    """Run a subprocess command with safety checks.

    Args:
        cmd: Command and arguments as list.
        timeout: Command timeout in seconds.
        check_allowed: If True, validate command is in allowlist.
        **kwargs: Additional arguments passed to subprocess.run().

    Returns:
        subprocess.CompletedProcess with command output.

    Raises:
        SubprocessError: If command is not allowed, fails to start, or times out.
    """
    if not cmd:
        raise SubprocessError("Empty command", command=cmd)

    base_cmd = cmd[0]
    if "/" in base_cmd or "\\" in base_cmd:
        base_cmd = Path(base_cmd).name

    if check_allowed and base_cmd not in ALLOWED_SUBPROCESS_COMMANDS:
        raise SubprocessError(
            f"Command not in allowlist: {base_cmd}",
            command=cmd,
            details={"allowed": sorted(ALLOWED_SUBPROCESS_COMMANDS)},
        )

    return get_subprocess_runner().run(cmd, timeout=timeout, **kwargs)
