#!/usr/bin/env python3
"""
IP Sweep - resumable ICMP sweep of the IPv4 address space.
Probes every address once, remembers progress in a write-ahead log and
picks up where it left off after an interruption.
"""
import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from config import STORAGE, get_logger, setup_logging
from config.exceptions import ConfigurationError, IPSweepError, ScannerError
from config.singleton import SingletonLock
from storage.result_cache import ResultCache
from storage.settings import ScanSettings, SettingsManager
from storage.wal import WriteAheadLog
from sweep.engine import ScanEngine, ScanSummary, UnitOutcome, UnitResult
from sweep.prober import PingProber, Prober
from sweep.utils import format_duration

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_STARTUP_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ipsweep",
        description="Resumable ICMP echo sweep of the IPv4 address space.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  ipsweep                                 # resume from wal.log, scan to 255.255.255.255
  ipsweep --start 10.0.0.0 --end 10.1.0.0 --max-workers 256
  ipsweep --config sweep.json --only-reachable
''',
    )
    parser.add_argument('--start', help='Lowest address to probe (default 0.0.0.0)')
    parser.add_argument('--end', help='Exclusive upper bound (default 255.255.255.255)')
    parser.add_argument('--max-workers', type=int, dest='max_workers',
                        help='Concurrent probes in flight (default 8192)')
    parser.add_argument('--timeout', type=float,
                        help='Per-probe timeout in seconds (default 1.0)')
    parser.add_argument('--wal', dest='wal_path', help='Write-ahead log path (default wal.log)')
    parser.add_argument('--cache', dest='cache_path',
                        help='Results file path (default cache/ping_results.txt)')
    parser.add_argument('--fsync', action='store_true', default=None,
                        help='fsync the WAL after every append')
    parser.add_argument('--config', type=Path,
                        help=f'JSON settings file (default ./{STORAGE.SETTINGS_FILE} if present)')
    parser.add_argument('--only-reachable', action='store_true',
                        help='Print only reachable addresses')
    parser.add_argument('--log-file', type=Path, help=f'Log file (default ./{STORAGE.LOG_FILE})')
    parser.add_argument('--no-log-file', action='store_true', help='Do not write a log file')
    parser.add_argument('--debug', action='store_true', help='Verbose logging to stderr')
    return parser


def load_settings(args: argparse.Namespace) -> ScanSettings:
    """Defaults, then the settings file, then command-line flags.

    Raises:
        ConfigurationError: If any layer holds an invalid value.
    """
    manager = SettingsManager(args.config)
    settings = manager.load(required=args.config is not None)
    return settings.with_overrides(
        start=args.start,
        end=args.end,
        max_workers=args.max_workers,
        timeout=args.timeout,
        wal_path=args.wal_path,
        cache_path=args.cache_path,
        fsync=args.fsync,
    )


def print_result(unit: UnitResult, only_reachable: bool = False) -> None:
    if unit.reachable:
        latency = f" ({unit.latency_ms:.3f}ms)" if unit.latency_ms else ""
        print(f"{unit.address} is reachable{latency}", flush=True)
    elif not only_reachable and unit.outcome is not UnitOutcome.WAL_FAILED:
        print(f"{unit.address} is not reachable", flush=True)


def print_summary(summary: ScanSummary) -> None:
    elapsed = format_duration(summary.elapsed_seconds)
    if summary.completed:
        print(f"Scan completed in {elapsed}")
    else:
        print(f"Scan interrupted after {elapsed}")
    print(
        f"  {summary.reachable} reachable, {summary.unreachable} unreachable, "
        f"{summary.skipped} skipped"
    )
    if summary.wal_failures or summary.cache_failures or summary.probe_errors:
        print(
            f"  {summary.wal_failures} WAL failures, {summary.cache_failures} cache failures, "
            f"{summary.probe_errors} probe errors"
        )
    if not summary.completed and summary.last_dispatched is not None:
        print(f"  Resume point: {summary.last_dispatched}")


def run_sweep(settings: ScanSettings, prober: Prober, only_reachable: bool = False) -> int:
    """Run one sweep with the given settings and return the exit code."""
    wal = WriteAheadLog(Path(settings.wal_path), fsync=settings.fsync)
    cache = ResultCache(Path(settings.cache_path))

    lock = SingletonLock.for_wal(wal.path)
    if not lock.acquire():
        pid = lock.get_running_pid()
        raise ScannerError(
            "Another sweep is using this WAL", {"wal": str(wal.path), "pid": pid}
        )

    engine = None
    stop_requested = threading.Event()

    def signal_handler(signum, frame):
        """Handle SIGTERM/SIGINT by draining in-flight probes."""
        logger.info(f"Received signal {signum}, stopping sweep...")
        stop_requested.set()
        if engine:
            engine.stop()

    previous_handlers = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGTERM, signal.SIGINT):
            previous_handlers[signum] = signal.signal(signum, signal_handler)

    try:
        # Storage must be usable before the first probe goes out
        wal.check_writable()
        cache.check_writable()

        engine = ScanEngine(
            wal,
            cache,
            prober,
            start=settings.start_address,
            end=settings.end_address,
            max_workers=settings.max_workers,
            timeout=settings.timeout,
            on_result=lambda unit: print_result(unit, only_reachable),
        )
        # A signal may arrive before the engine exists
        if stop_requested.is_set():
            engine.stop()
        summary = engine.run()
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)
        lock.release()

    print_summary(summary)
    return EXIT_OK if summary.completed else EXIT_INTERRUPTED


def main(argv: Optional[List[str]] = None, prober: Optional[Prober] = None) -> int:
    """Entry point for the command line."""
    args = build_parser().parse_args(argv)

    setup_logging(
        debug=args.debug,
        console_output=True,
        log_to_file=not args.no_log_file,
        log_file=args.log_file,
    )
    logger.info("IP Sweep starting...")

    try:
        settings = load_settings(args)
        return run_sweep(settings, prober or PingProber(), only_reachable=args.only_reachable)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        logger.error(f"Configuration error: {e}")
        return EXIT_STARTUP_FAILURE
    except IPSweepError as e:
        print(f"Startup failed: {e}", file=sys.stderr)
        logger.error(f"Startup failed: {e}")
        return EXIT_STARTUP_FAILURE


if __name__ == "__main__":
    sys.exit(main())
