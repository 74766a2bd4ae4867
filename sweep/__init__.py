"""IPv4 sweep components.

Modules:
    address: Scan order (successor) and the probeable-address filter
    prober: Single-echo reachability probes
    pool: Bounded worker pool
    engine: Resumable scan engine
    utils: Formatting and process resource helpers

Example:
    >>> from sweep import ScanEngine, PingProber, parse_address
    >>> from storage import WriteAheadLog, ResultCache
    >>> engine = ScanEngine(WriteAheadLog(), ResultCache(), PingProber(),
    ...                     start=parse_address("1.0.0.0"),
    ...                     end=parse_address("1.0.1.0"), max_workers=64)
    >>> summary = engine.run()
"""
from .address import (
    MAX_ADDRESS,
    ZERO_ADDRESS,
    Address,
    is_probeable,
    iter_range,
    parse_address,
    successor,
)
from .engine import ScanEngine, ScanState, ScanSummary, UnitOutcome, UnitResult
from .pool import WorkerPool
from .prober import PingProber, Prober, ProbeResult

__all__ = [
    # Addresses
    "Address",
    "ZERO_ADDRESS",
    "MAX_ADDRESS",
    "parse_address",
    "successor",
    "is_probeable",
    "iter_range",
    # Probing
    "Prober",
    "ProbeResult",
    "PingProber",
    # Engine
    "WorkerPool",
    "ScanEngine",
    "ScanState",
    "ScanSummary",
    "UnitOutcome",
    "UnitResult",
]
