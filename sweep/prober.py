"""Single-echo reachability probes.

The scan engine depends only on the ``Prober`` protocol. ``PingProber``
implements it with the system ``ping`` utility, which already holds the
raw-socket privilege ICMP needs.
"""
import math
import platform
import re
from dataclasses import dataclass
from typing import Optional, Protocol

from config import PROBE, get_logger
from config.exceptions import SubprocessError
from config.subprocess_runner import safe_run
from sweep.address import Address

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one echo request."""
    reachable: bool
    latency_ms: Optional[float] = None


UNREACHABLE = ProbeResult(reachable=False, latency_ms=None)


class Prober(Protocol):
    """Sends one echo request and never raises for network failures."""

    def probe(self, address: Address, timeout: float) -> ProbeResult:
        ...


# Round-trip time patterns across ping implementations
_LATENCY_PATTERNS = (
    re.compile(r'time[=<](\d+\.?\d*)\s*ms'),                  # "time=9.742 ms", "time<1 ms"
    re.compile(r'round-trip.*?=\s*[\d.]+/([\d.]+)/'),         # macOS summary line
    re.compile(r'rtt.*?=\s*[\d.]+/([\d.]+)/'),                # Linux summary line
    re.compile(r'Average\s*=\s*(\d+)\s*ms', re.IGNORECASE),   # Windows summary line
)


def parse_latency(output: str) -> Optional[float]:
    """Extract the round-trip time in milliseconds from ping output."""
    for pattern in _LATENCY_PATTERNS:
        match = pattern.search(output)
        if match:
            return float(match.group(1))
    return None


class PingProber:
    """Probes an address by running ``ping`` with a count of one.

    Attributes:
        system: Lower-cased ``platform.system()`` used to pick flags.
    """

    def __init__(self, system: Optional[str] = None):
        self.system = (system or platform.system()).lower()

    def build_command(self, address: Address, timeout: float) -> list:
        """Build the platform-specific ping command."""
        count = str(PROBE.PING_COUNT)
        if self.system == 'windows':
            return [PROBE.PING_COMMAND, '-n', count,
                    '-w', str(int(timeout * 1000)), str(address)]
        if self.system == 'darwin':
            # macOS -W is the wait time in milliseconds
            return [PROBE.PING_COMMAND, '-c', count,
                    '-W', str(int(timeout * 1000)), str(address)]
        # Linux/BSD iputils: whole seconds, at least one
        return [PROBE.PING_COMMAND, '-c', count,
                '-W', str(max(1, math.ceil(timeout))), str(address)]

    def probe(self, address: Address, timeout: float) -> ProbeResult:
        """Send one echo request to ``address``.

        Returns:
            ProbeResult with the parsed round-trip time, or an unreachable
            result for any failure.
        """
        cmd = self.build_command(address, timeout)
        try:
            result = safe_run(cmd, timeout=timeout + PROBE.SUBPROCESS_OVERHEAD_SECONDS)
        except SubprocessError as e:
            logger.debug(f"Probe of {address} failed: {e.message}")
            return UNREACHABLE

        if result.returncode != 0:
            return UNREACHABLE
        output = result.stdout or ""
        latency = parse_latency(output)
        if self.system == 'windows' and latency is None and 'TTL=' not in output.upper():
            # Windows exits 0 when a router answers "Destination host unreachable"
            return UNREACHABLE
        return ProbeResult(reachable=True, latency_ms=latency)
