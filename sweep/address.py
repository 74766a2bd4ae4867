"""IPv4 address ordering and filtering for the sweep.

Addresses are ``ipaddress.IPv4Address`` values: immutable, hashable and
totally ordered as unsigned 32-bit integers, which is the scan order.

Example:
    >>> from sweep.address import parse_address, successor
    >>> str(successor(parse_address("1.2.3.255")))
    '1.2.4.0'
"""
from ipaddress import AddressValueError, IPv4Address
from typing import Iterator

from config.exceptions import AddressError

# Type alias used throughout the engine and storage layers
Address = IPv4Address

ZERO_ADDRESS = IPv4Address(0)
MAX_ADDRESS = IPv4Address(0xFFFFFFFF)


def parse_address(text: str) -> Address:
    """Parse a dotted-quad string.

    Raises:
        AddressError: If the text is not a valid IPv4 address.
    """
    if isinstance(text, IPv4Address):
        return text
    try:
        return IPv4Address(str(text).strip())
    except AddressValueError as e:
        raise AddressError(f"Invalid IPv4 address: {text!r}", {"value": text}) from e


def successor(addr: Address) -> Address:
    """Next address in scan order, with carry across octets.

    255.255.255.255 has no successor and is returned unchanged.
    """
    if addr == MAX_ADDRESS:
        return addr
    return addr + 1


def is_probeable(addr: Address) -> bool:
    """False for the unspecified address and anything in 0.0.0.0/8."""
    return not addr.is_unspecified and addr.packed[0] != 0


def iter_range(start: Address, end: Address) -> Iterator[Address]:
    """Yield addresses from ``start`` up to, not including, ``end``.

    Termination is by equality with ``end``. Saturation at the top of the
    address space also ends the walk, so a ``start`` beyond ``end`` can
    never loop forever.
    """
    current = start
    while current != end:
        yield current
        nxt = successor(current)
        if nxt == current:
            return
        current = nxt


def range_size(start: Address, end: Address) -> int:
    """Number of addresses ``iter_range`` yields for ``start <= end``."""
    return max(0, int(end) - int(start))
