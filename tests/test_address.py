"""Tests for sweep/address.py"""
from ipaddress import IPv4Address

import pytest

from config.exceptions import AddressError, ConfigurationError
from sweep.address import (
    MAX_ADDRESS,
    ZERO_ADDRESS,
    is_probeable,
    iter_range,
    parse_address,
    range_size,
    successor,
)


def addr(text: str) -> IPv4Address:
    return IPv4Address(text)


class TestParseAddress:
    """Tests for dotted-quad parsing."""

    def test_valid(self):
        assert parse_address("1.2.3.4") == addr("1.2.3.4")

    def test_strips_whitespace(self):
        assert parse_address(" 10.0.0.1\n") == addr("10.0.0.1")

    def test_passes_through_addresses(self):
        a = addr("8.8.8.8")
        assert parse_address(a) is a

    @pytest.mark.parametrize("text", ["", "1.2.3", "256.0.0.1", "a.b.c.d", "::1", "1.2.3.4/24"])
    def test_invalid(self, text):
        with pytest.raises(AddressError):
            parse_address(text)

    def test_address_error_is_configuration_error(self):
        """An unparseable bound is a startup configuration fault."""
        assert issubclass(AddressError, ConfigurationError)


class TestSuccessor:
    """Tests for scan order."""

    def test_lowest_octet(self):
        assert successor(addr("1.2.3.4")) == addr("1.2.3.5")

    def test_carry_one_octet(self):
        assert successor(addr("1.2.3.255")) == addr("1.2.4.0")

    def test_carry_several_octets(self):
        assert successor(addr("1.255.255.255")) == addr("2.0.0.0")

    def test_just_below_top(self):
        assert successor(addr("255.255.255.254")) == addr("255.255.255.255")

    def test_top_saturates(self):
        assert successor(MAX_ADDRESS) == MAX_ADDRESS

    @pytest.mark.parametrize("text", ["0.0.0.0", "9.8.7.6", "10.20.255.3", "200.255.255.1"])
    def test_changes_lowest_non_255_octet(self, text):
        """Only the lowest non-255 octet increments; lower octets wrap to 0."""
        before = addr(text).packed
        after = successor(addr(text)).packed
        lowest = max(i for i in range(4) if before[i] != 255)
        assert after[lowest] == before[lowest] + 1
        assert after[:lowest] == before[:lowest]
        assert all(octet == 0 for octet in after[lowest + 1:])


class TestIsProbeable:
    """Tests for the reserved-address filter."""

    def test_unspecified(self):
        assert is_probeable(ZERO_ADDRESS) is False

    def test_zero_first_octet(self):
        assert is_probeable(addr("0.5.5.5")) is False
        assert is_probeable(addr("0.255.255.255")) is False

    def test_first_usable(self):
        assert is_probeable(addr("1.0.0.0")) is True

    def test_ordinary(self):
        assert is_probeable(addr("192.168.1.1")) is True


class TestIterRange:
    """Tests for range iteration."""

    def test_exclusive_end(self):
        result = list(iter_range(addr("1.0.0.0"), addr("1.0.0.3")))
        assert result == [addr("1.0.0.0"), addr("1.0.0.1"), addr("1.0.0.2")]

    def test_crosses_octet_boundary(self):
        result = list(iter_range(addr("1.0.0.254"), addr("1.0.1.1")))
        assert [str(a) for a in result] == ["1.0.0.254", "1.0.0.255", "1.0.1.0"]

    def test_empty_when_start_equals_end(self):
        assert list(iter_range(addr("5.5.5.5"), addr("5.5.5.5"))) == []

    def test_stops_at_top_of_space(self):
        """A start beyond end terminates at saturation instead of looping."""
        result = list(iter_range(addr("255.255.255.253"), addr("1.0.0.0")))
        assert result == [addr("255.255.255.253"), addr("255.255.255.254"), MAX_ADDRESS]

    def test_range_size(self):
        assert range_size(addr("1.0.0.0"), addr("1.0.1.0")) == 256
        assert range_size(addr("1.0.0.5"), addr("1.0.0.5")) == 0
