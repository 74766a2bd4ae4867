"""Test suite for IP Sweep."""
