"""Pytest configuration and shared fixtures.

This module provides:
- Temporary locations for the WAL, results file and settings
- Stub probers that never touch the network
- Pytest markers for test categorization (unit, integration, slow)
"""
import logging
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from config.logging_config import ROOT_LOGGER_NAME
from storage.result_cache import ResultCache
from storage.wal import WriteAheadLog
from tests.mocks import StubProber


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: mark test as a unit test (fast, isolated)")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# =============================================================================
# Directory and Path Fixtures
# =============================================================================


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def wal_path(temp_data_dir: Path) -> Path:
    """Path for a temporary write-ahead log."""
    return temp_data_dir / "wal.log"


@pytest.fixture
def cache_path(temp_data_dir: Path) -> Path:
    """Path for a temporary results file, in a directory that does not exist yet."""
    return temp_data_dir / "cache" / "ping_results.txt"


@pytest.fixture
def temp_settings_path(temp_data_dir: Path) -> Path:
    """Path for a temporary settings file."""
    return temp_data_dir / "ipsweep.json"


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def wal(wal_path: Path) -> WriteAheadLog:
    return WriteAheadLog(wal_path)


@pytest.fixture
def cache(cache_path: Path) -> ResultCache:
    return ResultCache(cache_path)


# =============================================================================
# Prober Fixtures
# =============================================================================


@pytest.fixture
def stub_prober() -> StubProber:
    """Prober reporting addresses ending in .1 as reachable."""
    return StubProber(reachable_if=lambda address: address.packed[-1] == 1)


@pytest.fixture
def slow_prober() -> StubProber:
    """Prober that holds each probe briefly so workers overlap."""
    return StubProber(delay=0.02)


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop handlers a test installed so later tests never log to closed streams."""
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()
