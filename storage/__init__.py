"""Data persistence components."""

from .result_cache import CacheRecord, ResultCache
from .settings import ScanSettings, SettingsManager
from .wal import WriteAheadLog

__all__ = [
    "CacheRecord",
    "ResultCache",
    "ScanSettings",
    "SettingsManager",
    "WriteAheadLog",
]
