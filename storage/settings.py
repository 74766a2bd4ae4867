"""Scan settings for IP Sweep.

Defaults come from ``config.constants``. A JSON settings file can override
them, and command-line flags override the file.
"""
import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from config import SCAN, STORAGE, get_logger
from config.exceptions import ConfigurationError
from sweep.address import Address, parse_address

logger = get_logger(__name__)


@dataclass
class ScanSettings:
    """Settings for one sweep, validated on construction.

    Addresses are kept as dotted-quad strings so the settings round-trip
    through JSON unchanged; ``start_address``/``end_address`` parse them.
    """
    max_workers: int = SCAN.MAX_WORKERS
    timeout: float = SCAN.PROBE_TIMEOUT_SECONDS
    wal_path: str = STORAGE.WAL_FILE
    cache_path: str = str(Path(STORAGE.CACHE_DIR) / STORAGE.CACHE_FILE)
    start: str = SCAN.START_ADDRESS
    end: str = SCAN.END_ADDRESS
    fsync: bool = STORAGE.WAL_FSYNC

    def __post_init__(self):
        self._validate_values()

    def _validate_values(self) -> None:
        """Check that values are usable.

        Raises:
            ConfigurationError: If any value is invalid.
        """
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
            raise ConfigurationError("max_workers must be an integer", {"value": self.max_workers})
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be positive", {"value": self.max_workers})
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ConfigurationError("timeout must be a number", {"value": self.timeout})
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be a positive number", {"value": self.timeout})
        if not self.wal_path:
            raise ConfigurationError("wal_path must not be empty")
        if not self.cache_path:
            raise ConfigurationError("cache_path must not be empty")

        # AddressError is a ConfigurationError
        start = parse_address(self.start)
        end = parse_address(self.end)
        if start > end:
            raise ConfigurationError(
                "start address is beyond end address", {"start": self.start, "end": self.end}
            )

    @property
    def start_address(self) -> Address:
        return parse_address(self.start)

    @property
    def end_address(self) -> Address:
        return parse_address(self.end)

    def to_dict(self) -> dict:
        return {
            "max_workers": self.max_workers,
            "timeout": self.timeout,
            "wal_path": self.wal_path,
            "cache_path": self.cache_path,
            "start": self.start,
            "end": self.end,
            "fsync": self.fsync,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanSettings':
        """Build settings from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")
        return cls(**{key: value for key, value in data.items() if key in known})

    def with_overrides(self, **overrides: Any) -> 'ScanSettings':
        """Copy with the non-None overrides applied (re-validated)."""
        data = self.to_dict()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return ScanSettings.from_dict(data)


class SettingsManager:
    """Loads and saves ScanSettings as JSON."""

    DEFAULT_SETTINGS_FILE = STORAGE.SETTINGS_FILE

    def __init__(self, settings_file: Optional[Path] = None):
        self.settings_file = Path(settings_file or self.DEFAULT_SETTINGS_FILE)

    def load(self, required: bool = False) -> ScanSettings:
        """Load settings from the file, falling back to defaults.

        Args:
            required: Raise if the file does not exist.

        Raises:
            ConfigurationError: If the file is unreadable, not JSON, or
                holds invalid values.
        """
        if not self.settings_file.exists():
            if required:
                raise ConfigurationError(
                    "Settings file not found", {"path": str(self.settings_file)}
                )
            logger.debug(f"No settings file at {self.settings_file}, using defaults")
            return ScanSettings()

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigurationError(
                f"Could not load settings: {e}", {"path": str(self.settings_file)}
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Settings file must hold a JSON object", {"path": str(self.settings_file)}
            )

        logger.info(f"Loaded settings from {self.settings_file}")
        return ScanSettings.from_dict(data)

    def save(self, settings: ScanSettings) -> None:
        """Write settings to the file (atomic replace)."""
        self.settings_file.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.settings_file.with_suffix('.tmp')
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(settings.to_dict(), f, indent=2)
        temp_file.replace(self.settings_file)
