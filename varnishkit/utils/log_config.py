"""
Logging configuration for Varnishkit.

Provides configurable logging with:
- Log directory management
- Log rotation and retention
- Verbosity levels
- Plain or JSON file format
"""
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional


class LogLevel(str, Enum):
    """Log verbosity levels."""
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_string(cls, level: str) -> "LogLevel":
        """Parse log level from string (case-insensitive)."""
        level = level.upper()
        try:
            return cls(level)
        except ValueError:
            aliases = {
                "WARN": cls.WARNING,
                "ERR": cls.ERROR,
                "CRIT": cls.CRITICAL,
                "FATAL": cls.CRITICAL,
            }
            if level in aliases:
                return aliases[level]
            raise ValueError(f"Unknown log level: {level}") from None


@dataclass
class LogConfig:
    """
    Configuration for Varnishkit logging.

    Attributes:
        log_dir: Directory for log files (default: /var/log/varnishkit as root,
            ~/.varnishkit/logs otherwise)
        app_log_name: Main log filename
        console_level: Log level for console output
        file_level: Log level for file output
        rotation_size: Max size before rotation (e.g., "10 MB")
        retention: How long to keep old logs (e.g., "7 days")
        compression: Compress rotated files (zip, gz, or None)
        json_logs: Use JSON format for file logs
        use_emoji: Use emoji prefixes in messages
        console_enabled: Log to stderr even when not verbose
    """
    log_dir: str = ""
    app_log_name: str = "varnishkit.log"

    console_level: str = "INFO"
    file_level: str = "DEBUG"

    rotation_size: str = "10 MB"
    retention: str = "4 weeks"
    compression: Optional[str] = "gz"

    json_logs: bool = False
    use_emoji: bool = True
    console_enabled: bool = False

    _VALID_COMPRESSION: ClassVar[frozenset] = frozenset({"zip", "gz", None})

    def __post_init__(self):
        """Validate and set defaults."""
        if not self.log_dir:
            self.log_dir = str(default_log_dir())

        try:
            LogLevel.from_string(self.console_level)
        except ValueError as e:
            raise ValueError(f"Invalid console_level: {e}") from e

        try:
            LogLevel.from_string(self.file_level)
        except ValueError as e:
            raise ValueError(f"Invalid file_level: {e}") from e

        if self.compression not in self._VALID_COMPRESSION:
            raise ValueError(
                f"compression must be one of {set(self._VALID_COMPRESSION)}, "
                f"got: {self.compression!r}"
            )

        self._validate_size_format(self.rotation_size)

    def _validate_size_format(self, size_str: str) -> None:
        """Validate size format like '10 MB' or '100 KB'."""
        parts = size_str.strip().split()
        if len(parts) != 2:
            raise ValueError(f"Invalid size format: {size_str!r} (expected: '10 MB')")

        try:
            value = float(parts[0])
        except ValueError as e:
            raise ValueError(f"Invalid size value: {parts[0]!r}") from e
        if value <= 0:
            raise ValueError(f"Size must be positive: {size_str!r}")

        valid_units = {"B", "KB", "MB", "GB"}
        if parts[1].upper() not in valid_units:
            raise ValueError(f"Invalid size unit: {parts[1]!r} (valid: {valid_units})")

    @property
    def log_path(self) -> Path:
        """Get the full path to the main log file."""
        return Path(self.log_dir) / self.app_log_name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogConfig":
        """Create from dictionary, ignoring unknown keys."""
        known_fields = {
            "log_dir", "app_log_name", "console_level", "file_level",
            "rotation_size", "retention", "compression",
            "json_logs", "use_emoji", "console_enabled",
        }
        filtered = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered)


def default_log_dir() -> Path:
    """System log directory for root, per-user directory otherwise."""
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return Path("/var/log/varnishkit")
    return Path.home() / ".varnishkit" / "logs"


_BOOL_KEYS = ("json_logs", "use_emoji", "console_enabled")

ENV_MAPPINGS = {
    "VARNISHKIT_LOG_DIR": "log_dir",
    "VARNISHKIT_LOG_LEVEL": "console_level",
    "VARNISHKIT_LOG_FILE_LEVEL": "file_level",
    "VARNISHKIT_LOG_ROTATION_SIZE": "rotation_size",
    "VARNISHKIT_LOG_RETENTION": "retention",
    "VARNISHKIT_LOG_COMPRESSION": "compression",
    "VARNISHKIT_LOG_JSON": "json_logs",
    "VARNISHKIT_LOG_EMOJI": "use_emoji",
}


def load_log_config(overrides: Optional[Dict[str, Any]] = None) -> LogConfig:
    """
    Load logging configuration.

    Priority:
    1. Environment variables (VARNISHKIT_LOG_*)
    2. ``overrides`` (the ``logging`` section of the settings file)
    3. Defaults
    """
    config_data: Dict[str, Any] = dict(overrides or {})

    for env_var, config_key in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if config_key in _BOOL_KEYS:
            config_data[config_key] = value.lower() in ("1", "true", "yes", "on")
        elif config_key == "compression":
            config_data[config_key] = value if value.lower() not in ("none", "") else None
        else:
            config_data[config_key] = value

    return LogConfig.from_dict(config_data)
