"""
Tests for log configuration.

Tests the LogConfig class and environment overrides.
"""
from pathlib import Path

import pytest

from varnishkit.utils.log_config import LogConfig, LogLevel, default_log_dir, load_log_config


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_valid_levels(self):
        """Test valid log levels."""
        assert LogLevel.from_string("DEBUG") == LogLevel.DEBUG
        assert LogLevel.from_string("debug") == LogLevel.DEBUG
        assert LogLevel.from_string("TRACE") == LogLevel.TRACE
        assert LogLevel.from_string("WARNING") == LogLevel.WARNING

    def test_level_aliases(self):
        """Test log level aliases."""
        assert LogLevel.from_string("WARN") == LogLevel.WARNING
        assert LogLevel.from_string("ERR") == LogLevel.ERROR
        assert LogLevel.from_string("FATAL") == LogLevel.CRITICAL

    def test_invalid_level(self):
        """Test invalid log level raises error."""
        with pytest.raises(ValueError, match="Unknown log level"):
            LogLevel.from_string("INVALID")


class TestLogConfig:
    """Tests for LogConfig dataclass."""

    def test_default_values(self):
        """Test default configuration values."""
        config = LogConfig()

        assert config.app_log_name == "varnishkit.log"
        assert config.file_level == "DEBUG"
        assert config.console_level == "INFO"
        assert config.rotation_size == "10 MB"
        assert config.retention == "4 weeks"
        assert config.compression == "gz"
        assert config.json_logs is False
        assert config.console_enabled is False

    def test_default_log_dir(self):
        """Test default log directory is set."""
        assert LogConfig().log_dir == str(default_log_dir())

    def test_log_path_property(self):
        """Test log_path property."""
        config = LogConfig(log_dir="/tmp/logs", app_log_name="test.log")
        assert config.log_path == Path("/tmp/logs/test.log")

    def test_invalid_console_level(self):
        with pytest.raises(ValueError, match="Invalid console_level"):
            LogConfig(console_level="INVALID")

    def test_invalid_compression(self):
        with pytest.raises(ValueError, match="compression must be one of"):
            LogConfig(compression="bz2")

    @pytest.mark.parametrize("size", ["10MB", "abc MB", "10 XB"])
    def test_invalid_rotation_size(self, size):
        with pytest.raises(ValueError, match="size"):
            LogConfig(rotation_size=size)

    def test_from_dict_ignores_unknown_fields(self):
        config = LogConfig.from_dict({"log_dir": "/custom/logs", "unknown_field": "value"})
        assert config.log_dir == "/custom/logs"
        assert not hasattr(config, "unknown_field")


class TestLoadLogConfig:
    """Tests for load_log_config."""

    def test_overrides_from_settings_file(self):
        config = load_log_config({"json_logs": True, "retention": "7 days"})

        assert config.json_logs is True
        assert config.retention == "7 days"

    def test_environment_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VARNISHKIT_LOG_DIR", str(tmp_path))
        monkeypatch.setenv("VARNISHKIT_LOG_LEVEL", "warning")
        monkeypatch.setenv("VARNISHKIT_LOG_JSON", "yes")
        monkeypatch.setenv("VARNISHKIT_LOG_COMPRESSION", "none")

        config = load_log_config({"log_dir": "/elsewhere", "json_logs": False})

        assert config.log_dir == str(tmp_path)
        assert config.console_level == "warning"
        assert config.json_logs is True
        assert config.compression is None
