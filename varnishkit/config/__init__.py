"""
Varnishkit Config - Configuration management.
"""

from varnishkit.config.loader import env_overrides, load_settings, read_settings_file
from varnishkit.config.models import EngineSettings, Settings, VarnishSettings

__all__ = [
    "EngineSettings",
    "Settings",
    "VarnishSettings",
    "env_overrides",
    "load_settings",
    "read_settings_file",
]
