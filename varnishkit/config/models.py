"""
Varnishkit Config - Configuration models.

Pydantic models for type-safe configuration.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from varnishkit.config.constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_NETWORK_TRIES,
    DEFAULT_TRY_SLEEP,
    MAX_COMMAND_TIMEOUT,
)

_SIZE = r"\d+(?:\.\d+)?\s*(?:[kmgt]b?|b|%)?"
_MALLOC_RE = re.compile(rf"^malloc(?:,{_SIZE})?$", re.IGNORECASE)
_FILE_RE = re.compile(rf"^file,/[^,]+(?:,{_SIZE}(?:,{_SIZE})?)?$", re.IGNORECASE)
_INSTANCE_RE = re.compile(r"^[A-Za-z0-9_.\-/]+$")


class VarnishSettings(BaseModel):
    """Desired state of the Varnish installation."""

    model_config = ConfigDict(extra="forbid")

    start_service: bool = Field(default=True, description="Run the varnish daemon")
    start_ncsa: bool = Field(default=False, description="Run the varnishncsa access logger")
    start_log: bool = Field(default=False, description="Run the varnishlog debug logger")

    version: str = Field(default="present", description="present, latest or a package version")
    instance_name: str | None = Field(default=None, description="Instance name (-n)")

    vcl_conf: str = Field(default="/etc/varnish/default.vcl", description="VCL file path")
    vcl_source: str | None = Field(
        default=None, description="Local path or http(s) URL the VCL file is copied from"
    )
    secret_file: str = Field(default="/etc/varnish/secret", description="Admin secret file")
    secret: str = Field(default="auto", description="'' for none, 'auto' to generate, or a literal")
    ncsa_log_file: str = Field(
        default="/var/log/varnish/varnishncsa.log", description="varnishncsa output file"
    )

    listen_address: str = Field(default="", description="Listen address, empty for all")
    listen_port: int = Field(default=6081, ge=1, le=65535)
    admin_listen_address: str = Field(default="localhost")
    admin_listen_port: int = Field(default=6082, ge=1, le=65535)

    min_threads: int = Field(default=50, ge=1)
    max_threads: int = Field(default=1000, ge=1)
    thread_timeout: int = Field(default=120, ge=1)

    nfiles: int = Field(default=131072, ge=1, description="Open files limit (ulimit -n)")
    memlock: int = Field(default=82000, ge=1, description="Locked memory limit in KB (ulimit -l)")

    storage: str = Field(default="malloc,256m", description="Storage backend specification")
    ttl: int = Field(default=120, ge=0, description="Default TTL in seconds")

    add_repo: bool = Field(default=True, description="Register the upstream APT repository")
    repo_url: str = Field(default="https://packagecloud.io/varnishcache/varnish60lts/debian/")
    repo_release: str = Field(default="bookworm", description="Distribution codename")
    repo_component: str = Field(default="main")
    repo_key_url: str = Field(default="https://packagecloud.io/varnishcache/varnish60lts/gpgkey")
    repo_keyring: str = Field(default="/usr/share/keyrings/varnishcache-archive-keyring.gpg")

    @field_validator("storage")
    @classmethod
    def _check_storage(cls, value: str) -> str:
        value = value.strip()
        if not (_MALLOC_RE.match(value) or _FILE_RE.match(value)):
            raise ValueError(
                f"invalid storage spec {value!r} (expected 'malloc,<size>' or 'file,<path>,<size>')"
            )
        return value

    @field_validator("instance_name")
    @classmethod
    def _check_instance(cls, value: str | None) -> str | None:
        if value is not None and not _INSTANCE_RE.match(value):
            raise ValueError(f"invalid instance name {value!r}")
        return value or None

    @field_validator("vcl_conf", "secret_file", "ncsa_log_file", "repo_keyring")
    @classmethod
    def _check_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"path must be absolute: {value!r}")
        return value

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        value = value.strip()
        if not value or value == "absent":
            raise ValueError("version must be 'present', 'latest' or a package version")
        return value

    @model_validator(mode="after")
    def _check_threads(self) -> VarnishSettings:
        if self.min_threads > self.max_threads:
            raise ValueError(
                f"min_threads ({self.min_threads}) must not exceed max_threads ({self.max_threads})"
            )
        return self


class EngineSettings(BaseModel):
    """Convergence engine behaviour."""

    model_config = ConfigDict(extra="forbid")

    command_timeout: int = Field(
        default=DEFAULT_COMMAND_TIMEOUT, ge=1, le=MAX_COMMAND_TIMEOUT,
        description="Timeout for every external command in seconds",
    )
    fetch_timeout: int = Field(
        default=DEFAULT_FETCH_TIMEOUT, ge=1, le=600, description="HTTP fetch timeout in seconds"
    )
    network_tries: int = Field(
        default=DEFAULT_NETWORK_TRIES, ge=1, le=10,
        description="Attempts for key fetch and package download",
    )
    try_sleep: float = Field(default=DEFAULT_TRY_SLEEP, ge=0, le=60)
    noop: bool = Field(default=False, description="Query only, never change the host")


class Settings(BaseModel):
    """Top-level settings file."""

    model_config = ConfigDict(extra="forbid")

    varnish: VarnishSettings = Field(default_factory=VarnishSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    logging: dict[str, Any] = Field(default_factory=dict, description="LogConfig overrides")
