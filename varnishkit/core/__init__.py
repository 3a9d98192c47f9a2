"""
Varnishkit Core - Shared types and errors.
"""

from varnishkit.core.exceptions import (
    CommandTimeoutError,
    ConfigurationError,
    CyclicDependencyError,
    DuplicateResourceError,
    EngineBusyError,
    ExecError,
    FileWriteError,
    GraphError,
    InvalidConfigError,
    PackageManagerError,
    ProviderError,
    ServiceControlError,
    UnknownResourceError,
    VarnishkitError,
)
from varnishkit.core.types import (
    CommandResult,
    EdgeKind,
    Ensure,
    Outcome,
    ResourceKind,
    ResourceStatus,
)

__all__ = [
    "CommandResult",
    "CommandTimeoutError",
    "ConfigurationError",
    "CyclicDependencyError",
    "DuplicateResourceError",
    "EdgeKind",
    "EngineBusyError",
    "Ensure",
    "ExecError",
    "FileWriteError",
    "GraphError",
    "InvalidConfigError",
    "Outcome",
    "PackageManagerError",
    "ProviderError",
    "ResourceKind",
    "ResourceStatus",
    "ServiceControlError",
    "UnknownResourceError",
    "VarnishkitError",
]
