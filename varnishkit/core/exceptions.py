"""
Core Exceptions - Unified error hierarchy for Varnishkit.

Graph errors are raised while building or validating a resource graph and
always abort before the host is touched. Provider errors are raised while
converging a single resource and abort the rest of the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from varnishkit.graph.resource import ResourceRef


class VarnishkitError(Exception):
    """Base exception for all Varnishkit errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | {self.details}"
        return self.message


# =============================================================================
# Graph Errors
# =============================================================================

class GraphError(VarnishkitError):
    """Resource graph is invalid."""
    pass


class DuplicateResourceError(GraphError):
    """A resource with the same identity is already declared."""

    def __init__(self, ref: ResourceRef):
        super().__init__(
            f"Duplicate declaration: {ref} is already declared",
            {"resource": str(ref)}
        )
        self.ref = ref


class UnknownResourceError(GraphError):
    """An edge references a resource that was never declared."""

    def __init__(self, ref: ResourceRef):
        super().__init__(
            f"Unknown resource {ref}",
            {"resource": str(ref)}
        )
        self.ref = ref


class CyclicDependencyError(GraphError):
    """The ordering edges of the graph contain a cycle."""

    def __init__(self, cycle: Sequence[ResourceRef]):
        path = " => ".join(str(ref) for ref in [*cycle, cycle[0]])
        super().__init__(
            f"Found dependency cycle: {path}",
            {"cycle": [str(ref) for ref in cycle]}
        )
        self.cycle = list(cycle)


# =============================================================================
# Provider Errors
# =============================================================================

class ProviderError(VarnishkitError):
    """Converging a resource failed."""
    pass


class PackageManagerError(ProviderError):
    """Package manager returned non-zero exit code."""

    def __init__(self, package: str, exit_code: int, output: str = ""):
        super().__init__(
            f"Package manager failed for '{package}' with exit code {exit_code}",
            {"package": package, "exit_code": exit_code, "output": output}
        )
        self.package = package
        self.exit_code = exit_code
        self.output = output


class FileWriteError(ProviderError):
    """File could not be written, removed or have its metadata set."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Could not manage file '{path}': {reason}",
            {"path": path, "reason": reason}
        )
        self.path = path
        self.reason = reason


class ExecError(ProviderError):
    """Command returned non-zero exit code."""

    def __init__(self, command: str, exit_code: int, output: str = ""):
        super().__init__(
            f"Command failed with exit code {exit_code}",
            {"command": command, "exit_code": exit_code, "output": output}
        )
        self.command = command
        self.exit_code = exit_code
        self.output = output


class ServiceControlError(ProviderError):
    """Service manager failed to change a service's run state."""

    def __init__(self, service: str, action: str, exit_code: int, output: str = ""):
        super().__init__(
            f"Could not {action} service '{service}' (exit code {exit_code})",
            {"service": service, "action": action, "exit_code": exit_code, "output": output}
        )
        self.service = service
        self.action = action
        self.exit_code = exit_code
        self.output = output


class CommandTimeoutError(ProviderError, TimeoutError):
    """External process or fetch did not finish in time."""

    def __init__(self, command: str, timeout_seconds: float):
        super().__init__(
            f"Command timed out after {timeout_seconds}s",
            {"command": command, "timeout": timeout_seconds}
        )
        self.command = command
        self.timeout_seconds = timeout_seconds


# =============================================================================
# Engine Errors
# =============================================================================

class EngineBusyError(VarnishkitError):
    """apply() was called while another apply was running."""

    def __init__(self) -> None:
        super().__init__("Convergence engine is already applying a graph")


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(VarnishkitError):
    """Configuration error."""
    pass


class InvalidConfigError(ConfigurationError):
    """Invalid configuration value."""
    pass
