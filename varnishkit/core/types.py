"""
Varnishkit Core - Shared types and enums.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ResourceKind(StrEnum):
    """Closed set of resource kinds, one provider each."""

    PACKAGE = "package"
    FILE = "file"
    EXEC = "exec"
    SERVICE = "service"

    @property
    def title(self) -> str:
        """Capitalized form used in references, e.g. ``Service``."""
        return self.value.capitalize()


class Ensure(StrEnum):
    """Desired state keywords."""

    PRESENT = "present"
    ABSENT = "absent"
    LATEST = "latest"
    RUNNING = "running"
    STOPPED = "stopped"


# Keywords accepted per kind. Packages additionally accept a literal version.
VALID_ENSURE: dict[ResourceKind, frozenset[Ensure]] = {
    ResourceKind.PACKAGE: frozenset({Ensure.PRESENT, Ensure.ABSENT, Ensure.LATEST}),
    ResourceKind.FILE: frozenset({Ensure.PRESENT, Ensure.ABSENT}),
    ResourceKind.EXEC: frozenset({Ensure.PRESENT}),
    ResourceKind.SERVICE: frozenset({Ensure.RUNNING, Ensure.STOPPED}),
}


class EdgeKind(StrEnum):
    """Relationship between two resources."""

    REQUIRES = "requires"
    NOTIFIES = "notifies"


class Outcome(StrEnum):
    """Per-resource result of one apply."""

    UNCHANGED = "unchanged"
    CHANGED = "changed"
    FAILED = "failed"


class ResourceStatus(StrEnum):
    """Lifecycle of a resource during a single apply."""

    PENDING = "pending"
    QUERYING = "querying"
    UNCHANGED = "unchanged"
    APPLYING = "applying"
    APPLIED = "applied"
    RESTARTING = "restarting"
    FAILED = "failed"


# Allowed lifecycle transitions
STATUS_TRANSITIONS: dict[ResourceStatus, frozenset[ResourceStatus]] = {
    ResourceStatus.PENDING: frozenset({ResourceStatus.QUERYING, ResourceStatus.FAILED}),
    ResourceStatus.QUERYING: frozenset(
        {ResourceStatus.UNCHANGED, ResourceStatus.APPLYING, ResourceStatus.FAILED}
    ),
    ResourceStatus.APPLYING: frozenset({ResourceStatus.APPLIED, ResourceStatus.FAILED}),
    ResourceStatus.UNCHANGED: frozenset({ResourceStatus.RESTARTING}),
    ResourceStatus.APPLIED: frozenset({ResourceStatus.RESTARTING}),
    ResourceStatus.RESTARTING: frozenset({ResourceStatus.APPLIED, ResourceStatus.FAILED}),
    ResourceStatus.FAILED: frozenset(),
}


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str
    stderr: str
    exit_code: int
    duration_ms: float
    command: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        if self.stderr:
            return f"{self.stdout}\n{self.stderr}".strip()
        return self.stdout
