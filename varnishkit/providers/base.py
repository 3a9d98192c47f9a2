"""
Varnishkit Providers - Provider interface.

A provider knows how to observe and change one kind of OS resource. The
engine drives every provider through the same four calls: query, insync,
apply and restart.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from loguru import logger

from varnishkit.core.types import ResourceKind
from varnishkit.graph.resource import Resource
from varnishkit.providers.runner import CommandRunner


@dataclass
class ObservedState:
    """What a provider found on the host for one resource."""

    exists: bool
    attributes: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)


class Provider(ABC):
    """Base class for resource providers."""

    kind: ClassVar[ResourceKind]

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @abstractmethod
    def query(self, resource: Resource) -> ObservedState:
        """Observe the current state of ``resource`` on the host."""

    @abstractmethod
    def insync(self, resource: Resource, observed: ObservedState) -> bool:
        """Whether the observed state already matches the declaration."""

    @abstractmethod
    def apply(self, resource: Resource, observed: ObservedState) -> None:
        """Change the host so that ``resource`` is in sync."""

    def restart(self, resource: Resource) -> bool:
        """
        React to a notification.

        Returns:
            True if an action was performed.
        """
        logger.debug(f"{resource} has no restart action, ignoring notification")
        return False

    def describe_change(self, resource: Resource, observed: ObservedState) -> str:
        """One-line summary of what apply would change."""
        current = "present" if observed.exists else "absent"
        return f"ensure: {current} -> {resource.ensure}"
