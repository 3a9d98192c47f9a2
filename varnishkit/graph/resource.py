"""
Varnishkit Graph - Resource declarations.

A resource is one declared unit of desired state, identified by its kind
and name and rendered Puppet-style as ``Kind[name]``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from varnishkit.core.types import VALID_ENSURE, EdgeKind, Ensure, ResourceKind

_REF_RE = re.compile(r"^(?P<kind>[A-Za-z]+)\[(?P<name>.+)\]$")


@dataclass(frozen=True, order=True)
class ResourceRef:
    """Identity of a resource within a graph."""

    kind: ResourceKind
    name: str

    def __str__(self) -> str:
        return f"{self.kind.title}[{self.name}]"

    @classmethod
    def parse(cls, text: str) -> ResourceRef:
        """
        Parse a reference such as ``Service[varnish]``.

        Raises:
            ValueError: Malformed reference or unknown kind.
        """
        match = _REF_RE.match(text.strip())
        if not match:
            raise ValueError(f"Malformed resource reference: {text!r}")
        return cls(ResourceKind(match.group("kind").lower()), match.group("name"))


@dataclass(frozen=True)
class Resource:
    """
    Declared desired state for one package, file, command or service.

    Properties are frozen into a read-only mapping on construction.
    Packages accept a literal version string as ``ensure``.
    """

    kind: ResourceKind
    name: str
    ensure: str
    properties: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        kind = ResourceKind(self.kind)
        object.__setattr__(self, "kind", kind)
        if not self.name:
            raise ValueError(f"{kind.title} resource needs a name")

        allowed = VALID_ENSURE[kind]
        if self.ensure not in allowed and kind is not ResourceKind.PACKAGE:
            raise ValueError(
                f"Invalid ensure {self.ensure!r} for {kind.title}[{self.name}] "
                f"(expected one of {sorted(allowed)})"
            )
        if kind is ResourceKind.PACKAGE and not str(self.ensure).strip():
            raise ValueError(f"Package[{self.name}] needs a non-empty ensure")

        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.kind, self.name)

    @property
    def sensitive(self) -> bool:
        """Whether property values must be kept out of logs and reports."""
        return bool(self.properties.get("sensitive", False))

    def get(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    def __str__(self) -> str:
        return str(self.ref)

    # Declaration helpers

    @classmethod
    def package(cls, name: str, ensure: str = Ensure.PRESENT, **properties: Any) -> Resource:
        return cls(ResourceKind.PACKAGE, name, str(ensure), properties)

    @classmethod
    def file(cls, path: str, ensure: str = Ensure.PRESENT, **properties: Any) -> Resource:
        return cls(ResourceKind.FILE, path, str(ensure), properties)

    @classmethod
    def exec(cls, name: str, command: str, **properties: Any) -> Resource:
        return cls(ResourceKind.EXEC, name, Ensure.PRESENT.value, {"command": command, **properties})

    @classmethod
    def service(cls, name: str, ensure: str = Ensure.RUNNING, **properties: Any) -> Resource:
        return cls(ResourceKind.SERVICE, name, str(ensure), properties)


@dataclass(frozen=True, order=True)
class DependencyEdge:
    """Directed relationship from ``source`` to ``target``."""

    source: ResourceRef
    target: ResourceRef
    kind: EdgeKind

    def __str__(self) -> str:
        arrow = "->" if self.kind is EdgeKind.REQUIRES else "~>"
        return f"{self.target} {arrow} {self.source}"
