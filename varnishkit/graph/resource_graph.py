"""
Varnishkit Graph - Resource graph.

Holds declared resources and their ``requires``/``notifies`` edges, checks
the ordering edges for cycles and produces a deterministic apply order.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterator

from loguru import logger

from varnishkit.core.exceptions import (
    CyclicDependencyError,
    DuplicateResourceError,
    UnknownResourceError,
)
from varnishkit.core.types import EdgeKind
from varnishkit.graph.resource import DependencyEdge, Resource, ResourceRef

# DFS marks
_WHITE, _GRAY, _BLACK = 0, 1, 2


def _as_ref(item: Resource | ResourceRef | str) -> ResourceRef:
    if isinstance(item, Resource):
        return item.ref
    if isinstance(item, str):
        return ResourceRef.parse(item)
    return item


class ResourceGraph:
    """
    Declared resources plus directed edges between them.

    ``require(a, b)`` means ``b`` is applied before ``a``. ``notify(a, b)``
    means ``b`` is restarted after the main pass when applying ``a`` changed
    something. Only requires edges constrain ordering.
    """

    def __init__(self) -> None:
        self._resources: dict[ResourceRef, Resource] = {}
        self._edges: dict[EdgeKind, dict[ResourceRef, set[ResourceRef]]] = {
            EdgeKind.REQUIRES: {},
            EdgeKind.NOTIFIES: {},
        }

    # Declarations

    def declare(self, resource: Resource) -> Resource:
        """
        Add a resource.

        Raises:
            DuplicateResourceError: Same (kind, name) already declared.
        """
        ref = resource.ref
        if ref in self._resources:
            raise DuplicateResourceError(ref)
        self._resources[ref] = resource
        for edges in self._edges.values():
            edges[ref] = set()
        return resource

    def require(self, source: Resource | ResourceRef | str, target: Resource | ResourceRef | str) -> None:
        """``source`` requires ``target``: target is applied first."""
        self._add_edge(EdgeKind.REQUIRES, source, target)

    def notify(self, source: Resource | ResourceRef | str, target: Resource | ResourceRef | str) -> None:
        """``source`` notifies ``target``: target restarts when source changes."""
        self._add_edge(EdgeKind.NOTIFIES, source, target)

    def _add_edge(
        self,
        kind: EdgeKind,
        source: Resource | ResourceRef | str,
        target: Resource | ResourceRef | str,
    ) -> None:
        source_ref, target_ref = _as_ref(source), _as_ref(target)
        for ref in (source_ref, target_ref):
            if ref not in self._resources:
                raise UnknownResourceError(ref)
        self._edges[kind][source_ref].add(target_ref)
        logger.trace(f"Edge {kind}: {source_ref} -> {target_ref}")

    # Lookups

    def get(self, ref: ResourceRef | str) -> Resource:
        ref = _as_ref(ref)
        try:
            return self._resources[ref]
        except KeyError:
            raise UnknownResourceError(ref) from None

    def __contains__(self, item: object) -> bool:
        if isinstance(item, (Resource, ResourceRef, str)):
            try:
                return _as_ref(item) in self._resources
            except ValueError:
                return False
        return False

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources.values())

    @property
    def refs(self) -> list[ResourceRef]:
        return sorted(self._resources)

    def requirements(self, ref: ResourceRef | str) -> list[ResourceRef]:
        """Resources that must be applied before ``ref``."""
        return sorted(self._edges[EdgeKind.REQUIRES][self.get(ref).ref])

    def notify_targets(self, ref: ResourceRef | str) -> list[ResourceRef]:
        """Resources restarted when ``ref`` changes."""
        return sorted(self._edges[EdgeKind.NOTIFIES][self.get(ref).ref])

    def dependents(self, ref: ResourceRef | str) -> list[ResourceRef]:
        """Resources that require ``ref``."""
        target = self.get(ref).ref
        return sorted(
            source for source, targets in self._edges[EdgeKind.REQUIRES].items() if target in targets
        )

    def edges(self, kind: EdgeKind | None = None) -> list[DependencyEdge]:
        kinds = [kind] if kind is not None else list(EdgeKind)
        return sorted(
            DependencyEdge(source, target, edge_kind)
            for edge_kind in kinds
            for source, targets in self._edges[edge_kind].items()
            for target in targets
        )

    # Ordering

    def validate(self) -> None:
        """
        Check that the requires edges form a DAG.

        Three-colour depth-first search; the first back edge found yields the
        cycle, reported in traversal order.

        Raises:
            CyclicDependencyError: With the resources forming the cycle.
        """
        requires = self._edges[EdgeKind.REQUIRES]
        color = dict.fromkeys(self._resources, _WHITE)
        path: list[ResourceRef] = []

        def visit(ref: ResourceRef) -> None:
            color[ref] = _GRAY
            path.append(ref)
            for nxt in sorted(requires[ref]):
                if color[nxt] == _GRAY:
                    raise CyclicDependencyError(path[path.index(nxt):])
                if color[nxt] == _WHITE:
                    visit(nxt)
            path.pop()
            color[ref] = _BLACK

        for ref in sorted(self._resources):
            if color[ref] == _WHITE:
                visit(ref)

    def topological_order(self) -> list[ResourceRef]:
        """
        Apply order respecting every requires edge.

        Ties are broken by (kind, name) so repeated runs visit resources in
        the same order.

        Raises:
            CyclicDependencyError: Graph is not acyclic.
        """
        self.validate()

        requires = self._edges[EdgeKind.REQUIRES]
        pending = {ref: len(targets) for ref, targets in requires.items()}
        dependents: dict[ResourceRef, list[ResourceRef]] = {ref: [] for ref in self._resources}
        for source, targets in requires.items():
            for target in targets:
                dependents[target].append(source)

        ready = [ref for ref, count in pending.items() if count == 0]
        heapq.heapify(ready)
        order: list[ResourceRef] = []

        while ready:
            ref = heapq.heappop(ready)
            order.append(ref)
            for source in dependents[ref]:
                pending[source] -= 1
                if pending[source] == 0:
                    heapq.heappush(ready, source)

        return order
