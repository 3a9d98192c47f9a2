"""
Tests for resource declarations and the resource graph.

Tests:
- Identity and duplicate detection
- Edge validation
- Cycle detection
- Deterministic topological order
"""

import pytest

from varnishkit.core.exceptions import (
    CyclicDependencyError,
    DuplicateResourceError,
    UnknownResourceError,
)
from varnishkit.core.types import EdgeKind, ResourceKind
from varnishkit.graph import Resource, ResourceGraph, ResourceRef


def exec_resource(name: str) -> Resource:
    return Resource.exec(name, f"echo {name}")


class TestResource:
    """Tests for Resource and ResourceRef."""

    def test_ref_renders_kind_and_name(self):
        resource = Resource.service("varnish")
        assert str(resource.ref) == "Service[varnish]"
        assert str(resource) == "Service[varnish]"

    def test_parse_ref(self):
        ref = ResourceRef.parse("File[/etc/default/varnish]")
        assert ref == ResourceRef(ResourceKind.FILE, "/etc/default/varnish")

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError, match="Malformed"):
            ResourceRef.parse("varnish")

    def test_parse_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            ResourceRef.parse("Cron[daily]")

    def test_invalid_ensure(self):
        with pytest.raises(ValueError, match="Invalid ensure"):
            Resource.service("varnish", ensure="present")

    def test_package_accepts_version(self):
        resource = Resource.package("varnish", ensure="6.0.11-1")
        assert resource.ensure == "6.0.11-1"

    def test_package_rejects_empty_ensure(self):
        with pytest.raises(ValueError):
            Resource.package("varnish", ensure="  ")

    def test_properties_are_read_only(self):
        resource = Resource.file("/tmp/x", content="a")
        with pytest.raises(TypeError):
            resource.properties["content"] = "b"

    def test_sensitive_flag(self):
        assert Resource.file("/etc/varnish/secret", sensitive=True).sensitive
        assert not Resource.file("/etc/default/varnish").sensitive

    def test_exec_keeps_command(self):
        resource = exec_resource("hello")
        assert resource.get("command") == "echo hello"
        assert resource.ensure == "present"


class TestDeclarations:
    """Tests for declare/require/notify."""

    def test_declare_and_lookup(self):
        graph = ResourceGraph()
        resource = graph.declare(Resource.package("varnish"))

        assert len(graph) == 1
        assert resource in graph
        assert "Package[varnish]" in graph
        assert graph.get("Package[varnish]") is resource

    def test_duplicate_declaration(self):
        graph = ResourceGraph()
        graph.declare(Resource.package("varnish"))

        with pytest.raises(DuplicateResourceError) as exc_info:
            graph.declare(Resource.package("varnish", ensure="latest"))
        assert exc_info.value.ref == ResourceRef(ResourceKind.PACKAGE, "varnish")

    def test_same_name_different_kind_is_allowed(self):
        graph = ResourceGraph()
        graph.declare(Resource.package("varnish"))
        graph.declare(Resource.service("varnish"))
        assert len(graph) == 2

    def test_edge_to_unknown_resource(self):
        graph = ResourceGraph()
        graph.declare(Resource.service("varnish"))

        with pytest.raises(UnknownResourceError) as exc_info:
            graph.require("Service[varnish]", "Package[varnish]")
        assert str(exc_info.value.ref) == "Package[varnish]"

    def test_notify_to_unknown_resource(self):
        graph = ResourceGraph()
        graph.declare(Resource.file("/etc/default/varnish"))

        with pytest.raises(UnknownResourceError):
            graph.notify("File[/etc/default/varnish]", "Service[varnish]")

    def test_get_unknown(self):
        with pytest.raises(UnknownResourceError):
            ResourceGraph().get("Service[varnish]")

    def test_relationship_queries(self):
        graph = ResourceGraph()
        package = graph.declare(Resource.package("varnish"))
        config = graph.declare(Resource.file("/etc/default/varnish"))
        service = graph.declare(Resource.service("varnish"))
        graph.require(config, package)
        graph.require(service, config)
        graph.notify(config, service)

        assert graph.requirements(service) == [config.ref]
        assert graph.dependents(package) == [config.ref]
        assert graph.notify_targets(config) == [service.ref]
        assert len(graph.edges()) == 3
        assert [e.kind for e in graph.edges(EdgeKind.NOTIFIES)] == [EdgeKind.NOTIFIES]


class TestOrdering:
    """Tests for validate() and topological_order()."""

    def test_requirements_come_first(self):
        graph = ResourceGraph()
        service = graph.declare(Resource.service("varnish"))
        config = graph.declare(Resource.file("/etc/default/varnish"))
        package = graph.declare(Resource.package("varnish"))
        graph.require(service, config)
        graph.require(config, package)

        assert graph.topological_order() == [package.ref, config.ref, service.ref]

    def test_ties_are_broken_deterministically(self):
        graph = ResourceGraph()
        for name in ("c", "a", "b"):
            graph.declare(exec_resource(name))

        names = [ref.name for ref in graph.topological_order()]
        assert names == ["a", "b", "c"]

    def test_order_is_stable_across_declaration_order(self):
        def build(names):
            graph = ResourceGraph()
            for name in names:
                graph.declare(exec_resource(name))
            graph.require("Exec[z]", "Exec[m]")
            return graph.topological_order()

        assert build(["z", "m", "a"]) == build(["a", "m", "z"])

    def test_two_node_cycle(self):
        graph = ResourceGraph()
        graph.declare(exec_resource("A"))
        graph.declare(exec_resource("B"))
        graph.require("Exec[A]", "Exec[B]")
        graph.require("Exec[B]", "Exec[A]")

        with pytest.raises(CyclicDependencyError) as exc_info:
            graph.validate()

        cycle = exc_info.value.cycle
        assert {ref.name for ref in cycle} == {"A", "B"}
        assert len(cycle) == 2
        assert "Exec[A]" in str(exc_info.value)

    def test_self_cycle(self):
        graph = ResourceGraph()
        graph.declare(exec_resource("A"))
        graph.require("Exec[A]", "Exec[A]")

        with pytest.raises(CyclicDependencyError) as exc_info:
            graph.topological_order()
        assert [ref.name for ref in exc_info.value.cycle] == ["A"]

    def test_cycle_excludes_tail(self):
        graph = ResourceGraph()
        for name in ("A", "B", "C"):
            graph.declare(exec_resource(name))
        graph.require("Exec[A]", "Exec[B]")
        graph.require("Exec[B]", "Exec[C]")
        graph.require("Exec[C]", "Exec[B]")

        with pytest.raises(CyclicDependencyError) as exc_info:
            graph.validate()
        assert {ref.name for ref in exc_info.value.cycle} == {"B", "C"}

    def test_notify_cycle_is_not_an_ordering_cycle(self):
        graph = ResourceGraph()
        graph.declare(exec_resource("A"))
        graph.declare(exec_resource("B"))
        graph.notify("Exec[A]", "Exec[B]")
        graph.notify("Exec[B]", "Exec[A]")

        graph.validate()
        assert len(graph.topological_order()) == 2
