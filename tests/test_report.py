"""
Tests for apply reports, their rendering and the provider registry.
"""

import pytest
from rich.console import Console

from varnishkit.config import EngineSettings
from varnishkit.core.exceptions import ExecError
from varnishkit.core.types import Outcome, ResourceKind, ResourceStatus
from varnishkit.engine import ApplyReport, ConvergenceResult
from varnishkit.graph import Resource, ResourceGraph, ResourceRef
from varnishkit.providers import FileProvider, ProviderRegistry, build_registry
from varnishkit.utils.display import graph_table, print_report, report_to_dict


@pytest.fixture
def report() -> ApplyReport:
    report = ApplyReport()
    report.record(ConvergenceResult(
        ResourceRef.parse("Package[varnish]"), Outcome.UNCHANGED, ResourceStatus.UNCHANGED,
    ))
    report.record(ConvergenceResult(
        ResourceRef.parse("File[/etc/default/varnish]"), Outcome.CHANGED, ResourceStatus.APPLIED,
        message="content changed",
    ))
    report.record(ConvergenceResult(
        ResourceRef.parse("Service[varnish]"), Outcome.UNCHANGED, ResourceStatus.APPLIED,
        restarted=True, notified_by=[ResourceRef.parse("File[/etc/default/varnish]")],
    ))
    return report


class TestApplyReport:
    """Tests for ApplyReport."""

    def test_mapping(self, report):
        assert len(report) == 3
        assert list(report)[0] == ResourceRef.parse("Package[varnish]")

    def test_counts_and_summary(self, report):
        counts = report.counts()

        assert counts[Outcome.CHANGED] == 1
        assert counts[Outcome.UNCHANGED] == 2
        assert report.summary() == "1 changed, 2 unchanged, 0 failed, 1 restarted"
        assert report.success

    def test_error_marks_failure(self, report):
        report.error = ExecError("false", 1)
        assert not report.success
        with pytest.raises(ExecError):
            report.raise_on_failure()

    def test_to_dict(self, report):
        data = report_to_dict(report)

        assert data["success"] is True
        assert data["resources"][2]["restarted"] is True
        assert data["resources"][2]["notified_by"] == ["File[/etc/default/varnish]"]

    def test_print_report(self, report):
        console = Console(record=True, width=200)

        print_report(report, console, show_unchanged=False)

        text = console.export_text()
        assert "File[/etc/default/varnish]" in text
        assert "Service[varnish]" in text
        assert "Package[varnish]" not in text


def test_graph_table_lists_resources_in_order():
    graph = ResourceGraph()
    graph.declare(Resource.service("varnish"))
    graph.declare(Resource.package("varnish"))
    graph.require("Service[varnish]", "Package[varnish]")
    console = Console(record=True, width=200)

    console.print(graph_table(graph))

    text = console.export_text()
    assert text.index("Package[varnish]") < text.index("Service[varnish]")


class TestRegistry:
    """Tests for provider lookup."""

    def test_build_registry_covers_every_kind(self):
        registry = build_registry(EngineSettings(command_timeout=42))

        for kind in ResourceKind:
            assert kind in registry
        assert registry.for_kind(ResourceKind.PACKAGE).runner.timeout == 42

    def test_missing_kind(self, fake_runner):
        registry = ProviderRegistry([FileProvider(fake_runner)])

        with pytest.raises(LookupError, match="service"):
            registry.for_resource(Resource.service("varnish"))


class TestRefsAreNotMarkup:
    """Resource references contain brackets and must print as-is."""

    def test_failed_report(self):
        report = ApplyReport()
        failed = ResourceRef.parse("File[/etc/apt/sources.list.d/varnish.list]")
        report.record(ConvergenceResult(
            failed, Outcome.FAILED, ResourceStatus.FAILED, message="dependency Exec[varnish-repo-key] failed",
        ))
        report.error = ExecError("curl", 22)
        report.failed_ref = failed
        console = Console(record=True, width=200)

        print_report(report, console)

        text = console.export_text()
        assert "File[/etc/apt/sources.list.d/varnish.list]" in text
        assert "dependency Exec[varnish-repo-key] failed" in text
        assert "Aborted at File[/etc/apt/sources.list.d/varnish.list]" in text

    def test_graph_table_keeps_brackets(self):
        graph = ResourceGraph()
        graph.declare(Resource.package("varnish"))
        graph.declare(Resource.file("/etc/default/varnish"))
        graph.declare(Resource.service("varnish"))
        graph.require("File[/etc/default/varnish]", "Package[varnish]")
        graph.notify("File[/etc/default/varnish]", "Service[varnish]")
        console = Console(record=True, width=200)

        console.print(graph_table(graph))

        text = console.export_text()
        assert "File[/etc/default/varnish]" in text
        assert "Package[varnish]" in text
        assert "Service[varnish]" in text
