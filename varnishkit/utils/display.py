"""
Display helpers for Varnishkit.

Renders apply reports and resource graphs on a rich console.
"""
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from varnishkit.core.types import Outcome

varnishkit_theme = Theme({
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "changed": "yellow",
    "unchanged": "dim",
    "failed": "bold red",
})

_OUTCOME_STYLE = {
    Outcome.CHANGED: "changed",
    Outcome.UNCHANGED: "unchanged",
    Outcome.FAILED: "failed",
}


def get_console(stderr: bool = False) -> Console:
    """Console with the Varnishkit theme."""
    return Console(theme=varnishkit_theme, stderr=stderr)


def report_table(report: Any, show_unchanged: bool = True) -> Table:
    """Build a table with one row per resource of an ApplyReport."""
    title = "Planned changes" if report.noop else "Convergence report"
    table = Table(title=title, show_lines=False)
    table.add_column("Resource", style="bold")
    table.add_column("Outcome")
    table.add_column("Status")
    table.add_column("Restart")
    table.add_column("Details", overflow="fold")

    for ref, result in report.items():
        if not show_unchanged and result.outcome is Outcome.UNCHANGED and not result.notified_by:
            continue
        style = _OUTCOME_STYLE[result.outcome]
        restart = ""
        if result.restarted:
            restart = "yes"
        elif result.notified_by:
            restart = "pending" if report.noop else "skipped"
        table.add_row(
            escape(str(ref)),
            f"[{style}]{result.outcome.value}[/{style}]",
            result.status.value,
            restart,
            escape(result.message),
        )
    return table


def report_to_dict(report: Any) -> Dict[str, Any]:
    """JSON-serializable view of an ApplyReport."""
    return {
        "success": report.success,
        "noop": report.noop,
        "summary": report.summary(),
        "error": str(report.error) if report.error else None,
        "failed_resource": str(report.failed_ref) if report.failed_ref else None,
        "resources": [
            {
                "resource": str(ref),
                "outcome": result.outcome.value,
                "status": result.status.value,
                "restarted": result.restarted,
                "notified_by": [str(src) for src in result.notified_by],
                "message": result.message,
                "duration_ms": round(result.duration_ms, 1),
            }
            for ref, result in report.items()
        ],
    }


def print_report(report: Any, console: Optional[Console] = None, show_unchanged: bool = True) -> None:
    """Print an ApplyReport table followed by its summary line."""
    console = console or get_console()
    console.print(report_table(report, show_unchanged=show_unchanged))
    status = "success" if report.success else "error"
    console.print(f"[{status}]{report.summary()}[/{status}]")
    if report.error is not None:
        console.print(f"[error]Aborted at {escape(str(report.failed_ref))}: {escape(str(report.error))}[/error]")


def graph_table(graph: Any) -> Table:
    """Resources in apply order with their relationships."""
    table = Table(title="Resources in apply order")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Resource", style="bold")
    table.add_column("Ensure")
    table.add_column("Requires")
    table.add_column("Notifies")

    for index, ref in enumerate(graph.topological_order(), start=1):
        resource = graph.get(ref)
        table.add_row(
            str(index),
            escape(str(ref)),
            escape(resource.ensure),
            escape(", ".join(str(r) for r in graph.requirements(ref))),
            escape(", ".join(str(r) for r in graph.notify_targets(ref))),
        )
    return table
