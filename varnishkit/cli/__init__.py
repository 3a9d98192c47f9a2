"""
Varnishkit CLI - Command line interface.

Exit codes: 0 success, 1 convergence failure, 2 configuration or graph error.
"""

import json
import sys
from typing import Optional

import click
from loguru import logger
from rich.markup import escape

from varnishkit import __version__
from varnishkit.config import Settings, load_settings
from varnishkit.core.exceptions import ConfigurationError, GraphError
from varnishkit.engine import ApplyReport, ConvergenceEngine
from varnishkit.manifest import Manifest, build_manifest
from varnishkit.providers import build_registry
from varnishkit.utils.display import get_console, graph_table, print_report, report_to_dict
from varnishkit.utils.log_config import load_log_config
from varnishkit.utils.logger import setup_logger

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _load(ctx: click.Context) -> tuple[Settings, Manifest]:
    """Load settings and build the manifest, exiting with code 2 on errors."""
    console = get_console(stderr=True)
    try:
        settings = load_settings(ctx.obj["config"])
        if settings.logging:
            setup_logger(verbose=ctx.obj["verbose"], config=load_log_config(settings.logging))
        manifest = build_manifest(settings.varnish, settings.engine)
    except (ConfigurationError, GraphError) as e:
        console.print(f"[error]Error: {escape(e.message)}[/error]")
        logger.error(f"Configuration error: {e}")
        ctx.exit(EXIT_CONFIG)
    except ValueError as e:
        console.print(f"[error]Error: {escape(str(e))}[/error]")
        ctx.exit(EXIT_CONFIG)
    return settings, manifest


def _converge(ctx: click.Context, noop: bool, output_format: str, show_unchanged: bool) -> None:
    settings, manifest = _load(ctx)
    engine = ConvergenceEngine(build_registry(settings.engine), noop=settings.engine.noop)
    try:
        report: ApplyReport = engine.apply(manifest.graph, noop=noop or settings.engine.noop)
    except GraphError as e:
        get_console(stderr=True).print(f"[error]Error: {escape(e.message)}[/error]")
        ctx.exit(EXIT_CONFIG)

    if output_format == "json":
        click.echo(json.dumps(report_to_dict(report), indent=2))
    else:
        print_report(report, get_console(), show_unchanged=show_unchanged)

    ctx.exit(EXIT_OK if report.success else EXIT_FAILED)


@click.group()
@click.version_option(__version__, prog_name="varnishkit")
@click.option(
    "-c", "--config", "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (default: /etc/varnishkit/varnishkit.yaml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log to stderr at DEBUG level")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """Install and configure Varnish and its log daemons."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config_path
    ctx.obj["verbose"] = verbose
    setup_logger(verbose=verbose)


@cli.command()
@click.option("--noop", is_flag=True, help="Only report what would change")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
@click.option("--changes-only", is_flag=True, help="Hide unchanged resources")
@click.pass_context
def apply(ctx: click.Context, noop: bool, output_format: str, changes_only: bool) -> None:
    """Converge this host to the declared state."""
    _converge(ctx, noop, output_format, show_unchanged=not changes_only)


@cli.command()
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
@click.pass_context
def plan(ctx: click.Context, output_format: str) -> None:
    """Show what apply would change without touching the host."""
    _converge(ctx, True, output_format, show_unchanged=False)


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate settings and the resource graph, then list resources."""
    _, manifest = _load(ctx)
    console = get_console()
    console.print(graph_table(manifest.graph))
    console.print(f"[success]{len(manifest.graph)} resources, graph is valid[/success]")


@cli.command()
@click.argument("path", required=False)
@click.pass_context
def render(ctx: click.Context, path: Optional[str]) -> None:
    """Print generated configuration files (or only PATH)."""
    _, manifest = _load(ctx)
    files = manifest.files
    if path is not None:
        if path not in files:
            get_console(stderr=True).print(f"[error]No generated file {escape(path)}[/error]")
            ctx.exit(EXIT_FAILED)
        click.echo(files[path], nl=False)
        return
    for file_path, content in files.items():
        click.echo(f"==> {file_path} <==")
        click.echo(content)


def main() -> None:
    """Main entry point for varnishkit CLI."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
