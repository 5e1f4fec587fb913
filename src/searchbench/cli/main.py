"""
Command-line interface for searchbench.

Main Commands:
    search: Run a regex content search and print the result
    describe: Print the one-line description of a search without running it

Key Features:
    - git grep / system grep / in-process fallback chosen automatically
    - Multi-root workspaces (``--workspace`` may be repeated)
    - Optional search telemetry with a text report and JSON export
    - Text, JSON or highlighted output
    - Ctrl-C cancels the running search and prints what was found so far

Example Usage:
    Basic search:
        $ searchbench search "TODO" --include "*.py"

    Search two workspace roots with telemetry:
        $ searchbench search "def \\w+_handler" --workspace . --workspace ../docs \\
          --analytics --report --export analytics.json

For more information, run: searchbench search --help
"""

from __future__ import annotations

import dataclasses
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click
from rich.console import Console

from ..analytics.collector import SearchAnalyticsCollector
from ..analytics.report import export_analytics, generate_report, render_report_console
from ..core.api import GrepSearch
from ..core.config import SearchConfig, load_config
from ..core.types import OutputFormat, SearchParams
from ..utils.error_handling import ConfigurationError
from ..utils.formatter import format_result
from ..utils.logging_config import LogFormat, LogLevel, configure_logging


@click.group()
@click.version_option(package_name="searchbench")
def cli() -> None:
    """searchbench - layered grep with search telemetry"""
    pass


def _setup_logging(debug: bool, log_level: str, log_format: str, log_file: str | None) -> None:
    if debug:
        log_level = "DEBUG"
    try:
        configure_logging(
            level=LogLevel(log_level),
            format_type=LogFormat(log_format),
            log_file=Path(log_file) if log_file else None,
            enable_file=bool(log_file),
            enable_console=True,
        )
    except (ValueError, OSError) as e:
        click.echo(f"Error configuring logging: {e}", err=True)
        sys.exit(1)


def _build_config(
    config_path: str | None, workspaces: tuple[str, ...], **overrides: Any
) -> SearchConfig:
    try:
        cfg = load_config(config_path)
        changes = {k: v for k, v in overrides.items() if v is not None}
        if workspaces:
            changes["workspace_dirs"] = list(workspaces)
        # replace() re-runs validation on the overridden values
        return dataclasses.replace(cfg, **changes) if changes else cfg
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """Turn Ctrl-C into a cancellation signal for the duration of a search."""
    cancel_event = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel_event
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum: int, frame: Any) -> None:
        cancel_event.set()

    signal.signal(signal.SIGINT, _handler)
    try:
        yield cancel_event
    finally:
        signal.signal(signal.SIGINT, previous)


def _logging_options(func: Any) -> Any:
    options = [
        click.option("--debug", is_flag=True, default=False, help="Enable debug logging"),
        click.option(
            "--log-level",
            type=click.Choice([lvl.value for lvl in LogLevel]),
            default=LogLevel.WARNING.value,
            help="Log level",
        ),
        click.option(
            "--log-format",
            type=click.Choice([f.value for f in LogFormat]),
            default=LogFormat.SIMPLE.value,
            help="Log format",
        ),
        click.option("--log-file", default=None, help="Also write logs to this file"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command("search")
@click.argument("pattern")
@click.option("--path", default=None, help="Directory to search, relative to the target directory")
@click.option("--include", default=None, help="Glob filter on file names, e.g. '*.py' or '*.{ts,tsx}'")
@click.option(
    "--workspace",
    "workspaces",
    multiple=True,
    help="Workspace directory; may be given several times",
)
@click.option("--analytics", is_flag=True, default=False, help="Collect search telemetry")
@click.option("--report", is_flag=True, default=False, help="Print the analytics report (implies --analytics)")
@click.option(
    "--export",
    "export_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write analytics JSON to this file (implies --analytics)",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice([e.value for e in OutputFormat]),
    default=OutputFormat.TEXT.value,
    help="Output format",
)
@click.option("--timeout", type=float, default=None, help="Seconds before a grep subprocess is abandoned")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="TOML file with a [searchbench] table",
)
@_logging_options
def search_cmd(
    pattern: str,
    path: str | None,
    include: str | None,
    workspaces: tuple[str, ...],
    analytics: bool,
    report: bool,
    export_path: str | None,
    fmt: str,
    timeout: float | None,
    config_path: str | None,
    debug: bool,
    log_level: str,
    log_format: str,
    log_file: str | None,
) -> None:
    _setup_logging(debug, log_level, log_format, log_file)

    wants_analytics = analytics or report or bool(export_path)
    cfg = _build_config(
        config_path,
        workspaces,
        process_timeout=timeout,
        analytics_enabled=True if wants_analytics else None,
    )

    # One collector per process; every tool reports into it
    collector = SearchAnalyticsCollector(cfg.resolve_docs_path())
    if cfg.analytics_enabled:
        collector.enable_analytics()

    tool = GrepSearch(cfg, analytics=collector)
    with _cancel_on_interrupt() as cancel_event:
        result = tool.execute(SearchParams(pattern=pattern, path=path, include=include), cancel_event)

    output_format = OutputFormat(fmt)
    output = format_result(result, output_format, pattern)
    if output:
        click.echo(output)

    if report:
        if output_format == OutputFormat.HIGHLIGHT and sys.stderr.isatty():
            render_report_console(collector, Console(stderr=True))
        else:
            click.echo(generate_report(collector), err=True)

    if export_path:
        try:
            written = export_analytics(collector, export_path)
        except OSError as e:
            click.echo(f"Error exporting analytics: {e}", err=True)
            sys.exit(1)
        click.echo(f"Analytics exported to {written}", err=True)

    if result.error:
        sys.exit(1)


@cli.command("describe")
@click.argument("pattern")
@click.option("--path", default=None, help="Directory to search, relative to the target directory")
@click.option("--include", default=None, help="Glob filter on file names")
@click.option("--workspace", "workspaces", multiple=True, help="Workspace directory")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="TOML file with a [searchbench] table",
)
def describe_cmd(
    pattern: str,
    path: str | None,
    include: str | None,
    workspaces: tuple[str, ...],
    config_path: str | None,
) -> None:
    cfg = _build_config(config_path, workspaces)
    tool = GrepSearch(cfg)
    click.echo(tool.get_description(SearchParams(pattern=pattern, path=path, include=include)))


def main() -> None:
    cli(prog_name="searchbench")


if __name__ == "__main__":
    main()
