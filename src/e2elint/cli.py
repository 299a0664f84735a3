"""e2elint CLI entry point."""

from __future__ import annotations

import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from e2elint import __version__
from e2elint.config import find_config, load_config
from e2elint.errors import ConfigurationError

if TYPE_CHECKING:
    from e2elint.config import AnalyzerConfig


@click.group()
@click.version_option(version=__version__, prog_name="e2elint")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """e2elint - convention checks for browser end-to-end tests."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("e2elint").setLevel(level)


def _resolve_config(config_path: Path | None, project_root: Path) -> AnalyzerConfig:
    """Explicit --config > e2elint.yml in the project root > defaults."""
    if config_path is None:
        config_path = find_config(project_root)
    return load_config(config_path)


@main.command()
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path))
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: e2elint.yml in the project root).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--disable",
    "disabled",
    multiple=True,
    help="Disable a rule by id (repeatable).",
)
@click.option(
    "--max-workers",
    type=click.IntRange(min=1),
    default=None,
    help="Parallel workers (default: min(32, cpu count + 4)).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def check(
    paths: tuple[Path, ...],
    *,
    config_path: Path | None,
    fmt: str | None,
    disabled: tuple[str, ...],
    max_workers: int | None,
    project: Path | None,
) -> None:
    """Check test files against the e2e conventions.

    PATHS may be files, directories or glob patterns (default: the project
    root).  Exit codes: 0 = pass, 1 = violations or incomplete run,
    2 = configuration error, missing path or no files matched.
    """
    from e2elint.engine.orchestrator import run
    from e2elint.formatters import FORMATTERS

    project_root = project or Path.cwd()

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        config = _resolve_config(config_path, project_root)
        overrides: dict[str, object] = {}
        if disabled:
            overrides["disabled_rule_ids"] = config.disabled_rule_ids | frozenset(disabled)
        if max_workers is not None:
            overrides["max_workers"] = max_workers
        if overrides:
            config = dataclasses.replace(config, **overrides)
        report = run(list(paths) or [project_root], config)
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    output = FORMATTERS[fmt](report)
    if output:
        click.echo(output)

    if not report.passed:
        sys.exit(1)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="JSON output.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Show effective severities from this configuration file.",
)
def rules(*, as_json: bool, config_path: Path | None) -> None:
    """List the available rules."""
    from e2elint.rules.registry import default_registry

    registry = default_registry()
    try:
        config = load_config(config_path) if config_path is not None else None
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    infos = registry.rule_info(config)
    disabled = config.disabled_rule_ids if config is not None else frozenset()

    if as_json:
        payload = [
            {**dataclasses.asdict(info), "enabled": info.rule_id not in disabled}
            for info in infos
        ]
        click.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title=f"Rules ({len(infos)})")
    table.add_column("id", style="cyan")
    table.add_column("severity")
    table.add_column("confidence")
    table.add_column("title")
    for info in infos:
        severity = info.severity if info.rule_id not in disabled else "off"
        style = {"error": "red", "warning": "yellow"}.get(severity, "dim")
        table.add_row(info.rule_id, f"[{style}]{severity}[/]", info.confidence, info.title)
    console.print(table)
