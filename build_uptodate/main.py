"""
Build Up-To-Date Checker — CLI entrypoint.

Usage:
    uptodate-check path/to/app.unit.yml
    uptodate-check root.unit.yml --out results.json --prop Configuration=Release -ff
    python -m build_uptodate.main --help

Exit code 0 means every unit is up to date; 1 means something is stale
or the check could not be completed.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from build_uptodate import __version__
from build_uptodate.core.observability.logging_config import (
    FILE_ENV,
    FILE_LEVEL_ENV,
    console_level,
    setup_logging,
)
from build_uptodate.core.persistence.results import DEFAULT_REPORT_FILE


@click.command(context_settings={"help_option_names": ["-?", "-h", "--help"]})
@click.version_option(version=__version__, prog_name="uptodate-check")
@click.argument("root", type=click.Path())
@click.option(
    "--out",
    "report_path",
    type=click.Path(dir_okay=False),
    default=f"./{DEFAULT_REPORT_FILE}",
    show_default=True,
    help="Path to the JSON report file.",
)
@click.option(
    "--prop",
    "properties",
    multiple=True,
    metavar="NAME=VALUE",
    help="An additional global property (repeatable). "
    "Defaults: Configuration=Debug, Platform=AnyCPU.",
)
@click.option(
    "--msbuild",
    "build_tool",
    type=click.Path(),
    default=None,
    help="Path to the build tool; its directory becomes $(MSBuildToolsPath).",
)
@click.option("--verbose", "-v", is_flag=True, help="Output additional debugging information.")
@click.option(
    "--failfast",
    "-ff",
    "fail_fast",
    is_flag=True,
    help="Stop after the first project that is not up to date.",
)
@click.option(
    "--showbuildlogs",
    "-sbl",
    "show_build_logs",
    is_flag=True,
    help="With --verbose, always write each evaluation log (not only on failure).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output summary as JSON.")
def cli(
    root: str,
    report_path: str,
    properties: tuple[str, ...],
    build_tool: str | None,
    verbose: bool,
    fail_fast: bool,
    show_build_logs: bool,
    as_json: bool,
) -> None:
    """Analyzes a build tree to determine if the build is up-to-date."""
    from build_uptodate.core.config.settings import CheckerSettings
    from build_uptodate.core.use_cases.check import run_check

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=console_level(verbose),
        log_file=os.environ.get(FILE_ENV),
        log_file_level=os.environ.get(FILE_LEVEL_ENV),
    )

    settings = CheckerSettings(
        root=Path(root).absolute(),
        report_path=Path(report_path),
        properties=list(properties),
        build_tool=Path(build_tool) if build_tool else None,
        verbose=verbose,
        fail_fast=fail_fast,
        show_build_logs=show_build_logs,
    )

    result = run_check(settings)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.up_to_date else 1)

    report = result.report
    if report is not None:
        for unit in report.results:
            if unit.error is not None:
                click.secho(f"   ! {unit.unit_path}", fg="red")
                click.echo(f"       {unit.error}")
            elif unit.up_to_date:
                click.secho(f"   ✓ {unit.unit_path}", fg="green")
            else:
                click.secho(f"   ✗ {unit.unit_path}", fg="yellow")
                click.echo(f"       {unit.failure_message}")

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert report is not None  # guaranteed when no error
    click.echo()
    if report.up_to_date:
        click.secho(f"✅ Build is up to date ({report.analyzed} project(s))", fg="green", bold=True)
        sys.exit(0)

    click.secho(
        f"⚠️  Build is not up to date ({report.stale} of {report.analyzed} project(s) stale"
        f"{', stopped early' if report.halted else ''})",
        fg="yellow",
        bold=True,
    )
    sys.exit(1)


if __name__ == "__main__":
    cli()
