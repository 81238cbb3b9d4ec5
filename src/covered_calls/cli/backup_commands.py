"""
Portfolio and backup commands for the covered call CLI.

This module provides the dashboard summary plus export, import and
database info commands.
"""

from pathlib import Path
from typing import Optional

import click

from ..exceptions import CoveredCallError
from .utils import (
    fail,
    get_cli_context,
    get_manager,
    get_user,
    print_json,
    print_success,
    print_summary,
    print_warning,
)

FORMAT_CHOICES = ["json", "csv"]


@click.command()
@click.pass_context
def summary(ctx: click.Context) -> None:
    """
    Show portfolio totals: premium, P&L, capital at risk and yield.

    Example: covered-calls summary
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    result = manager.get_summary(get_user(ctx))

    if cli_ctx.json:
        data = result.as_display()
        data["total_positions"] = str(result.total_positions)
        print_json(data)
        return

    print_summary(result)


@click.command()
@click.option(
    "--format",
    "fmt",
    default="json",
    type=click.Choice(FORMAT_CHOICES),
    help="Export format",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to file instead of stdout")
@click.pass_context
def export(ctx: click.Context, fmt: str, output: Optional[str]) -> None:
    """
    Export positions as JSON or CSV.

    \b
    Examples:
      covered-calls export > backup.json
      covered-calls export --format csv -o positions.csv
    """
    manager = get_manager(ctx)
    data = manager.export_backup(get_user(ctx), format=fmt)

    if output:
        Path(output).write_text(data)
        print_success(f"Exported positions to {output}")
    else:
        click.echo(data)


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(FORMAT_CHOICES),
    help="Backup format (default: from file extension)",
)
@click.pass_context
def import_backup(ctx: click.Context, path: str, fmt: Optional[str]) -> None:
    """
    Import positions from a JSON or CSV backup.

    Imported positions receive new ids. Invalid rows are skipped and
    reported.

    Example: covered-calls import backup.json
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    fmt = fmt or ("csv" if path.lower().endswith(".csv") else "json")
    try:
        result = manager.import_backup(get_user(ctx), Path(path).read_text(), format=fmt)
    except CoveredCallError as e:
        fail(str(e))

    if cli_ctx.json:
        print_json(result.to_dict())
        return

    print_success(f"Imported {result.imported} of {result.total} positions")
    if result.skipped:
        print_warning(f"Skipped {result.skipped} invalid rows")
        if cli_ctx.verbose:
            for error in result.errors:
                click.echo(f"  - {error}")


@click.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """
    Show database location, schema version and position counts.

    Example: covered-calls info
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    details = manager.backup_info(get_user(ctx))

    if cli_ctx.json:
        print_json(details)
        return

    click.echo(f"Database:        {details['database_path']}")
    click.echo(f"Schema Version:  {details['schema_version']}")
    click.echo(f"Open Positions:  {details['open_positions']}")
    click.echo(f"Closed:          {details['closed_positions']}")
    click.echo(f"Total:           {details['total_positions']}")
