"""
Click CLI implementation for the covered call tracker.

This module provides command-line interface commands for recording
covered calls, checking their live metrics and analyzing rolls, split
into logical command groups.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from ..config import ConfigurationError, TrackerConfig
from ..manager import PositionManager
from ..models import UserContext

# Import command groups
from .backup_commands import export, import_backup, info, summary
from .position_commands import add, close, delete, list_positions, mark, show, ticker, update
from .roll_commands import roll
from .utils import fail

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class CLIContext:
    """Context object passed to all CLI commands.

    Attributes:
        config: Configuration settings
        manager: PositionManager instance
        user: Acting user; every command is scoped to it
        verbose: Verbose output enabled
        json: JSON output enabled
    """
    config: TrackerConfig
    manager: PositionManager
    user: UserContext
    verbose: bool
    json: bool


@click.group()
@click.option("--db", help="Database file path (overrides config)")
@click.option("--user", "user_id", help="User id (overrides config)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--json", "output_json", is_flag=True, help="JSON output (where supported)")
@click.option(
    "--config-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to configuration file",
)
@click.pass_context
def cli(
    ctx: click.Context,
    db: Optional[str],
    user_id: Optional[str],
    verbose: bool,
    output_json: bool,
    config_file: Optional[str],
) -> None:
    """
    Covered Call Tracker - Record short calls and decide when to roll.

    Tracks premium, yield and P&L per position and scores proposed rolls
    for a premium-collection strategy that accepts assignment.
    """
    # Load configuration
    try:
        config = TrackerConfig.load_from_file(Path(config_file) if config_file else None)
    except ConfigurationError as e:
        fail(f"Could not load configuration: {e}")

    # Apply command-line overrides
    if db:
        config.db_path = db
    if user_id:
        config.default_user = user_id
    if verbose:
        config.verbose = True
    if output_json:
        config.json_output = True

    logging.basicConfig(level=config.effective_log_level, format=LOG_FORMAT)

    try:
        user = UserContext(config.default_user)
    except ValueError as e:
        fail(str(e))

    manager = PositionManager(db_path=config.db_path)
    logger.debug(f"Using database {config.db_path} as user {user.user_id}")

    ctx.obj = CLIContext(
        config=config,
        manager=manager,
        user=user,
        verbose=config.verbose,
        json=config.json_output,
    )


# Register position commands
cli.add_command(add)
cli.add_command(list_positions, name="list")
cli.add_command(show)
cli.add_command(update)
cli.add_command(mark)
cli.add_command(close)
cli.add_command(delete)
cli.add_command(ticker)

# Register roll commands
cli.add_command(roll)

# Register portfolio and backup commands
cli.add_command(summary)
cli.add_command(export)
cli.add_command(import_backup, name="import")
cli.add_command(info)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


__all__ = ["cli", "main", "CLIContext"]
