"""
Roll analysis command for the covered call CLI.
"""

from typing import Optional

import click

from ..exceptions import CoveredCallError
from ..state import RollAction
from .utils import (
    fail,
    get_cli_context,
    get_manager,
    get_user,
    print_json,
    print_roll_analysis,
    print_success,
    print_warning,
)


@click.command()
@click.argument("position_id", type=int)
@click.option("--expiration", required=True, help="New expiration date (YYYY-MM-DD)")
@click.option("--strike", required=True, help="New strike price ($)")
@click.option("--close-cost", required=True, help="Estimated cost to buy back the current call ($/share)")
@click.option("--premium", required=True, help="Premium for the new call ($/share)")
@click.option("--delta", help="Delta of the new call (0-1)")
@click.option("--execute", is_flag=True, help="Close the current call and open the new one")
@click.pass_context
def roll(
    ctx: click.Context,
    position_id: int,
    expiration: str,
    strike: str,
    close_cost: str,
    premium: str,
    delta: Optional[str],
    execute: bool,
) -> None:
    """
    Analyze rolling a position to a later expiration.

    Prints the roll metrics and a ROLL / HOLD / NEUTRAL recommendation.
    With --execute the current position is closed at the close cost and a
    new position is opened at the proposed strike and expiration.

    \b
    Examples:
      covered-calls roll 3 --expiration 2025-03-07 --strike 465 \\
          --close-cost 1.80 --premium 3.50 --delta 0.25
      covered-calls roll 3 --expiration 2025-03-07 --strike 465 \\
          --close-cost 1.80 --premium 3.50 --execute
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)
    user = get_user(ctx)

    proposal = {
        "new_expiration_date": expiration,
        "new_strike_price": strike,
        "estimated_close_cost": close_cost,
        "new_premium_per_contract": premium,
    }
    if delta is not None:
        proposal["new_delta"] = delta

    try:
        analysis = manager.analyze_roll(user, position_id, proposal)
    except CoveredCallError as e:
        fail(str(e))

    if not execute:
        if cli_ctx.json:
            print_json(analysis.to_dict())
        else:
            print_roll_analysis(analysis, cli_ctx.verbose)
        return

    try:
        closed, opened = manager.execute_roll(user, position_id, analysis.proposal)
    except CoveredCallError as e:
        fail(str(e))

    if cli_ctx.json:
        data = analysis.to_dict()
        data["closed_position"] = closed.to_dict()
        data["new_position"] = opened.to_dict()
        print_json(data)
        return

    print_roll_analysis(analysis, cli_ctx.verbose)
    click.echo()
    if analysis.recommendation.action is RollAction.HOLD:
        print_warning("Executed against a HOLD recommendation")
    print_success(
        f"Rolled #{closed.id} -> #{opened.id}: {opened.ticker} ${opened.strike_price} "
        f"call exp {opened.expiration_date}"
    )
