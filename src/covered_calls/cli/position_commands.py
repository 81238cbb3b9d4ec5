"""
Position management commands for the covered call CLI.

This module provides commands for adding, viewing, editing, marking,
closing and deleting positions, plus the option symbol helper.
"""

from typing import Any, Optional

import click

from ..calculations import generate_option_ticker
from ..exceptions import CoveredCallError
from ..state import PositionStatus
from .utils import (
    fail,
    get_cli_context,
    get_manager,
    get_user,
    print_json,
    print_position,
    print_position_table,
    print_success,
)

STATUS_CHOICES = ["open", "closed", "all"]


def _collect(**fields: Any) -> dict[str, Any]:
    """Keep only the options the user actually supplied."""
    return {k: v for k, v in fields.items() if v is not None}


@click.command()
@click.argument("ticker")
@click.option("--account", help="Brokerage account (uses default from config if not specified)")
@click.option("--strike", required=True, help="Strike price ($)")
@click.option("--stock-price", required=True, help="Underlying price when the call was sold ($)")
@click.option("--expiration", required=True, help="Expiration date (YYYY-MM-DD)")
@click.option("--premium", required=True, help="Premium received per share ($)")
@click.option("--quantity", "-q", default=1, type=int, help="Number of contracts")
@click.option("--open-date", help="Date the call was sold (default: today)")
@click.option("--fees", default="0", help="Total fees ($)")
@click.option("--option-price", help="Current option mark per share ($)")
@click.option("--option-ticker", help="Option symbol")
@click.option("--generate-symbol", is_flag=True, help="Derive the option symbol from the contract")
@click.pass_context
def add(
    ctx: click.Context,
    ticker: str,
    account: Optional[str],
    strike: str,
    stock_price: str,
    expiration: str,
    premium: str,
    quantity: int,
    open_date: Optional[str],
    fees: str,
    option_price: Optional[str],
    option_ticker: Optional[str],
    generate_symbol: bool,
) -> None:
    """
    Record a newly sold covered call.

    \b
    Examples:
      covered-calls add AAPL --account IRA --strike 460 --stock-price 450 \\
          --expiration 2025-02-05 --premium 2.50 -q 2 --fees 2
      covered-calls add MSFT --strike 420 --stock-price 410 \\
          --expiration 2025-03-21 --premium 3.10 --generate-symbol
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    try:
        if generate_symbol:
            option_ticker = generate_option_ticker(ticker, expiration, strike)

        data = _collect(
            account=account or cli_ctx.config.default_account,
            ticker=ticker,
            strike_price=strike,
            stock_price=stock_price,
            quantity=quantity,
            open_date=open_date or manager.clock().isoformat(),
            expiration_date=expiration,
            premium_per_contract=premium,
            fees=fees,
            current_option_price=option_price,
            option_ticker=option_ticker,
        )
        position = manager.create_position(get_user(ctx), data)
    except (CoveredCallError, ValueError) as e:
        fail(str(e))

    if cli_ctx.json:
        print_json(position.to_dict())
        return

    print_success(
        f"Added #{position.id}: {position.ticker} ${position.strike_price} call "
        f"exp {position.expiration_date} x{position.quantity}"
    )


@click.command("list")
@click.option(
    "--status",
    default="all",
    type=click.Choice(STATUS_CHOICES),
    help="Filter by status",
)
@click.pass_context
def list_positions(ctx: click.Context, status: str) -> None:
    """
    List positions with live metrics.

    Example: covered-calls list --status open
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    status_filter = None if status == "all" else PositionStatus(status.capitalize())
    rows = manager.list_enriched(get_user(ctx), status_filter)

    if cli_ctx.json:
        print_json([m.to_dict() for m in rows])
        return

    if not rows:
        click.echo("No positions. Use 'covered-calls add TICKER ...' to record one.")
        return

    print_position_table(rows)


@click.command()
@click.argument("position_id", type=int)
@click.pass_context
def show(ctx: click.Context, position_id: int) -> None:
    """
    Show one position with all derived metrics.

    Example: covered-calls show 3
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    try:
        metrics = manager.get_enriched(get_user(ctx), position_id)
    except CoveredCallError as e:
        fail(str(e))

    if cli_ctx.json:
        print_json(metrics.to_dict())
        return

    print_position(metrics, cli_ctx.verbose)


@click.command()
@click.argument("position_id", type=int)
@click.option("--account", help="Brokerage account")
@click.option("--ticker", help="Underlying symbol")
@click.option("--strike", help="Strike price ($)")
@click.option("--stock-price", help="Underlying price ($)")
@click.option("--expiration", help="Expiration date (YYYY-MM-DD)")
@click.option("--premium", help="Premium received per share ($)")
@click.option("--quantity", "-q", type=int, help="Number of contracts")
@click.option("--open-date", help="Date the call was sold (YYYY-MM-DD)")
@click.option("--fees", help="Total fees ($)")
@click.option("--option-price", help="Current option mark per share ($)")
@click.option("--option-ticker", help="Option symbol")
@click.option("--close-price", help="Corrected buy-back price per share (closed positions only)")
@click.pass_context
def update(
    ctx: click.Context,
    position_id: int,
    account: Optional[str],
    ticker: Optional[str],
    strike: Optional[str],
    stock_price: Optional[str],
    expiration: Optional[str],
    premium: Optional[str],
    quantity: Optional[int],
    open_date: Optional[str],
    fees: Optional[str],
    option_price: Optional[str],
    option_ticker: Optional[str],
    close_price: Optional[str],
) -> None:
    """
    Edit fields of a position.

    Closed positions can be corrected too; they stay closed.

    \b
    Examples:
      covered-calls update 3 --premium 2.75 --fees 1.30
      covered-calls update 5 --close-price 0.35
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    data = _collect(
        account=account,
        ticker=ticker,
        strike_price=strike,
        stock_price=stock_price,
        quantity=quantity,
        open_date=open_date,
        expiration_date=expiration,
        premium_per_contract=premium,
        fees=fees,
        current_option_price=option_price,
        option_ticker=option_ticker,
        close_price=close_price,
    )
    if not data:
        fail("Nothing to update; pass at least one field option")

    try:
        position = manager.update_position(get_user(ctx), position_id, data)
    except CoveredCallError as e:
        fail(str(e))

    if cli_ctx.json:
        print_json(position.to_dict())
        return

    print_success(f"Updated #{position.id} {position.ticker}")


@click.command()
@click.argument("position_id", type=int)
@click.option("--stock-price", help="Latest underlying price ($)")
@click.option("--option-price", help="Latest option mark per share ($)")
@click.pass_context
def mark(
    ctx: click.Context,
    position_id: int,
    stock_price: Optional[str],
    option_price: Optional[str],
) -> None:
    """
    Refresh market prices on an open position.

    Example: covered-calls mark 3 --stock-price 455 --option-price 1.80
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    data = _collect(stock_price=stock_price, current_option_price=option_price)
    try:
        manager.update_marks(get_user(ctx), position_id, data)
        metrics = manager.get_enriched(get_user(ctx), position_id)
    except CoveredCallError as e:
        fail(str(e))

    if cli_ctx.json:
        print_json(metrics.to_dict())
        return

    print_success(f"Marked #{position_id}")
    print_position(metrics, cli_ctx.verbose)


@click.command()
@click.argument("position_id", type=int)
@click.option("--price", help="Buy-back price per share ($, default 0 for expired)")
@click.pass_context
def close(ctx: click.Context, position_id: int, price: Optional[str]) -> None:
    """
    Close a position (buy back, expire or assignment).

    \b
    Examples:
      covered-calls close 3 --price 0.45   # Bought back
      covered-calls close 3                # Expired worthless
    """
    cli_ctx = get_cli_context(ctx)
    manager = get_manager(ctx)

    try:
        position = manager.close_position(get_user(ctx), position_id, price)
        metrics = manager.get_enriched(get_user(ctx), position_id)
    except CoveredCallError as e:
        fail(str(e))

    if cli_ctx.json:
        print_json(metrics.to_dict())
        return

    print_success(
        f"Closed #{position.id} {position.ticker} at ${position.close_price} "
        f"(realized P&L {metrics.pnl:+.2f})"
    )


@click.command()
@click.argument("position_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete(ctx: click.Context, position_id: int, yes: bool) -> None:
    """
    Permanently delete a position.

    Example: covered-calls delete 3 --yes
    """
    manager = get_manager(ctx)

    if not yes:
        click.confirm(f"Delete position #{position_id}?", abort=True)

    try:
        manager.delete_position(get_user(ctx), position_id)
    except CoveredCallError as e:
        fail(str(e))

    print_success(f"Deleted #{position_id}")


@click.command()
@click.argument("ticker")
@click.argument("expiration")
@click.argument("strike")
@click.option("--put", "is_put", is_flag=True, help="Build a put symbol instead of a call")
def ticker(ticker: str, expiration: str, strike: str, is_put: bool) -> None:
    """
    Print the option symbol for a contract.

    Example: covered-calls ticker AAPL 2025-02-21 150  ->  AAPL250221C00150000
    """
    try:
        symbol = generate_option_ticker(ticker, expiration, strike, "P" if is_put else "C")
    except (CoveredCallError, ValueError) as e:
        fail(str(e))

    click.echo(symbol)
