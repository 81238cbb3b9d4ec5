"""
CLI utility functions for the covered call tracker.

This module provides helper functions for formatting output,
displaying positions and roll analyses, and managing CLI context.
"""

import json
import sys
from typing import Any, NoReturn

import click

from ..formatting import (
    format_amount,
    format_buffer,
    format_currency,
    format_percent,
)
from ..models import PositionMetrics, RollAnalysis, UserContext
from ..state import BufferRisk, RecommendationType, RollAction
from ..summary import PortfolioSummary

RECOMMENDATION_COLORS = {
    RecommendationType.WARNING: "red",
    RecommendationType.CAUTION: "yellow",
    RecommendationType.POSITIVE: "green",
    RecommendationType.INFO: "blue",
}

ACTION_COLORS = {
    RollAction.ROLL: "green",
    RollAction.HOLD: "red",
    RollAction.NEUTRAL: "yellow",
}

BUFFER_COLORS = {
    BufferRisk.HIGH: "red",
    BufferRisk.MODERATE: "yellow",
    BufferRisk.ADEQUATE: "green",
}


def get_cli_context(ctx: click.Context):
    """Get the CLIContext from the click context."""
    return ctx.obj


def get_manager(ctx: click.Context):
    """Get the PositionManager from context."""
    return ctx.obj.manager


def get_user(ctx: click.Context) -> UserContext:
    """Get the acting user from context."""
    return ctx.obj.user


def print_error(message: str) -> None:
    """Print error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    print_error(message)
    sys.exit(1)


def print_success(message: str) -> None:
    """Print success message."""
    click.secho(message, fg="green")


def print_warning(message: str) -> None:
    """Print warning message."""
    click.secho(f"Warning: {message}", fg="yellow")


def print_json(data: Any) -> None:
    """Print data as indented JSON."""
    click.echo(json.dumps(data, indent=2))


def print_position(metrics: PositionMetrics, verbose: bool = False) -> None:
    """Print one position with its derived metrics."""
    pos = metrics.position
    click.echo()
    click.secho(f"=== #{pos.id} {pos.ticker} ${format_amount(pos.strike_price)} call ===", bold=True)
    click.echo(f"Account:     {pos.account}")
    click.echo(f"Status:      {pos.status.value}")
    if pos.option_ticker:
        click.echo(f"Option:      {pos.option_ticker}")
    click.echo(f"Contracts:   {pos.quantity} ({pos.shares} shares)")
    click.echo(f"Opened:      {pos.open_date}")
    click.echo(f"Expiration:  {pos.expiration_date} ({metrics.dte} DTE)")
    click.echo(f"Stock:       {format_currency(pos.stock_price)} ({metrics.moneyness.value})")
    click.echo(f"Premium:     {format_currency(pos.premium_per_contract)}/share")
    click.echo()
    click.echo(f"Net Premium: {format_currency(metrics.net_premium)}")
    click.echo(f"Capital:     {format_currency(metrics.capital_at_risk)}")
    click.echo(f"Return:      {format_percent(metrics.return_on_capital)}")
    click.echo(f"Ann. Yield:  {format_percent(metrics.annualized_yield)}")
    click.echo(f"Rent/Day:    {format_currency(metrics.rent_per_day)}")
    click.echo(f"P&L:         {format_currency(metrics.pnl)}")

    buffer_text = format_buffer(metrics.extrinsic_buffer, metrics.buffer_risk)
    color = BUFFER_COLORS.get(metrics.buffer_risk)
    click.echo("Buffer:      ", nl=False)
    click.secho(buffer_text, fg=color)

    if pos.is_closed:
        click.echo(f"Closed:      {pos.closed_at:%Y-%m-%d %H:%M} at {format_currency(pos.close_price)}")

    if verbose:
        click.echo(f"Mark:        {format_currency(pos.current_option_price)}")
        click.echo(f"Fees:        {format_currency(pos.fees)}")
        click.echo(f"Total Prem.: {format_currency(metrics.total_premium)}")
        if pos.created_at:
            click.echo(f"Created:     {pos.created_at:%Y-%m-%d %H:%M}")
        if pos.updated_at:
            click.echo(f"Updated:     {pos.updated_at:%Y-%m-%d %H:%M}")


def print_position_table(rows: list[PositionMetrics]) -> None:
    """Print positions as a one-line-per-position table."""
    click.echo()
    header = (
        f"{'ID':>4} {'Ticker':<7} {'Strike':>9} {'Exp':<10} {'DTE':>4} "
        f"{'Qty':>4} {'Net Prem':>11} {'Ann %':>8} {'P&L':>11} {'Buffer':>14} {'Status':<6}"
    )
    click.echo(header)
    click.echo("=" * len(header))
    for m in rows:
        pos = m.position
        click.echo(
            f"{pos.id:>4} {pos.ticker:<7} {format_currency(pos.strike_price):>9} "
            f"{pos.expiration_date.isoformat():<10} {m.dte:>4} {pos.quantity:>4} "
            f"{format_currency(m.net_premium):>11} {format_percent(m.annualized_yield):>8} "
            f"{format_currency(m.pnl):>11} "
            f"{format_buffer(m.extrinsic_buffer, m.buffer_risk):>14} {pos.status.value:<6}"
        )


def print_roll_analysis(analysis: RollAnalysis, verbose: bool = False) -> None:
    """Print roll metrics followed by the recommendation and its findings."""
    pos = analysis.position
    metrics = analysis.metrics
    rec = analysis.recommendation

    click.echo()
    click.secho(f"=== Roll Analysis: #{pos.id} {pos.ticker} ===", bold=True)
    click.echo(
        f"Current:     ${format_amount(pos.strike_price)} exp {pos.expiration_date} "
        f"({metrics.current_dte} DTE)"
    )
    click.echo(
        f"Proposed:    ${format_amount(analysis.proposal.new_strike_price)} exp "
        f"{analysis.proposal.new_expiration_date} ({metrics.new_dte} DTE, "
        f"+{metrics.additional_days} days)"
    )
    click.echo()
    label = "Net Credit" if metrics.net_debit_credit >= 0 else "Net Debit"
    click.echo(f"{label + ':':<13}{format_currency(abs(metrics.net_debit_credit))}")
    click.echo(f"Break-even:  {format_currency(metrics.break_even)}")
    click.echo(
        f"Eff. Sale:   {format_currency(metrics.effective_sale_current)} -> "
        f"{format_currency(metrics.effective_sale_after_roll)}"
    )
    click.echo(f"Est. Theta:  {format_currency(metrics.estimated_theta)}")

    if verbose:
        click.echo(f"Rent/Day:    {format_currency(metrics.current_rent_per_day)}")
        click.echo(f"Needed:      {format_currency(metrics.additional_premium_needed)}")
        click.echo(f"Current P&L: {format_currency(metrics.current_pnl)}")
        if metrics.new_delta is not None:
            click.echo(f"New Delta:   {format_amount(metrics.new_delta)}")

    click.echo()
    click.echo("Recommendation: ", nl=False)
    click.secho(f"{rec.action.value} (score {rec.score})", fg=ACTION_COLORS[rec.action], bold=True)
    click.echo(rec.summary)

    if rec.items:
        click.echo()
        for item in rec.items:
            click.secho(f"  [{item.type.value}] {item.title}", fg=RECOMMENDATION_COLORS[item.type])
            click.echo(f"      {item.message}")


def print_summary(summary: PortfolioSummary) -> None:
    """Print the portfolio dashboard figures."""
    display = summary.as_display()
    click.echo()
    click.secho("=== Portfolio Summary ===", bold=True)
    click.echo(f"Open Positions:    {display['open_positions']}")
    click.echo(f"Closed Positions:  {display['closed_positions']}")
    click.echo(f"Premium Collected: {display['total_premium_collected']}")
    click.echo(f"Capital at Risk:   {display['capital_at_risk']}")
    click.echo(f"Total P&L:         {display['total_pnl']}")
    click.echo(f"  Open:            {display['open_pnl']}")
    click.echo(f"  Realized:        {display['realized_pnl']}")
    click.echo(f"Avg Ann. Yield:    {display['average_annualized_yield']}")
