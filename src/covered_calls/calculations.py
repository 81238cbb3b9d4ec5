"""
Metrics calculator for covered call positions.

Pure functions converting raw position inputs into derived metrics, plus
the roll-specific formulas that feed the recommendation engine. All
currency math is done in Decimal. Nothing here reads the system clock
directly: date-dependent entry points take a ``today`` argument that only
falls back to ``date.today()`` when the caller leaves it out.

Conventions:
- Option prices (premium, marks, close costs) are quoted per share.
- One contract covers CONTRACT_MULTIPLIER (100) shares.
- Percentages are returned as percent values (0.55 means 0.55%).
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from .constants import (
    ATM_THRESHOLD_PCT,
    BUFFER_ADEQUATE,
    BUFFER_HIGH_RISK,
    BUFFER_MODERATE_RISK,
    CONTRACT_MULTIPLIER,
)
from .models import Position, PositionMetrics, RollMetrics, RollProposal
from .state import BufferRisk, Moneyness, PositionStatus
from .utils.date_utils import DateLike, days_to_expiration, holding_days, parse_date
from .utils.numbers import ZERO, to_decimal

logger = logging.getLogger(__name__)

__all__ = [
    "days_to_expiration",
    "holding_days",
    "generate_option_ticker",
    "get_moneyness",
    "intrinsic_value",
    "extrinsic_value",
    "time_value",
    "total_premium",
    "net_premium",
    "capital_at_risk",
    "return_on_capital",
    "annualized_yield",
    "rent_per_day",
    "unrealized_pnl",
    "realized_pnl",
    "extrinsic_buffer",
    "extrinsic_buffer_risk",
    "calculate_pnl",
    "calculate_derived_fields",
    "roll_net_debit_credit",
    "roll_break_even",
    "effective_sale_price",
    "effective_sale_price_after_roll",
    "estimated_theta_decay",
    "additional_premium_needed",
    "calculate_roll_metrics",
]


def _shares(quantity: Any) -> Decimal:
    return to_decimal(quantity, "quantity") * CONTRACT_MULTIPLIER


def generate_option_ticker(
    ticker: str,
    expiration_date: DateLike,
    strike_price: Any,
    option_type: str = "C",
) -> str:
    """
    Build an OCC-style option symbol.

    Format: TICKER + YYMMDD + C/P + strike x 1000 zero-padded to 8 digits.

    Example:
        >>> generate_option_ticker("aapl", "2025-02-21", 150)
        'AAPL250221C00150000'
    """
    exp = parse_date(expiration_date)
    strike_thousandths = int(to_decimal(strike_price, "strike_price") * 1000)
    return f"{ticker.upper()}{exp.strftime('%y%m%d')}{option_type.upper()}{strike_thousandths:08d}"


# --- Moneyness and option value ---


def get_moneyness(stock_price: Any, strike_price: Any) -> Moneyness:
    """
    Classify a short call as ITM, ATM or OTM.

    ATM when the stock is within 1% of the strike (inclusive). Otherwise
    ITM when the stock is above the strike, OTM when below.
    """
    stock = to_decimal(stock_price, "stock_price")
    strike = to_decimal(strike_price, "strike_price")
    diff = stock - strike
    threshold = strike * ATM_THRESHOLD_PCT

    if abs(diff) <= threshold:
        return Moneyness.ATM
    if stock > strike:
        return Moneyness.ITM
    return Moneyness.OTM


def intrinsic_value(stock_price: Any, strike_price: Any) -> Decimal:
    """Intrinsic value of a call: max(0, stock - strike)."""
    stock = to_decimal(stock_price, "stock_price")
    strike = to_decimal(strike_price, "strike_price")
    return max(ZERO, stock - strike)


def extrinsic_value(option_price: Any, stock_price: Any, strike_price: Any) -> Decimal:
    """Extrinsic (time) value of a call: max(0, option - intrinsic)."""
    option = to_decimal(option_price, "option_price")
    return max(ZERO, option - intrinsic_value(stock_price, strike_price))


def time_value(option_price: Any, stock_price: Any, strike_price: Any) -> Decimal:
    """Alias of extrinsic_value."""
    return extrinsic_value(option_price, stock_price, strike_price)


def extrinsic_buffer(current_option_price: Any, stock_price: Any, strike_price: Any) -> Decimal:
    """
    Signed cushion before the short call is fully intrinsic.

    current_option_price - (stock - strike). Unlike extrinsic_value this is
    not clamped: a negative buffer means the call already trades below
    parity.
    """
    option = to_decimal(current_option_price, "current_option_price")
    stock = to_decimal(stock_price, "stock_price")
    strike = to_decimal(strike_price, "strike_price")
    return option - (stock - strike)


def extrinsic_buffer_risk(buffer: Optional[Any], status: PositionStatus) -> BufferRisk:
    """
    Map an extrinsic buffer to its display band.

    Closed positions are never flagged. Bands for open positions:
    < 0.50 high, [0.50, 2.00) moderate, [2.00, 5.00) adequate, >= 5.00 none.
    """
    if status == PositionStatus.CLOSED or buffer is None:
        return BufferRisk.NOT_APPLICABLE

    value = to_decimal(buffer, "extrinsic_buffer")
    if value < BUFFER_HIGH_RISK:
        return BufferRisk.HIGH
    if value < BUFFER_MODERATE_RISK:
        return BufferRisk.MODERATE
    if value < BUFFER_ADEQUATE:
        return BufferRisk.ADEQUATE
    return BufferRisk.NONE


# --- Premium, capital and yield ---


def total_premium(premium_per_contract: Any, quantity: Any) -> Decimal:
    """Gross premium received: premium x quantity x 100."""
    return to_decimal(premium_per_contract, "premium_per_contract") * _shares(quantity)


def net_premium(premium_per_contract: Any, quantity: Any, fees: Any = 0) -> Decimal:
    """Premium received after fees."""
    return total_premium(premium_per_contract, quantity) - to_decimal(fees, "fees")


def capital_at_risk(stock_price: Any, quantity: Any) -> Decimal:
    """Value of the shares backing the calls."""
    return to_decimal(stock_price, "stock_price") * _shares(quantity)


def return_on_capital(
    premium_per_contract: Any, quantity: Any, fees: Any, stock_price: Any
) -> Decimal:
    """Net premium as a percentage of capital at risk (0 when capital is 0)."""
    premium = net_premium(premium_per_contract, quantity, fees)
    capital = capital_at_risk(stock_price, quantity)
    if capital == 0:
        return ZERO
    return premium / capital * 100


def annualized_yield(
    premium_per_contract: Any,
    quantity: Any,
    fees: Any,
    stock_price: Any,
    expiration_date: DateLike,
    open_date: DateLike,
) -> Decimal:
    """
    Return on capital scaled to a 365-day year.

    Uses the full open-to-expiration window, so the figure is fixed for
    the life of the position rather than updated as days elapse.
    """
    roc = return_on_capital(premium_per_contract, quantity, fees, stock_price)
    days = holding_days(open_date, expiration_date)
    return roc / days * 365


def rent_per_day(
    premium_per_contract: Any,
    quantity: Any,
    fees: Any,
    expiration_date: DateLike,
    open_date: DateLike,
) -> Decimal:
    """Net premium earned per day of the open-to-expiration window."""
    premium = net_premium(premium_per_contract, quantity, fees)
    return premium / holding_days(open_date, expiration_date)


# --- P&L ---


def unrealized_pnl(
    premium_per_contract: Any, current_option_price: Any, quantity: Any, fees: Any = 0
) -> Decimal:
    """Net premium less the current cost to buy the calls back."""
    received = net_premium(premium_per_contract, quantity, fees)
    current_value = to_decimal(current_option_price, "current_option_price") * _shares(quantity)
    return received - current_value


def realized_pnl(
    premium_per_contract: Any, close_price: Any, quantity: Any, fees: Any = 0
) -> Decimal:
    """Net premium less what was paid to close."""
    received = net_premium(premium_per_contract, quantity, fees)
    close_cost = to_decimal(close_price, "close_price") * _shares(quantity)
    return received - close_cost


def calculate_pnl(position: Position) -> Decimal:
    """Realized P&L for closed positions, unrealized for open ones."""
    if position.status == PositionStatus.CLOSED:
        return realized_pnl(
            position.premium_per_contract,
            position.close_price or ZERO,
            position.quantity,
            position.fees,
        )
    return unrealized_pnl(
        position.premium_per_contract,
        position.current_option_price or ZERO,
        position.quantity,
        position.fees,
    )


def calculate_derived_fields(
    position: Position, today: Optional[DateLike] = None
) -> PositionMetrics:
    """
    Compute every derived metric for a position.

    Pure: calling twice with the same position and reference date gives
    identical results.

    Args:
        position: Stored position
        today: Reference date for DTE (defaults to the system date)

    Returns:
        PositionMetrics wrapping the position
    """
    reference = parse_date(today) if today is not None else date.today()
    option_price = position.current_option_price or ZERO

    buffer: Optional[Decimal] = None
    if position.status == PositionStatus.OPEN:
        buffer = extrinsic_buffer(option_price, position.stock_price, position.strike_price)

    return PositionMetrics(
        position=position,
        dte=days_to_expiration(position.expiration_date, reference),
        moneyness=get_moneyness(position.stock_price, position.strike_price),
        total_premium=total_premium(position.premium_per_contract, position.quantity),
        net_premium=net_premium(position.premium_per_contract, position.quantity, position.fees),
        capital_at_risk=capital_at_risk(position.stock_price, position.quantity),
        return_on_capital=return_on_capital(
            position.premium_per_contract,
            position.quantity,
            position.fees,
            position.stock_price,
        ),
        annualized_yield=annualized_yield(
            position.premium_per_contract,
            position.quantity,
            position.fees,
            position.stock_price,
            position.expiration_date,
            position.open_date,
        ),
        rent_per_day=rent_per_day(
            position.premium_per_contract,
            position.quantity,
            position.fees,
            position.expiration_date,
            position.open_date,
        ),
        pnl=calculate_pnl(position),
        extrinsic_buffer=buffer,
        buffer_risk=extrinsic_buffer_risk(buffer, position.status),
    )


# --- Roll formulas ---


def roll_net_debit_credit(
    current_close_price: Any, new_premium_per_contract: Any, quantity: Any, fees: Any = 0
) -> Decimal:
    """
    Cash effect of a roll. Positive = net credit received, negative = net debit paid.
    """
    shares = _shares(quantity)
    new_premium = to_decimal(new_premium_per_contract, "new_premium_per_contract") * shares
    close_cost = to_decimal(current_close_price, "current_close_price") * shares
    return new_premium - close_cost - to_decimal(fees, "fees")


def roll_break_even(new_strike_price: Any, net_debit_credit: Any, quantity: Any) -> Decimal:
    """New strike adjusted by the roll's net credit/debit per share."""
    net_per_share = to_decimal(net_debit_credit, "net_debit_credit") / _shares(quantity)
    return to_decimal(new_strike_price, "new_strike_price") + net_per_share


def effective_sale_price(
    strike_price: Any, premium_per_contract: Any, quantity: Any, fees: Any = 0
) -> Decimal:
    """Per-share proceeds if assigned on the current position."""
    net = net_premium(premium_per_contract, quantity, fees)
    return to_decimal(strike_price, "strike_price") + net / _shares(quantity)


def effective_sale_price_after_roll(
    new_strike_price: Any,
    original_premium_per_contract: Any,
    original_quantity: Any,
    original_fees: Any,
    net_debit_credit: Any,
    quantity: Any,
) -> Decimal:
    """Per-share proceeds if assigned after rolling (original net + roll net)."""
    original_net = net_premium(original_premium_per_contract, original_quantity, original_fees)
    total_net = original_net + to_decimal(net_debit_credit, "net_debit_credit")
    return to_decimal(new_strike_price, "new_strike_price") + total_net / _shares(quantity)


def estimated_theta_decay(current_extrinsic_value: Any, current_dte: int, new_dte: int) -> Decimal:
    """
    Linear time-decay estimate for the days a roll adds.

    daily theta = extrinsic / current DTE; result = daily theta x added days.
    Stays on the scale of ``current_extrinsic_value`` (a per-share price);
    no quantity scaling is applied.
    """
    if current_dte <= 0:
        return ZERO
    daily_theta = to_decimal(current_extrinsic_value, "current_extrinsic_value") / current_dte
    additional_days = new_dte - current_dte
    return daily_theta * additional_days


def additional_premium_needed(current_rent_per_day: Any, additional_days: int) -> Decimal:
    """Benchmark credit that would keep the current rent rate over the added days."""
    return to_decimal(current_rent_per_day, "current_rent_per_day") * additional_days


def calculate_roll_metrics(
    position: Position, proposal: RollProposal, today: Optional[DateLike] = None
) -> RollMetrics:
    """
    Compute the roll metrics bundle for a position and proposal.

    Args:
        position: Current (open) position
        proposal: Proposed roll target
        today: Reference date for both DTE figures

    Returns:
        RollMetrics ready for analyze_roll_decision
    """
    reference = parse_date(today) if today is not None else date.today()
    fees = position.fees or ZERO
    option_price = position.current_option_price or ZERO

    current_dte = days_to_expiration(position.expiration_date, reference)
    new_dte = days_to_expiration(proposal.new_expiration_date, reference)
    additional_days = new_dte - current_dte

    net = roll_net_debit_credit(
        proposal.estimated_close_cost,
        proposal.new_premium_per_contract,
        position.quantity,
        fees,
    )
    current_extrinsic = extrinsic_value(option_price, position.stock_price, position.strike_price)
    current_rent = rent_per_day(
        position.premium_per_contract,
        position.quantity,
        fees,
        position.expiration_date,
        position.open_date,
    )

    metrics = RollMetrics(
        net_debit_credit=net,
        break_even=roll_break_even(proposal.new_strike_price, net, position.quantity),
        effective_sale_current=effective_sale_price(
            position.strike_price, position.premium_per_contract, position.quantity, fees
        ),
        effective_sale_after_roll=effective_sale_price_after_roll(
            proposal.new_strike_price,
            position.premium_per_contract,
            position.quantity,
            fees,
            net,
            position.quantity,
        ),
        estimated_theta=estimated_theta_decay(current_extrinsic, current_dte, new_dte),
        current_dte=current_dte,
        new_dte=new_dte,
        additional_days=additional_days,
        current_rent_per_day=current_rent,
        additional_premium_needed=additional_premium_needed(current_rent, additional_days),
        current_pnl=calculate_pnl(position),
        new_delta=(
            to_decimal(proposal.new_delta, "new_delta") if proposal.new_delta is not None else None
        ),
    )
    logger.debug(
        "Roll metrics for %s: net=%s, theta=%s, additional_days=%d",
        position.ticker, net, metrics.estimated_theta, additional_days,
    )
    return metrics
