"""
Presentation helpers for currency, percentages and risk bands.

These match the display conventions of the tracker's dashboard: two-decimal
dollars with thousands separators, whole-dollar totals, and two-decimal
percentages with a ``%`` suffix.
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Optional

from .state import BufferRisk
from .utils.numbers import to_decimal

CENT = Decimal("0.01")


def _round_half_up(amount: Decimal, quantum: Decimal) -> Decimal:
    """Quantize with enough precision for amounts beyond the default context."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() - quantum.adjusted() + 2)
        return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def format_amount(value: Any, places: int = 2) -> str:
    """
    Fixed-point string with half-up rounding, no symbol or separators.

    Example:
        >>> format_amount(Decimal("3.005"))
        '3.01'
    """
    quantum = Decimal(1).scaleb(-places)
    rounded = _round_half_up(to_decimal(value), quantum)
    return f"{rounded:.{places}f}"


def format_currency(value: Any) -> str:
    """Format as US dollars with cents, e.g. ``$1,234.56`` or ``-$12.00``."""
    amount = _round_half_up(to_decimal(value), CENT)
    sign = "-" if amount < 0 else ""
    return f"{sign}${amount.copy_abs():,.2f}"


def format_currency_whole(value: Any) -> str:
    """Format as whole US dollars, rounding halves upward, e.g. ``$1,235``."""
    amount = to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() - min(amount.as_tuple().exponent, -1) + 2)
        amount = (amount + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR)
    sign = "-" if amount < 0 else ""
    return f"{sign}${amount.copy_abs():,.0f}"


def format_percent(value: Any) -> str:
    """Format a percent value with two decimals, e.g. ``6.73%``."""
    return f"{format_amount(value)}%"


def format_buffer(buffer: Optional[Decimal], risk: BufferRisk) -> str:
    """Extrinsic buffer cell: dash for closed positions, marker plus dollars otherwise."""
    if risk == BufferRisk.NOT_APPLICABLE or buffer is None:
        return "-"
    marker = buffer_indicator(risk)
    amount = format_currency(buffer)
    return f"{marker} {amount}" if marker else amount


def buffer_indicator(risk: BufferRisk) -> str:
    """Short textual marker for a buffer risk band (empty when unflagged)."""
    return {
        BufferRisk.HIGH: "[HIGH]",
        BufferRisk.MODERATE: "[MOD]",
        BufferRisk.ADEQUATE: "[OK]",
    }.get(risk, "")
