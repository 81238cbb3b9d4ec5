"""
Portfolio-level aggregates for covered call positions.

Rolls enriched positions up into the dashboard figures: premium
collected, P&L split by open/closed, capital at risk and average yield.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .formatting import format_currency_whole, format_percent
from .models import PositionMetrics
from .state import PositionStatus
from .utils.numbers import ZERO

logger = logging.getLogger(__name__)


@dataclass
class PortfolioSummary:
    """Aggregate metrics across a user's positions."""

    open_positions: int = 0
    closed_positions: int = 0
    total_premium_collected: Decimal = ZERO  # Net of fees, all positions
    total_pnl: Decimal = ZERO
    open_pnl: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    capital_at_risk: Decimal = ZERO  # Open positions only
    average_annualized_yield: Decimal = ZERO  # Open positions only

    @property
    def total_positions(self) -> int:
        return self.open_positions + self.closed_positions

    def as_display(self) -> dict[str, str]:
        """Formatted values for display."""
        return {
            "open_positions": str(self.open_positions),
            "closed_positions": str(self.closed_positions),
            "total_premium_collected": format_currency_whole(self.total_premium_collected),
            "capital_at_risk": format_currency_whole(self.capital_at_risk),
            "total_pnl": format_currency_whole(self.total_pnl),
            "open_pnl": format_currency_whole(self.open_pnl),
            "realized_pnl": format_currency_whole(self.realized_pnl),
            "average_annualized_yield": format_percent(self.average_annualized_yield),
        }


def summarize_positions(enriched: Iterable[PositionMetrics]) -> PortfolioSummary:
    """
    Aggregate enriched positions.

    Args:
        enriched: Positions with metrics already computed for one reference date

    Returns:
        PortfolioSummary (all zeros for an empty portfolio)
    """
    summary = PortfolioSummary()
    yield_total = ZERO

    for metrics in enriched:
        summary.total_premium_collected += metrics.net_premium
        summary.total_pnl += metrics.pnl

        if metrics.position.status == PositionStatus.OPEN:
            summary.open_positions += 1
            summary.open_pnl += metrics.pnl
            summary.capital_at_risk += metrics.capital_at_risk
            yield_total += metrics.annualized_yield
        else:
            summary.closed_positions += 1
            summary.realized_pnl += metrics.pnl

    if summary.open_positions > 0:
        summary.average_annualized_yield = yield_total / summary.open_positions

    logger.debug(
        "Summarized %d positions (%d open)", summary.total_positions, summary.open_positions
    )
    return summary
