"""Data models for covered call positions, roll proposals and recommendations."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from .constants import CONTRACT_MULTIPLIER
from .exceptions import InvalidStateError
from .state import (
    BufferRisk,
    Moneyness,
    PositionStatus,
    RecommendationType,
    RollAction,
    can_transition,
    get_next_state,
)


def _serialize(value: Any) -> Any:
    """Render a field value in its storage/export form."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (PositionStatus, Moneyness, BufferRisk, RollAction, RecommendationType)):
        return value.value
    return value


@dataclass(frozen=True)
class UserContext:
    """Authenticated caller. Every storage call is scoped by ``user_id``."""

    user_id: str

    def __post_init__(self) -> None:
        if not self.user_id or not self.user_id.strip():
            raise ValueError("user_id must be a non-empty string")


@dataclass
class Position:
    """
    A short call sold against owned shares.

    Stores only raw inputs. Every derived figure (DTE, yield, P&L, buffer)
    is recomputed from these fields on read; see calculations.py.

    ``stock_price`` is the underlying price recorded when the call was
    opened. Mark updates refresh it alongside ``current_option_price``.
    """

    id: Optional[int] = None
    account: str = ""
    ticker: str = ""
    strike_price: Decimal = Decimal("0")
    stock_price: Decimal = Decimal("0")
    quantity: int = 1
    open_date: date = field(default_factory=date.today)
    expiration_date: date = field(default_factory=date.today)
    premium_per_contract: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")
    current_option_price: Decimal = Decimal("0")
    option_ticker: Optional[str] = None
    status: PositionStatus = PositionStatus.OPEN
    close_price: Optional[Decimal] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        """True while the call is still outstanding."""
        return self.status == PositionStatus.OPEN

    @property
    def is_closed(self) -> bool:
        """True once the position has been closed."""
        return self.status == PositionStatus.CLOSED

    @property
    def shares(self) -> int:
        """Number of shares covered by this position."""
        return self.quantity * CONTRACT_MULTIPLIER

    def close(self, close_price: Decimal, closed_at: Optional[datetime] = None) -> None:
        """
        Mark the position closed at the given buy-back price.

        Args:
            close_price: Price per share paid to close the call
            closed_at: Close timestamp (defaults to now)

        Raises:
            InvalidStateError: If the position is already closed
        """
        if not can_transition(self.status, "close"):
            raise InvalidStateError(
                f"Position {self.id} ({self.ticker}) is already {self.status.value}"
            )
        self.status = get_next_state(self.status, "close")
        self.close_price = close_price
        self.closed_at = closed_at or datetime.now()

    def to_dict(self) -> dict[str, Any]:
        """Stored fields in export form (decimals as strings, ISO dates)."""
        return {
            "id": self.id,
            "account": self.account,
            "ticker": self.ticker,
            "strike_price": _serialize(self.strike_price),
            "stock_price": _serialize(self.stock_price),
            "option_ticker": self.option_ticker,
            "quantity": self.quantity,
            "open_date": _serialize(self.open_date),
            "expiration_date": _serialize(self.expiration_date),
            "premium_per_contract": _serialize(self.premium_per_contract),
            "fees": _serialize(self.fees),
            "current_option_price": _serialize(self.current_option_price),
            "status": _serialize(self.status),
            "closed_at": _serialize(self.closed_at),
            "close_price": _serialize(self.close_price),
            "created_at": _serialize(self.created_at),
            "updated_at": _serialize(self.updated_at),
        }


@dataclass
class RollProposal:
    """
    A prospective roll of an open position to a later expiration.

    Never persisted. ``estimated_close_cost`` and
    ``new_premium_per_contract`` are per-share option prices, like
    ``premium_per_contract`` on Position.
    """

    new_expiration_date: date
    new_strike_price: Decimal
    estimated_close_cost: Decimal
    new_premium_per_contract: Decimal
    new_delta: Optional[Decimal] = None


@dataclass
class PositionMetrics:
    """
    Enriched view of a position: stored fields plus derived metrics.

    Recomputed on every read for the supplied reference date and never
    stored. ``extrinsic_buffer`` is None for closed positions.
    """

    position: Position
    dte: int
    moneyness: Moneyness
    total_premium: Decimal
    net_premium: Decimal
    capital_at_risk: Decimal
    return_on_capital: Decimal  # percent
    annualized_yield: Decimal  # percent
    rent_per_day: Decimal
    pnl: Decimal
    extrinsic_buffer: Optional[Decimal]
    buffer_risk: BufferRisk

    def to_dict(self) -> dict[str, Any]:
        """Stored fields plus every derived metric, in export form."""
        data = self.position.to_dict()
        data.update(
            {
                "dte": self.dte,
                "moneyness": _serialize(self.moneyness),
                "total_premium": _serialize(self.total_premium),
                "net_premium": _serialize(self.net_premium),
                "capital_at_risk": _serialize(self.capital_at_risk),
                "return_on_capital": _serialize(self.return_on_capital),
                "annualized_yield": _serialize(self.annualized_yield),
                "rent_per_day": _serialize(self.rent_per_day),
                "pnl": _serialize(self.pnl),
                "extrinsic_buffer": _serialize(self.extrinsic_buffer),
                "buffer_risk": _serialize(self.buffer_risk),
            }
        )
        return data


@dataclass
class RollMetrics:
    """Derived figures for a position + roll proposal pair."""

    net_debit_credit: Decimal  # Positive = credit received
    break_even: Decimal
    effective_sale_current: Decimal
    effective_sale_after_roll: Decimal
    estimated_theta: Decimal
    current_dte: int
    new_dte: int
    additional_days: int
    current_rent_per_day: Decimal
    additional_premium_needed: Decimal
    current_pnl: Decimal
    new_delta: Optional[Decimal] = None

    @property
    def sale_price_improvement(self) -> Decimal:
        """Change in effective sale price per share if the roll is taken."""
        return self.effective_sale_after_roll - self.effective_sale_current

    def to_dict(self) -> dict[str, Any]:
        """Metrics in export form."""
        return {
            "net_debit_credit": _serialize(self.net_debit_credit),
            "break_even": _serialize(self.break_even),
            "effective_sale_current": _serialize(self.effective_sale_current),
            "effective_sale_after_roll": _serialize(self.effective_sale_after_roll),
            "estimated_theta": _serialize(self.estimated_theta),
            "current_dte": self.current_dte,
            "new_dte": self.new_dte,
            "additional_days": self.additional_days,
            "current_rent_per_day": _serialize(self.current_rent_per_day),
            "additional_premium_needed": _serialize(self.additional_premium_needed),
            "current_pnl": _serialize(self.current_pnl),
            "new_delta": _serialize(self.new_delta),
        }


@dataclass
class RecommendationItem:
    """One human-readable finding from the roll engine."""

    type: RecommendationType
    title: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "title": self.title, "message": self.message}


@dataclass
class Recommendation:
    """Outcome of scoring a roll."""

    action: RollAction
    score: int
    items: list[RecommendationItem] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "score": self.score,
            "recommendations": [item.to_dict() for item in self.items],
            "summary": self.summary,
        }


@dataclass
class RollAnalysis:
    """Everything the caller needs to present or act on a roll."""

    position: Position
    proposal: RollProposal
    metrics: RollMetrics
    recommendation: Recommendation

    def to_dict(self) -> dict[str, Any]:
        data = self.metrics.to_dict()
        data["position_id"] = self.position.id
        data["recommendation"] = self.recommendation.to_dict()
        return data
