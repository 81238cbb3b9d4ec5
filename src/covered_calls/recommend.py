"""
Roll recommendation engine for covered calls.

Scores a proposed roll with a fixed, ordered table of independent rules.
Each rule looks at the roll metrics, and when it fires contributes a score
adjustment and one human-readable item. The summed score maps to ROLL,
HOLD or NEUTRAL.

The strategy this engine serves is premium collection with assignment
accepted: paying a debit to dodge assignment is penalized, credits that
beat time decay and keep the current rent rate are rewarded.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional, Union

from .calculations import calculate_roll_metrics
from .constants import (
    HIGH_DELTA_THRESHOLD,
    HOLD_SCORE_THRESHOLD,
    ROLL_SCORE_THRESHOLD,
    RULE_WEIGHTS,
    SHORT_EXTENSION_DAYS,
)
from .exceptions import InvalidInputError
from .formatting import format_amount
from .models import (
    Position,
    Recommendation,
    RecommendationItem,
    RollAnalysis,
    RollMetrics,
    RollProposal,
)
from .state import RecommendationType, RollAction
from .utils.date_utils import DateLike
from .utils.numbers import ZERO, to_decimal
from .validation import validate_roll_proposal

logger = logging.getLogger(__name__)

ROLL_SUMMARY = (
    "Rolling appears favorable based on premium collection and effective "
    "sale price improvement."
)
HOLD_SUMMARY = (
    "Consider holding current position or closing rather than rolling. "
    "The economics may not justify the roll."
)
NEUTRAL_SUMMARY = (
    "The roll decision is close. Review the factors below and decide based "
    "on your current market outlook."
)


@dataclass(frozen=True)
class RollInputs:
    """Validated engine inputs."""

    net_debit_credit: Decimal
    estimated_theta: Decimal
    current_pnl: Decimal
    effective_sale_current: Decimal
    effective_sale_after_roll: Decimal
    additional_days: int
    additional_premium_needed: Decimal
    new_delta: Optional[Decimal] = None

    @property
    def price_improvement(self) -> Decimal:
        return self.effective_sale_after_roll - self.effective_sale_current

    @classmethod
    def from_metrics(cls, metrics: Union[RollMetrics, Mapping[str, Any]]) -> "RollInputs":
        """
        Build inputs from RollMetrics or a mapping with the same field names.

        Raises:
            InvalidInputError: If a value is missing, non-numeric, NaN or infinite
        """
        if isinstance(metrics, RollMetrics):
            source: Mapping[str, Any] = {
                "net_debit_credit": metrics.net_debit_credit,
                "estimated_theta": metrics.estimated_theta,
                "current_pnl": metrics.current_pnl,
                "effective_sale_current": metrics.effective_sale_current,
                "effective_sale_after_roll": metrics.effective_sale_after_roll,
                "additional_days": metrics.additional_days,
                "additional_premium_needed": metrics.additional_premium_needed,
                "new_delta": metrics.new_delta,
            }
        else:
            source = metrics

        def required(name: str) -> Decimal:
            if source.get(name) is None:
                raise InvalidInputError(f"{name} is required")
            return to_decimal(source[name], name)

        days = required("additional_days")
        if days != days.to_integral_value():
            raise InvalidInputError(f"additional_days must be a whole number, got {days}")

        delta = source.get("new_delta")
        benchmark = source.get("additional_premium_needed")
        return cls(
            net_debit_credit=required("net_debit_credit"),
            estimated_theta=required("estimated_theta"),
            current_pnl=required("current_pnl"),
            effective_sale_current=required("effective_sale_current"),
            effective_sale_after_roll=required("effective_sale_after_roll"),
            additional_days=int(days),
            additional_premium_needed=(
                to_decimal(benchmark, "additional_premium_needed") if benchmark is not None else ZERO
            ),
            new_delta=to_decimal(delta, "new_delta") if delta is not None else None,
        )


@dataclass(frozen=True)
class RuleResult:
    """Score adjustment and item produced by a fired rule."""

    score_delta: int
    item: RecommendationItem


@dataclass(frozen=True)
class RollRule:
    """
    One predicate -> (score delta, item) evaluator.

    Attributes:
        name: Key into RULE_WEIGHTS
        item_type: Category of the produced item
        title: Item title
        applies: Predicate over RollInputs
        message: Builds the item message from RollInputs
    """

    name: str
    item_type: RecommendationType
    title: str
    applies: Callable[[RollInputs], bool]
    message: Callable[[RollInputs], str]

    @property
    def weight(self) -> int:
        return RULE_WEIGHTS[self.name]

    def evaluate(self, inputs: RollInputs) -> Optional[RuleResult]:
        """Return the rule's contribution, or None when it does not fire."""
        if not self.applies(inputs):
            return None
        item = RecommendationItem(
            type=self.item_type, title=self.title, message=self.message(inputs)
        )
        return RuleResult(score_delta=self.weight, item=item)


def _usd(value: Decimal) -> str:
    return f"${format_amount(value)}"


ROLL_RULES: tuple[RollRule, ...] = (
    RollRule(
        name="net_debit",
        item_type=RecommendationType.WARNING,
        title="Net Debit Roll",
        applies=lambda r: r.net_debit_credit < 0,
        message=lambda r: (
            f"You're paying {_usd(abs(r.net_debit_credit))} to delay assignment. "
            f"Since you're comfortable with assignment, this may not align with your strategy."
        ),
    ),
    RollRule(
        name="below_theta",
        item_type=RecommendationType.CAUTION,
        title="Below Expected Theta",
        applies=lambda r: r.net_debit_credit > 0 and r.net_debit_credit < r.estimated_theta,
        message=lambda r: (
            f"Rolling for {_usd(r.net_debit_credit)} when estimated theta decay is "
            f"{_usd(r.estimated_theta)}. You're getting less than expected time decay."
        ),
    ),
    RollRule(
        name="above_theta",
        item_type=RecommendationType.POSITIVE,
        title="Above Expected Theta",
        applies=lambda r: r.net_debit_credit > 0 and r.net_debit_credit >= r.estimated_theta,
        message=lambda r: (
            f"Rolling for {_usd(r.net_debit_credit)} exceeds estimated theta of "
            f"{_usd(r.estimated_theta)} by {_usd(r.net_debit_credit - r.estimated_theta)}. "
            f"Good premium collection."
        ),
    ),
    RollRule(
        name="maintains_rent",
        item_type=RecommendationType.POSITIVE,
        title="Maintains Rent Rate",
        # A zero benchmark means no rent comparison is available
        applies=lambda r: (
            r.net_debit_credit > 0
            and r.additional_premium_needed != 0
            and r.net_debit_credit >= r.additional_premium_needed
        ),
        message=lambda r: (
            f"New premium of {_usd(r.net_debit_credit)} meets or exceeds your current "
            f"rent rate benchmark of {_usd(r.additional_premium_needed)}."
        ),
    ),
    RollRule(
        name="high_delta",
        item_type=RecommendationType.INFO,
        title="Higher Assignment Risk",
        applies=lambda r: r.new_delta is not None and r.new_delta > HIGH_DELTA_THRESHOLD,
        message=lambda r: (
            f"New delta of {format_amount(r.new_delta * 100, places=1)}% indicates higher "
            f"probability of assignment. Consider if this aligns with your goals."
        ),
    ),
    RollRule(
        name="improved_sale_price",
        item_type=RecommendationType.POSITIVE,
        title="Improved Sale Price",
        applies=lambda r: r.price_improvement > 0,
        message=lambda r: (
            f"Rolling improves your effective sale price by {_usd(r.price_improvement)} "
            f"per share (from {_usd(r.effective_sale_current)} to "
            f"{_usd(r.effective_sale_after_roll)})."
        ),
    ),
    RollRule(
        name="lower_sale_price",
        item_type=RecommendationType.WARNING,
        title="Lower Sale Price",
        applies=lambda r: r.price_improvement < 0,
        message=lambda r: (
            f"Rolling decreases your effective sale price by "
            f"{_usd(abs(r.price_improvement))} per share."
        ),
    ),
    RollRule(
        name="short_extension",
        item_type=RecommendationType.CAUTION,
        title="Short Time Extension",
        applies=lambda r: r.additional_days < SHORT_EXTENSION_DAYS,
        message=lambda r: (
            f"Only extending by {r.additional_days} days. Consider if the premium "
            f"justifies the transaction costs."
        ),
    ),
    RollRule(
        name="profit_available",
        item_type=RecommendationType.INFO,
        title="Profit Available",
        applies=lambda r: r.current_pnl > 0,
        message=lambda r: (
            f"You have {_usd(r.current_pnl)} unrealized profit. You could close now "
            f"to lock in gains instead of rolling."
        ),
    ),
)
"""Rules in evaluation order."""


def classify_score(score: int) -> RollAction:
    """Map a total score to an action using the fixed thresholds."""
    if score >= ROLL_SCORE_THRESHOLD:
        return RollAction.ROLL
    if score <= HOLD_SCORE_THRESHOLD:
        return RollAction.HOLD
    return RollAction.NEUTRAL


SUMMARIES: dict[RollAction, str] = {
    RollAction.ROLL: ROLL_SUMMARY,
    RollAction.HOLD: HOLD_SUMMARY,
    RollAction.NEUTRAL: NEUTRAL_SUMMARY,
}


def analyze_roll_decision(metrics: Union[RollMetrics, Mapping[str, Any]]) -> Recommendation:
    """
    Score a roll and produce a recommendation.

    Args:
        metrics: RollMetrics, or a mapping with net_debit_credit,
            estimated_theta, current_pnl, effective_sale_current,
            effective_sale_after_roll, additional_days,
            additional_premium_needed and optional new_delta

    Returns:
        Recommendation with action, score, ordered items and summary

    Raises:
        InvalidInputError: If any input is NaN, infinite or not numeric
    """
    inputs = RollInputs.from_metrics(metrics)

    score = 0
    items: list[RecommendationItem] = []
    for rule in ROLL_RULES:
        result = rule.evaluate(inputs)
        if result is None:
            continue
        score += result.score_delta
        items.append(result.item)

    action = classify_score(score)
    logger.debug(
        "Roll scored %d (%s) with rules: %s",
        score, action.value, [item.title for item in items],
    )
    return Recommendation(action=action, score=score, items=items, summary=SUMMARIES[action])


class RollAdvisor:
    """
    Validates a roll proposal, computes its metrics and scores it.

    Example:
        advisor = RollAdvisor()
        analysis = advisor.analyze(position, proposal, today=date(2025, 1, 6))
        print(analysis.recommendation.action)
    """

    def __init__(self, clock: Callable[[], date] = date.today):
        """
        Initialize the advisor.

        Args:
            clock: Source of the reference date when none is passed
        """
        self.clock = clock

    def analyze(
        self,
        position: Position,
        proposal: RollProposal,
        today: Optional[DateLike] = None,
    ) -> RollAnalysis:
        """
        Evaluate rolling ``position`` into ``proposal``.

        Raises:
            InvalidStateError: If the position is closed
            ValidationError: If the proposal is inconsistent with the position
        """
        validate_roll_proposal(position, proposal)
        reference = today if today is not None else self.clock()

        metrics = calculate_roll_metrics(position, proposal, today=reference)
        recommendation = analyze_roll_decision(metrics)

        logger.info(
            "Roll analysis for %s #%s: %s (score %d)",
            position.ticker, position.id, recommendation.action.value, recommendation.score,
        )
        return RollAnalysis(
            position=position,
            proposal=proposal,
            metrics=metrics,
            recommendation=recommendation,
        )
