"""State machine and classification enums for covered call positions."""

from enum import Enum


class PositionStatus(Enum):
    """
    Lifecycle of a covered call position.

    A position is created Open and may be edited freely while open. Closing
    is a one-way transition that records the buy-back price; there is no
    path back to Open.
    """

    OPEN = "Open"  # Call sold, awaiting expiration or buy-back
    CLOSED = "Closed"  # Bought back, expired, or assigned


class Moneyness(Enum):
    """Moneyness of a short call relative to the underlying."""

    ITM = "ITM"  # Stock above strike
    ATM = "ATM"  # Within 1% of strike
    OTM = "OTM"  # Stock below strike


class RollAction(Enum):
    """Overall verdict for a proposed roll."""

    ROLL = "ROLL"
    HOLD = "HOLD"
    NEUTRAL = "NEUTRAL"


class RecommendationType(Enum):
    """Category of a single recommendation item."""

    WARNING = "warning"
    CAUTION = "caution"
    POSITIVE = "positive"
    INFO = "info"


class BufferRisk(Enum):
    """Risk band for the extrinsic buffer of an open position."""

    HIGH = "high"  # < $0.50
    MODERATE = "moderate"  # $0.50 - $2.00
    ADEQUATE = "adequate"  # $2.00 - $5.00
    NONE = "none"  # >= $5.00
    NOT_APPLICABLE = "not_applicable"  # Closed positions


# Valid status transitions
VALID_TRANSITIONS: dict[PositionStatus, dict[str, PositionStatus]] = {
    PositionStatus.OPEN: {
        "edit": PositionStatus.OPEN,
        "close": PositionStatus.CLOSED,
    },
    PositionStatus.CLOSED: {
        "edit": PositionStatus.CLOSED,  # Corrections only; never reopens
    },
}


def get_valid_actions(status: PositionStatus) -> list[str]:
    """Get list of valid actions from a given status."""
    return list(VALID_TRANSITIONS.get(status, {}).keys())


def can_transition(from_status: PositionStatus, action: str) -> bool:
    """Check if a transition is valid from the current status."""
    return action in VALID_TRANSITIONS.get(from_status, {})


def get_next_state(from_status: PositionStatus, action: str) -> PositionStatus:
    """
    Get the next status after an action.

    Raises:
        ValueError: If the transition is not valid.
    """
    transitions = VALID_TRANSITIONS.get(from_status, {})
    if action not in transitions:
        valid = get_valid_actions(from_status)
        raise ValueError(
            f"Invalid action '{action}' from status '{from_status.value}'. "
            f"Valid actions: {valid}"
        )
    return transitions[action]
