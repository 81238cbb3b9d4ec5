"""
Shared constants for covered call metrics and roll scoring.

This module centralizes the fixed values used by the calculator and the
recommendation engine. None of them are user-configurable.
"""

from decimal import Decimal

# =============================================================================
# Contract Sizing
# =============================================================================

CONTRACT_MULTIPLIER = 100
"""Shares controlled by one option contract."""


# =============================================================================
# Moneyness
# =============================================================================

ATM_THRESHOLD_PCT = Decimal("0.01")
"""Distance from strike (as a fraction of strike) still treated as ATM."""


# =============================================================================
# Extrinsic Buffer Bands (open positions only)
# =============================================================================

BUFFER_HIGH_RISK = Decimal("0.50")
"""Buffer below this value is high risk."""

BUFFER_MODERATE_RISK = Decimal("2.00")
"""Buffer below this value (and >= high risk band) is moderate risk."""

BUFFER_ADEQUATE = Decimal("5.00")
"""Buffer below this value is adequate; at or above it no flag is raised."""


# =============================================================================
# Roll Classification
# =============================================================================

ROLL_SCORE_THRESHOLD = 30
"""Score at or above which a roll is recommended."""

HOLD_SCORE_THRESHOLD = -30
"""Score at or below which holding (or closing) is recommended."""

HIGH_DELTA_THRESHOLD = Decimal("0.3")
"""New delta above this value flags higher assignment risk."""

SHORT_EXTENSION_DAYS = 7
"""Extensions shorter than this many days are flagged."""


# =============================================================================
# Rule Weights
# =============================================================================

RULE_WEIGHTS: dict[str, int] = {
    "net_debit": -50,
    "below_theta": -20,
    "above_theta": 30,
    "maintains_rent": 20,
    "high_delta": -10,
    "improved_sale_price": 25,
    "lower_sale_price": -30,
    "short_extension": -15,
    "profit_available": 0,
}
"""Score adjustment applied when each roll rule fires."""


# =============================================================================
# Persistence
# =============================================================================

SCHEMA_VERSION = 1
"""Current positions table schema version."""

DEFAULT_DB_PATH = "~/.covered_calls/positions.db"
"""Default SQLite database location."""
