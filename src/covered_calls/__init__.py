"""
Covered Call Tracker - Record covered calls and decide when to roll them.

This package tracks short calls sold against owned shares, derives yield,
P&L and extrinsic-buffer metrics on every read, and scores proposed rolls
for a premium-collection strategy that accepts assignment.

Public API:
    PositionManager: Main orchestrator for position operations
    Position: A short call sold against owned shares
    PositionMetrics: Position plus derived metrics
    RollProposal: A prospective roll to a later expiration
    RollAnalysis: Roll metrics plus recommendation
    analyze_roll_decision: Score a set of roll metrics
    calculate_derived_fields: Enrich a position for a reference date
"""

__version__ = "1.0.0"

from .calculations import calculate_derived_fields, calculate_roll_metrics, generate_option_ticker
from .exceptions import (
    BackupFormatError,
    CoveredCallError,
    InvalidInputError,
    InvalidStateError,
    PositionNotFoundError,
    ValidationError,
)
from .models import (
    Position,
    PositionMetrics,
    Recommendation,
    RecommendationItem,
    RollAnalysis,
    RollMetrics,
    RollProposal,
    UserContext,
)
from .recommend import analyze_roll_decision
from .state import (
    VALID_TRANSITIONS,
    BufferRisk,
    Moneyness,
    PositionStatus,
    RecommendationType,
    RollAction,
    can_transition,
    get_next_state,
    get_valid_actions,
)

__all__ = [
    # Core classes
    "Position",
    "PositionMetrics",
    "RollProposal",
    "RollMetrics",
    "RollAnalysis",
    "Recommendation",
    "RecommendationItem",
    "UserContext",
    # Calculations
    "calculate_derived_fields",
    "calculate_roll_metrics",
    "generate_option_ticker",
    "analyze_roll_decision",
    # State machine
    "PositionStatus",
    "Moneyness",
    "RollAction",
    "RecommendationType",
    "BufferRisk",
    "VALID_TRANSITIONS",
    "can_transition",
    "get_next_state",
    "get_valid_actions",
    # Exceptions
    "CoveredCallError",
    "InvalidInputError",
    "ValidationError",
    "InvalidStateError",
    "PositionNotFoundError",
    "BackupFormatError",
]


# Deferred imports to keep the calculator usable without storage
def __getattr__(name: str):
    """Lazy import for the storage-backed classes."""
    if name == "PositionManager":
        from .manager import PositionManager
        return PositionManager
    if name == "PositionRepository":
        from .repository import PositionRepository
        return PositionRepository
    if name == "BackupService":
        from .backup import BackupService
        return BackupService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
