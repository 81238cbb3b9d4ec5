"""
Main orchestrator for covered call position operations.

This module provides the PositionManager class which coordinates
position storage, metric enrichment, roll analysis and backups. All
storage calls carry the caller's UserContext explicitly.
"""

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Callable, Optional, Union

from .backup import BackupService, ImportResult
from .calculations import calculate_derived_fields, generate_option_ticker
from .constants import DEFAULT_DB_PATH
from .exceptions import InvalidStateError, PositionNotFoundError
from .models import Position, PositionMetrics, RollAnalysis, RollProposal, UserContext
from .recommend import RollAdvisor
from .repository import PositionRepository
from .state import PositionStatus, can_transition
from .summary import PortfolioSummary, summarize_positions
from .validation import (
    apply_position_update,
    parse_close_price,
    parse_mark_update,
    parse_position_create,
    parse_roll_proposal,
)

logger = logging.getLogger(__name__)

ProposalInput = Union[RollProposal, Mapping[str, Any]]


class PositionManager:
    """
    Main orchestrator for covered call positions.

    Metrics are never stored: every enriched read recomputes them against
    the manager's clock.

    Example:
        manager = PositionManager(db_path="~/.covered_calls/positions.db")
        user = UserContext("alice")
        pos = manager.create_position(user, {...})
        analysis = manager.analyze_roll(user, pos.id, {...})
        if analysis.recommendation.action is RollAction.ROLL:
            manager.execute_roll(user, pos.id, analysis.proposal)
    """

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        clock: Callable[[], date] = date.today,
    ):
        """
        Initialize the position manager.

        Args:
            db_path: Path to SQLite database file
            clock: Source of "today" for DTE and new open dates
        """
        self.repository = PositionRepository(db_path)
        self.clock = clock
        self.advisor = RollAdvisor(clock=clock)
        self.backup = BackupService(self.repository)

    # --- Position CRUD Operations ---

    def create_position(self, user: UserContext, data: Mapping[str, Any]) -> Position:
        """
        Validate and store a new open position.

        Raises:
            ValidationError: If any field is invalid
        """
        position = parse_position_create(data)
        return self.repository.create(user, position)

    def get_position(self, user: UserContext, position_id: int) -> Position:
        """
        Fetch one of the user's positions.

        Raises:
            PositionNotFoundError: If the id does not exist for this user
        """
        position = self.repository.get(user, position_id)
        if position is None:
            raise PositionNotFoundError(f"Position {position_id} not found")
        return position

    def list_positions(
        self, user: UserContext, status: Optional[PositionStatus] = None
    ) -> list[Position]:
        """List the user's positions, newest first."""
        return self.repository.list_positions(user, status=status)

    def update_position(
        self, user: UserContext, position_id: int, data: Mapping[str, Any]
    ) -> Position:
        """
        Edit fields of a position; the merged record is revalidated.

        Closed positions stay editable so mistakes in their fees, premium or
        close price can be corrected. The status itself never changes here.

        Raises:
            PositionNotFoundError: If the id does not exist for this user
            InvalidStateError: If the status does not allow edits
            ValidationError: If the edit produces an invalid position
        """
        existing = self.get_position(user, position_id)
        if not can_transition(existing.status, "edit"):
            raise InvalidStateError(
                f"Cannot edit {existing.status.value} position #{position_id}"
            )
        updated = apply_position_update(existing, data)
        if not self.repository.update(user, updated):
            raise PositionNotFoundError(f"Position {position_id} not found")
        logger.info(f"Updated position #{position_id} ({updated.ticker})")
        return updated

    def update_marks(
        self, user: UserContext, position_id: int, data: Mapping[str, Any]
    ) -> Position:
        """
        Refresh the stock price and/or option mark of an open position.

        Raises:
            PositionNotFoundError: If the id does not exist for this user
            InvalidStateError: If the position is closed
            ValidationError: If no valid price is supplied
        """
        marks = parse_mark_update(data)
        position = self.get_position(user, position_id)
        if not position.is_open:
            raise InvalidStateError(
                f"Cannot update marks on {position.status.value} position #{position_id}"
            )

        if marks.stock_price is not None:
            position.stock_price = marks.stock_price
        if marks.current_option_price is not None:
            position.current_option_price = marks.current_option_price
        if not self.repository.update(user, position):
            raise PositionNotFoundError(f"Position {position_id} not found")
        logger.debug(
            f"Marked #{position_id}: stock=${position.stock_price}, "
            f"option=${position.current_option_price}"
        )
        return position

    def close_position(
        self,
        user: UserContext,
        position_id: int,
        close_price: Optional[Any] = None,
        closed_at: Optional[datetime] = None,
    ) -> Position:
        """
        Close an open position at the buy-back price (missing price means 0).

        Raises:
            PositionNotFoundError: If the id does not exist for this user
            InvalidStateError: If the position is already closed
            ValidationError: If the close price is invalid
        """
        price = parse_close_price(close_price)
        position = self.get_position(user, position_id)
        position.close(price, closed_at)

        if not self.repository.close(user, position_id, price, position.closed_at):
            raise InvalidStateError(f"Position {position_id} is already closed")
        return position

    def delete_position(self, user: UserContext, position_id: int) -> None:
        """
        Delete a position.

        Raises:
            PositionNotFoundError: If the id does not exist for this user
        """
        if not self.repository.delete(user, position_id):
            raise PositionNotFoundError(f"Position {position_id} not found")

    # --- Enriched reads ---

    def get_enriched(self, user: UserContext, position_id: int) -> PositionMetrics:
        """Position plus derived metrics as of the manager's clock."""
        return calculate_derived_fields(self.get_position(user, position_id), self.clock())

    def list_enriched(
        self, user: UserContext, status: Optional[PositionStatus] = None
    ) -> list[PositionMetrics]:
        """All the user's positions with derived metrics."""
        today = self.clock()
        return [
            calculate_derived_fields(p, today) for p in self.list_positions(user, status)
        ]

    def get_summary(self, user: UserContext) -> PortfolioSummary:
        """Dashboard aggregates across the user's positions."""
        return summarize_positions(self.list_enriched(user))

    # --- Rolls ---

    def analyze_roll(
        self, user: UserContext, position_id: int, proposal: ProposalInput
    ) -> RollAnalysis:
        """
        Score rolling a position into the proposal. Nothing is written.

        Raises:
            PositionNotFoundError: If the id does not exist for this user
            InvalidStateError: If the position is closed
            ValidationError: If the proposal is invalid
        """
        position = self.get_position(user, position_id)
        if not isinstance(proposal, RollProposal):
            proposal = parse_roll_proposal(proposal)
        return self.advisor.analyze(position, proposal, today=self.clock())

    def execute_roll(
        self, user: UserContext, position_id: int, proposal: ProposalInput
    ) -> tuple[Position, Position]:
        """
        Carry out a roll as two independent operations.

        Closes the current position at the estimated close cost, then opens
        a new position at the proposed strike, expiration and premium with
        today's date as the open date. No roll record is kept.

        Returns:
            Tuple of (closed position, new position)

        Raises:
            PositionNotFoundError: If the id does not exist for this user
            InvalidStateError: If the position is closed
            ValidationError: If the proposal or the new position is invalid
        """
        analysis = self.analyze_roll(user, position_id, proposal)
        current = analysis.position
        target = analysis.proposal

        new_data = {
            "account": current.account,
            "ticker": current.ticker,
            "strike_price": target.new_strike_price,
            "stock_price": current.stock_price,
            "quantity": current.quantity,
            "open_date": self.clock(),
            "expiration_date": target.new_expiration_date,
            "premium_per_contract": target.new_premium_per_contract,
            "fees": current.fees,
        }
        if current.option_ticker:
            new_data["option_ticker"] = generate_option_ticker(
                current.ticker, target.new_expiration_date, target.new_strike_price
            )
        # Validate the new leg before touching the old one
        new_position = parse_position_create(new_data)

        closed = self.close_position(user, position_id, target.estimated_close_cost)
        opened = self.repository.create(user, new_position)
        logger.info(
            f"Rolled {current.ticker} #{position_id} -> #{opened.id}: "
            f"${current.strike_price} {current.expiration_date} -> "
            f"${opened.strike_price} {opened.expiration_date}"
        )
        return closed, opened

    # --- Backups ---

    def export_backup(self, user: UserContext, format: str = "json") -> str:
        """Export the user's positions as "json" or "csv"."""
        if format == "csv":
            return self.backup.export_csv(user)
        return self.backup.export_json(user)

    def import_backup(self, user: UserContext, text: str, format: str = "json") -> ImportResult:
        """Import positions from a "json" or "csv" backup."""
        if format == "csv":
            return self.backup.import_csv(user, text)
        return self.backup.import_json(user, text)

    def backup_info(self, user: UserContext) -> dict[str, Any]:
        """Schema version and position counts."""
        return self.backup.backup_info(user)
