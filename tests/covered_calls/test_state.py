"""Tests for the position lifecycle state machine."""

import pytest

from covered_calls.state import (
    VALID_TRANSITIONS,
    PositionStatus,
    can_transition,
    get_next_state,
    get_valid_actions,
)


class TestPositionStatus:
    """Tests for PositionStatus enum."""

    def test_status_values(self) -> None:
        """Stored status strings are capitalized."""
        assert PositionStatus.OPEN.value == "Open"
        assert PositionStatus.CLOSED.value == "Closed"

    def test_every_status_has_transition_entry(self) -> None:
        for status in PositionStatus:
            assert status in VALID_TRANSITIONS


class TestStateTransitions:
    """Tests for state transition logic."""

    def test_open_allows_edit_and_close(self) -> None:
        assert get_valid_actions(PositionStatus.OPEN) == ["edit", "close"]

    def test_closed_is_terminal(self) -> None:
        """No path leads back from Closed; corrections stay Closed."""
        assert get_valid_actions(PositionStatus.CLOSED) == ["edit"]
        assert not can_transition(PositionStatus.CLOSED, "close")
        assert get_next_state(PositionStatus.CLOSED, "edit") == PositionStatus.CLOSED

    def test_close_moves_to_closed(self) -> None:
        assert get_next_state(PositionStatus.OPEN, "close") == PositionStatus.CLOSED

    def test_edit_keeps_open(self) -> None:
        assert get_next_state(PositionStatus.OPEN, "edit") == PositionStatus.OPEN

    def test_invalid_transition_raises(self) -> None:
        """Invalid transitions name the allowed actions."""
        with pytest.raises(ValueError, match="Valid actions"):
            get_next_state(PositionStatus.CLOSED, "close")

    def test_unknown_action(self) -> None:
        assert not can_transition(PositionStatus.OPEN, "reopen")
