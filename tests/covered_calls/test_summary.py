"""Tests for portfolio summary aggregation."""

from datetime import date
from decimal import Decimal

from covered_calls.calculations import calculate_derived_fields
from covered_calls.models import Position
from covered_calls.summary import summarize_positions

TODAY = date(2025, 1, 21)


def open_position() -> Position:
    return Position(
        id=1,
        account="IRA",
        ticker="AAPL",
        strike_price=Decimal("460"),
        stock_price=Decimal("450"),
        quantity=2,
        open_date=date(2025, 1, 6),
        expiration_date=date(2025, 2, 5),
        premium_per_contract=Decimal("2.50"),
        fees=Decimal("2"),
        current_option_price=Decimal("1.50"),
    )


def closed_position() -> Position:
    position = Position(
        id=2,
        account="IRA",
        ticker="KO",
        strike_price=Decimal("105"),
        stock_price=Decimal("100"),
        quantity=1,
        open_date=date(2025, 1, 2),
        expiration_date=date(2025, 1, 17),
        premium_per_contract=Decimal("1.00"),
    )
    position.close(Decimal("0.20"))
    return position


class TestSummarizePositions:
    """Tests for summarize_positions."""

    def test_empty_portfolio(self) -> None:
        summary = summarize_positions([])

        assert summary.total_positions == 0
        assert summary.total_premium_collected == Decimal("0")
        assert summary.average_annualized_yield == Decimal("0")

    def test_open_and_closed(self) -> None:
        """Capital and yield count open positions only."""
        enriched = [
            calculate_derived_fields(open_position(), TODAY),
            calculate_derived_fields(closed_position(), TODAY),
        ]
        summary = summarize_positions(enriched)

        assert summary.open_positions == 1
        assert summary.closed_positions == 1
        assert summary.total_premium_collected == Decimal("598")
        assert summary.open_pnl == Decimal("198")
        assert summary.realized_pnl == Decimal("80")
        assert summary.total_pnl == Decimal("278")
        assert summary.capital_at_risk == Decimal("90000")
        assert summary.average_annualized_yield == enriched[0].annualized_yield

    def test_average_yield(self) -> None:
        first = calculate_derived_fields(open_position(), TODAY)
        second_position = open_position()
        second_position.premium_per_contract = Decimal("5.00")
        second = calculate_derived_fields(second_position, TODAY)

        summary = summarize_positions([first, second])

        expected = (first.annualized_yield + second.annualized_yield) / 2
        assert summary.average_annualized_yield == expected

    def test_as_display(self) -> None:
        enriched = [
            calculate_derived_fields(open_position(), TODAY),
            calculate_derived_fields(closed_position(), TODAY),
        ]
        display = summarize_positions(enriched).as_display()

        assert display["total_premium_collected"] == "$598"
        assert display["capital_at_risk"] == "$90,000"
        assert display["total_pnl"] == "$278"
        assert display["average_annualized_yield"] == "6.73%"
        assert display["open_positions"] == "1"
