"""Tests for the covered call metrics calculator."""

from datetime import date
from decimal import Decimal

import pytest

from covered_calls.calculations import (
    annualized_yield,
    calculate_derived_fields,
    calculate_pnl,
    calculate_roll_metrics,
    capital_at_risk,
    effective_sale_price,
    effective_sale_price_after_roll,
    estimated_theta_decay,
    extrinsic_buffer,
    extrinsic_buffer_risk,
    extrinsic_value,
    generate_option_ticker,
    get_moneyness,
    intrinsic_value,
    net_premium,
    rent_per_day,
    return_on_capital,
    roll_break_even,
    roll_net_debit_credit,
    total_premium,
)
from covered_calls.exceptions import InvalidInputError
from covered_calls.formatting import format_percent
from covered_calls.models import Position, RollProposal
from covered_calls.state import BufferRisk, Moneyness, PositionStatus

TODAY = date(2025, 1, 6)


def make_position(**overrides) -> Position:
    """Golden example: 2 x AAPL $460 calls at $2.50, stock $450, 30 days."""
    fields = dict(
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
    fields.update(overrides)
    return Position(**fields)


class TestGoldenScenario:
    """Documented example: stock 450, strike 460, premium 2.50, qty 2, fees 2."""

    def test_premium_and_capital(self) -> None:
        """Total, net premium and capital match the worked example."""
        metrics = calculate_derived_fields(make_position(), TODAY)

        assert metrics.total_premium == Decimal("500")
        assert metrics.net_premium == Decimal("498")
        assert metrics.capital_at_risk == Decimal("90000")

    def test_return_and_yield(self) -> None:
        """ROC is about 0.5533% and annualized yield about 6.73%."""
        metrics = calculate_derived_fields(make_position(), TODAY)

        assert abs(metrics.return_on_capital - Decimal("0.5533")) < Decimal("0.0001")
        assert abs(metrics.annualized_yield - Decimal("6.7322")) < Decimal("0.0001")
        assert format_percent(metrics.annualized_yield) == "6.73%"

    def test_rent_per_day(self) -> None:
        """Net premium spread over 30 days is $16.60 a day."""
        metrics = calculate_derived_fields(make_position(), TODAY)
        assert metrics.rent_per_day == Decimal("16.6")

    def test_effective_sale_price(self) -> None:
        """Assignment proceeds are strike plus net premium per share."""
        assert effective_sale_price(460, "2.50", 2, 2) == Decimal("462.49")

    def test_dte_and_moneyness(self) -> None:
        """On the open date the position has 30 days left and is OTM."""
        metrics = calculate_derived_fields(make_position(), TODAY)

        assert metrics.dte == 30
        assert metrics.moneyness == Moneyness.OTM

    def test_net_premium_identity(self) -> None:
        """net = total - fees and total = premium x qty x 100, exactly."""
        for premium, qty, fees in [("2.50", 2, "2"), ("0.07", 13, "1.31"), ("11.35", 1, "0")]:
            total = total_premium(premium, qty)
            assert total == Decimal(premium) * qty * 100
            assert net_premium(premium, qty, fees) == total - Decimal(fees)


class TestMoneyness:
    """Tests for ITM/ATM/OTM classification."""

    @pytest.mark.parametrize(
        "stock,expected",
        [
            ("101", Moneyness.ATM),
            ("101.01", Moneyness.ITM),
            ("100", Moneyness.ATM),
            ("99", Moneyness.ATM),
            ("98.99", Moneyness.OTM),
        ],
    )
    def test_one_percent_threshold_is_inclusive(self, stock: str, expected: Moneyness) -> None:
        """Stock exactly 1% from the strike still counts as ATM."""
        assert get_moneyness(Decimal(stock), Decimal("100")) == expected

    def test_deep_itm(self) -> None:
        assert get_moneyness(120, 100) == Moneyness.ITM


class TestOptionValue:
    """Tests for intrinsic, extrinsic and buffer values."""

    def test_intrinsic_value(self) -> None:
        assert intrinsic_value(470, 460) == Decimal("10")
        assert intrinsic_value(450, 460) == Decimal("0")

    def test_extrinsic_value_clamped_at_zero(self) -> None:
        """Extrinsic value never goes negative."""
        assert extrinsic_value("10.30", 470, 460) == Decimal("0.30")
        assert extrinsic_value(9, 470, 460) == Decimal("0")

    def test_extrinsic_buffer_is_signed(self) -> None:
        """A call trading below parity yields a negative buffer."""
        assert extrinsic_buffer(9, 470, 460) == Decimal("-1")
        assert extrinsic_buffer("1.50", 450, 460) == Decimal("11.50")

    @pytest.mark.parametrize(
        "buffer,expected",
        [
            ("-1", BufferRisk.HIGH),
            ("0.49", BufferRisk.HIGH),
            ("0.50", BufferRisk.MODERATE),
            ("1.99", BufferRisk.MODERATE),
            ("2.00", BufferRisk.ADEQUATE),
            ("4.99", BufferRisk.ADEQUATE),
            ("5.00", BufferRisk.NONE),
        ],
    )
    def test_buffer_bands(self, buffer: str, expected: BufferRisk) -> None:
        """Buffer bands have inclusive lower bounds."""
        assert extrinsic_buffer_risk(Decimal(buffer), PositionStatus.OPEN) == expected

    def test_closed_position_never_flagged(self) -> None:
        assert extrinsic_buffer_risk(Decimal("0.10"), PositionStatus.CLOSED) == BufferRisk.NOT_APPLICABLE
        assert extrinsic_buffer_risk(None, PositionStatus.OPEN) == BufferRisk.NOT_APPLICABLE


class TestDegenerateInputs:
    """Zero capital, zero holding days and expired positions never raise."""

    def test_zero_capital_gives_zero_return(self) -> None:
        assert return_on_capital("2.50", 1, 0, 0) == Decimal("0")
        assert annualized_yield("2.50", 1, 0, 0, "2025-02-05", "2025-01-06") == Decimal("0")

    def test_same_day_holding_counts_as_one_day(self) -> None:
        """open == expiration divides by one day, not zero."""
        assert rent_per_day("2.50", 1, 0, "2025-01-06", "2025-01-06") == Decimal("250")
        assert annualized_yield("2.50", 1, 0, 100, "2025-01-06", "2025-01-06") == Decimal("912.5")

    def test_expired_position_has_zero_dte(self) -> None:
        metrics = calculate_derived_fields(make_position(), date(2025, 3, 1))
        assert metrics.dte == 0

    def test_missing_option_price_defaults_to_zero(self) -> None:
        position = make_position(current_option_price=None)
        assert calculate_pnl(position) == Decimal("498")

    def test_nan_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            total_premium(float("nan"), 1)
        with pytest.raises(InvalidInputError):
            capital_at_risk("Infinity", 1)
        with pytest.raises(InvalidInputError):
            net_premium("abc", 1)


class TestPnl:
    """Tests for realized and unrealized P&L."""

    def test_open_position_uses_current_mark(self) -> None:
        """Open P&L is net premium less the current buy-back cost."""
        assert calculate_pnl(make_position()) == Decimal("198")

    def test_closed_position_uses_close_price(self) -> None:
        position = make_position()
        position.close(Decimal("0.40"))

        assert calculate_pnl(position) == Decimal("418")

    def test_closed_without_close_price_keeps_full_premium(self) -> None:
        position = make_position(status=PositionStatus.CLOSED, close_price=None)
        assert calculate_pnl(position) == Decimal("498")


class TestDerivedFields:
    """Tests for calculate_derived_fields."""

    def test_idempotent(self) -> None:
        """Same record and same date give identical results."""
        position = make_position()
        assert calculate_derived_fields(position, TODAY) == calculate_derived_fields(position, TODAY)

    def test_accepts_iso_string_date(self) -> None:
        metrics = calculate_derived_fields(make_position(), "2025-01-21")
        assert metrics.dte == 15

    def test_itm_buffer(self) -> None:
        position = make_position(stock_price=Decimal("470"), current_option_price=Decimal("10.30"))
        metrics = calculate_derived_fields(position, TODAY)

        assert metrics.moneyness == Moneyness.ITM
        assert metrics.extrinsic_buffer == Decimal("0.30")
        assert metrics.buffer_risk == BufferRisk.HIGH

    def test_closed_position_has_no_buffer(self) -> None:
        position = make_position()
        position.close(Decimal("0"))
        metrics = calculate_derived_fields(position, TODAY)

        assert metrics.extrinsic_buffer is None
        assert metrics.buffer_risk == BufferRisk.NOT_APPLICABLE


class TestRollFormulas:
    """Tests for roll cash flow, theta and sale price formulas."""

    def test_net_credit(self) -> None:
        """640 new premium - 300 close cost - 2 fees = 338 credit."""
        assert roll_net_debit_credit("1.50", "3.20", 2, 2) == Decimal("338")

    def test_net_debit_is_negative(self) -> None:
        assert roll_net_debit_credit("4.00", "3.00", 1, 0) == Decimal("-100")

    def test_theta_stays_per_share(self) -> None:
        """(1.50 / 15) x 30 added days = 3.00, with no quantity scaling."""
        assert estimated_theta_decay(Decimal("1.50"), 15, 45) == Decimal("3.00")

    def test_theta_zero_when_expired(self) -> None:
        assert estimated_theta_decay(Decimal("1.50"), 0, 30) == Decimal("0")

    def test_break_even(self) -> None:
        assert roll_break_even(465, 338, 2) == Decimal("466.69")

    def test_effective_sale_after_roll(self) -> None:
        assert effective_sale_price_after_roll(465, "2.50", 2, 2, 338, 2) == Decimal("469.18")

    def test_roll_metrics_bundle(self) -> None:
        """Full metrics for rolling the golden position 15 -> 45 DTE."""
        proposal = RollProposal(
            new_expiration_date=date(2025, 3, 7),
            new_strike_price=Decimal("465"),
            estimated_close_cost=Decimal("1.50"),
            new_premium_per_contract=Decimal("3.20"),
        )
        metrics = calculate_roll_metrics(make_position(), proposal, today=date(2025, 1, 21))

        assert metrics.current_dte == 15
        assert metrics.new_dte == 45
        assert metrics.additional_days == 30
        assert metrics.net_debit_credit == Decimal("338")
        assert metrics.estimated_theta == Decimal("3.00")
        assert metrics.current_rent_per_day == Decimal("16.6")
        assert metrics.additional_premium_needed == Decimal("498")
        assert metrics.current_pnl == Decimal("198")
        assert metrics.sale_price_improvement == Decimal("6.69")
        assert metrics.new_delta is None


class TestOptionTicker:
    """Tests for OCC symbol generation."""

    def test_call_symbol(self) -> None:
        assert generate_option_ticker("aapl", "2025-02-21", 150) == "AAPL250221C00150000"

    def test_fractional_strike(self) -> None:
        assert generate_option_ticker("SPY", date(2025, 3, 7), "152.5") == "SPY250307C00152500"

    def test_put_symbol(self) -> None:
        assert generate_option_ticker("MSFT", "2025-12-19", 420, "p") == "MSFT251219P00420000"
