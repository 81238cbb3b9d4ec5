"""Pydantic models for position and roll requests.

This module contains the request schemas used at the input boundary
(CLI, backup import, any API layer). They enforce non-negativity, date
ordering and delta range before any formula runs.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from .state import PositionStatus


class PositionCreate(BaseModel):
    """Request schema for opening a covered call position.

    Attributes:
        account: Brokerage account label
        ticker: Underlying symbol (upper-cased)
        strike_price: Call strike
        stock_price: Underlying price when the call was sold
        quantity: Number of contracts (100 shares each)
        open_date: Date the call was sold
        expiration_date: Option expiration (after open_date)
        premium_per_contract: Premium received per share
        fees: Flat commissions and fees
        current_option_price: Latest mark (0 if unknown)
        option_ticker: Optional OCC option symbol

    Example:
        >>> PositionCreate(
        >>>     account="IRA",
        >>>     ticker="msft",
        >>>     strike_price=460,
        >>>     stock_price=450,
        >>>     quantity=2,
        >>>     open_date="2025-01-06",
        >>>     expiration_date="2025-02-05",
        >>>     premium_per_contract=2.50,
        >>>     fees=2,
        >>> )
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    account: str = Field(..., min_length=1, description="Account label")
    ticker: str = Field(..., min_length=1, description="Underlying symbol")
    strike_price: Decimal = Field(..., gt=0, allow_inf_nan=False, description="Strike price")
    stock_price: Decimal = Field(..., gt=0, allow_inf_nan=False, description="Stock price")
    quantity: int = Field(..., ge=1, description="Number of contracts")
    open_date: date = Field(..., description="Open date (YYYY-MM-DD)")
    expiration_date: date = Field(..., description="Expiration date (YYYY-MM-DD)")
    premium_per_contract: Decimal = Field(
        ..., ge=0, allow_inf_nan=False, description="Premium received per share"
    )
    fees: Decimal = Field(Decimal("0"), ge=0, allow_inf_nan=False, description="Fees")
    current_option_price: Decimal = Field(
        Decimal("0"), ge=0, allow_inf_nan=False, description="Current option mark"
    )
    option_ticker: Optional[str] = Field(None, description="OCC option symbol")

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        """Upper-case the ticker symbol."""
        return v.upper()

    @field_validator("option_ticker")
    @classmethod
    def normalize_option_ticker(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank option tickers as missing."""
        if v is None or not v.strip():
            return None
        return v.strip().upper()

    @field_validator("expiration_date")
    @classmethod
    def validate_expiration_after_open(cls, v: date, info: ValidationInfo) -> date:
        """Expiration must fall strictly after the open date.

        Raises:
            ValueError: If expiration is on or before the open date
        """
        open_date = info.data.get("open_date")
        if open_date is not None and v <= open_date:
            raise ValueError("Expiration date must be after open date")
        return v


class PositionRecord(PositionCreate):
    """Full stored position as it appears in a backup file.

    Extends PositionCreate with lifecycle fields so closed positions can
    be restored as closed.
    """

    status: PositionStatus = Field(PositionStatus.OPEN, description="Open or Closed")
    close_price: Optional[Decimal] = Field(None, ge=0, allow_inf_nan=False)
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PositionUpdate(BaseModel):
    """Request schema for editing a position.

    All fields are optional. Only provided fields will be updated; the
    merged result is revalidated as a whole. ``close_price`` may only be
    corrected on a closed position.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    account: Optional[str] = Field(None, min_length=1)
    ticker: Optional[str] = Field(None, min_length=1)
    strike_price: Optional[Decimal] = Field(None, gt=0, allow_inf_nan=False)
    stock_price: Optional[Decimal] = Field(None, gt=0, allow_inf_nan=False)
    quantity: Optional[int] = Field(None, ge=1)
    open_date: Optional[date] = None
    expiration_date: Optional[date] = None
    premium_per_contract: Optional[Decimal] = Field(None, ge=0, allow_inf_nan=False)
    fees: Optional[Decimal] = Field(None, ge=0, allow_inf_nan=False)
    current_option_price: Optional[Decimal] = Field(None, ge=0, allow_inf_nan=False)
    option_ticker: Optional[str] = None
    close_price: Optional[Decimal] = Field(
        None, ge=0, allow_inf_nan=False, description="Closed positions only"
    )


class MarkUpdate(BaseModel):
    """Request schema for refreshing market marks on an open position."""

    stock_price: Optional[Decimal] = Field(None, gt=0, allow_inf_nan=False)
    current_option_price: Optional[Decimal] = Field(None, ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def require_one_price(self) -> "MarkUpdate":
        """At least one price must be supplied."""
        if self.stock_price is None and self.current_option_price is None:
            raise ValueError("Provide stock_price and/or current_option_price")
        return self


class ClosePositionRequest(BaseModel):
    """Request schema for closing a position."""

    close_price: Decimal = Field(
        Decimal("0"), ge=0, allow_inf_nan=False, description="Buy-back price per share"
    )


class RollProposalRequest(BaseModel):
    """Request schema for a roll proposal.

    Example:
        >>> RollProposalRequest(
        >>>     new_expiration_date="2025-03-07",
        >>>     new_strike_price=470,
        >>>     estimated_close_cost=1.50,
        >>>     new_premium_per_contract=3.20,
        >>>     new_delta=0.25,
        >>> )
    """

    new_expiration_date: date = Field(..., description="New expiration (YYYY-MM-DD)")
    new_strike_price: Decimal = Field(..., gt=0, allow_inf_nan=False)
    estimated_close_cost: Decimal = Field(..., ge=0, allow_inf_nan=False)
    new_premium_per_contract: Decimal = Field(..., ge=0, allow_inf_nan=False)
    new_delta: Optional[Decimal] = Field(None, ge=0, le=1, allow_inf_nan=False)
