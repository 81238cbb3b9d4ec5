"""Boundary validation: turn raw request data into domain objects.

Wraps the pydantic schemas so callers see a single ValidationError type
carrying a field -> message map, and checks the cross-object rules a roll
proposal has to satisfy against its position.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

import pydantic

from .exceptions import InvalidInputError, InvalidStateError, ValidationError
from .models import Position, RollProposal
from .schemas import (
    ClosePositionRequest,
    MarkUpdate,
    PositionCreate,
    PositionRecord,
    PositionUpdate,
    RollProposalRequest,
)
from .utils.date_utils import parse_date
from .utils.numbers import to_decimal

logger = logging.getLogger(__name__)


def to_validation_error(exc: pydantic.ValidationError) -> ValidationError:
    """Collapse a pydantic error into a field -> message map."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        message = err.get("msg", "Invalid value")
        errors.setdefault(field, message.removeprefix("Value error, "))
    return ValidationError(errors)


def _validate(schema: type[pydantic.BaseModel], data: Mapping[str, Any]) -> Any:
    try:
        return schema.model_validate(dict(data))
    except pydantic.ValidationError as e:
        raise to_validation_error(e) from e


def parse_position_create(data: Mapping[str, Any]) -> Position:
    """
    Validate new-position input.

    Raises:
        ValidationError: With one entry per invalid field
    """
    req: PositionCreate = _validate(PositionCreate, data)
    return Position(
        account=req.account,
        ticker=req.ticker,
        strike_price=req.strike_price,
        stock_price=req.stock_price,
        quantity=req.quantity,
        open_date=req.open_date,
        expiration_date=req.expiration_date,
        premium_per_contract=req.premium_per_contract,
        fees=req.fees,
        current_option_price=req.current_option_price,
        option_ticker=req.option_ticker,
    )


def parse_position_record(data: Mapping[str, Any]) -> Position:
    """
    Validate a full stored position (backup import).

    Empty strings are treated as missing values so CSV rows parse the same
    way as JSON objects.

    Raises:
        ValidationError: With one entry per invalid field
    """
    cleaned = {k: (None if v == "" else v) for k, v in data.items()}
    cleaned = {k: v for k, v in cleaned.items() if v is not None}
    req: PositionRecord = _validate(PositionRecord, cleaned)
    return Position(
        account=req.account,
        ticker=req.ticker,
        strike_price=req.strike_price,
        stock_price=req.stock_price,
        quantity=req.quantity,
        open_date=req.open_date,
        expiration_date=req.expiration_date,
        premium_per_contract=req.premium_per_contract,
        fees=req.fees,
        current_option_price=req.current_option_price,
        option_ticker=req.option_ticker,
        status=req.status,
        close_price=req.close_price,
        closed_at=req.closed_at,
        created_at=req.created_at,
        updated_at=req.updated_at,
    )


def apply_position_update(position: Position, data: Mapping[str, Any]) -> Position:
    """
    Merge an edit into an existing position and revalidate the result.

    Returns a new Position carrying the original id, status and lifecycle
    fields. A closed position may also have its ``close_price`` corrected.

    Raises:
        ValidationError: If the edit or the merged position is invalid
    """
    update: PositionUpdate = _validate(PositionUpdate, data)
    changes = update.model_dump(exclude_unset=True)
    close_price = changes.pop("close_price", None)
    if "close_price" in update.model_fields_set and not position.is_closed:
        raise ValidationError({"close_price": "Only closed positions have a close price"})
    merged = {
        "account": position.account,
        "ticker": position.ticker,
        "strike_price": position.strike_price,
        "stock_price": position.stock_price,
        "quantity": position.quantity,
        "open_date": position.open_date,
        "expiration_date": position.expiration_date,
        "premium_per_contract": position.premium_per_contract,
        "fees": position.fees,
        "current_option_price": position.current_option_price,
        "option_ticker": position.option_ticker,
    }
    merged.update(changes)
    updated = parse_position_create(merged)

    updated.id = position.id
    updated.status = position.status
    updated.close_price = close_price if close_price is not None else position.close_price
    updated.closed_at = position.closed_at
    updated.created_at = position.created_at
    updated.updated_at = position.updated_at
    return updated


def parse_mark_update(data: Mapping[str, Any]) -> MarkUpdate:
    """Validate a mark refresh."""
    return _validate(MarkUpdate, data)


def parse_close_price(close_price: Optional[Any]) -> Decimal:
    """Validate a buy-back price (missing means 0)."""
    data = {} if close_price is None else {"close_price": close_price}
    req: ClosePositionRequest = _validate(ClosePositionRequest, data)
    return req.close_price


def parse_roll_proposal(data: Mapping[str, Any]) -> RollProposal:
    """
    Validate roll proposal input on its own.

    Use validate_roll_proposal to check it against the position.

    Raises:
        ValidationError: With one entry per invalid field
    """
    req: RollProposalRequest = _validate(RollProposalRequest, data)
    return RollProposal(
        new_expiration_date=req.new_expiration_date,
        new_strike_price=req.new_strike_price,
        estimated_close_cost=req.estimated_close_cost,
        new_premium_per_contract=req.new_premium_per_contract,
        new_delta=req.new_delta,
    )


def validate_roll_proposal(position: Position, proposal: RollProposal) -> None:
    """
    Check a proposal against the position it would roll.

    Raises:
        InvalidStateError: If the position is not open
        ValidationError: If any proposal field is out of range or the new
            expiration is not after the current one
    """
    if not position.is_open:
        raise InvalidStateError(
            f"Roll analysis is only available for open positions "
            f"({position.ticker} #{position.id} is {position.status.value})"
        )

    errors: dict[str, str] = {}

    def check(name: str, value: Any, minimum: Decimal, strict: bool = False) -> None:
        try:
            number = to_decimal(value, name)
        except InvalidInputError as e:
            errors[name] = str(e)
            return
        if number < minimum or (strict and number == minimum):
            bound = "greater than" if strict else "at least"
            errors[name] = f"{name} must be {bound} {minimum}"

    check("new_strike_price", proposal.new_strike_price, Decimal("0"), strict=True)
    check("estimated_close_cost", proposal.estimated_close_cost, Decimal("0"))
    check("new_premium_per_contract", proposal.new_premium_per_contract, Decimal("0"))

    if proposal.new_delta is not None:
        try:
            delta = to_decimal(proposal.new_delta, "new_delta")
            if not Decimal("0") <= delta <= Decimal("1"):
                errors["new_delta"] = "new_delta must be between 0 and 1"
        except InvalidInputError as e:
            errors["new_delta"] = str(e)

    current_expiration = parse_date(position.expiration_date)
    try:
        new_expiration = parse_date(proposal.new_expiration_date)
    except (TypeError, ValueError) as e:
        errors["new_expiration_date"] = f"Invalid date: {e}"
    else:
        if new_expiration <= current_expiration:
            errors["new_expiration_date"] = (
                f"New expiration must be after current expiration "
                f"({current_expiration.isoformat()})"
            )

    if errors:
        logger.debug("Rejected roll proposal for #%s: %s", position.id, errors)
        raise ValidationError(errors)
