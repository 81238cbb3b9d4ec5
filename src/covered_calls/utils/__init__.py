"""Shared utility functions."""

from .date_utils import days_between, days_to_expiration, holding_days, parse_date
from .numbers import ensure_finite, to_decimal

__all__ = [
    "days_between",
    "days_to_expiration",
    "holding_days",
    "parse_date",
    "ensure_finite",
    "to_decimal",
]
