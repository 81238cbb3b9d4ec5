"""Custom exceptions for covered call tracking operations."""

from typing import Optional


class CoveredCallError(Exception):
    """Base exception for covered call operations."""

    pass


class InvalidInputError(CoveredCallError, ValueError):
    """A numeric input is NaN, infinite, or not a number at all."""

    pass


class ValidationError(CoveredCallError):
    """
    Field-level validation failure at the input boundary.

    Attributes:
        errors: Mapping of field name to human-readable message
    """

    def __init__(self, errors: dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        if message is None:
            message = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(message)


class InvalidStateError(CoveredCallError):
    """Operation not allowed in the position's current status."""

    pass


class PositionNotFoundError(CoveredCallError):
    """Position not found for the requesting user."""

    pass


class BackupFormatError(CoveredCallError):
    """Backup payload could not be parsed."""

    pass
