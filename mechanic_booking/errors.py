"""Failure taxonomy shared by every domain operation.

Routers translate these into HTTP responses in ``main``; nothing in the
domain layer retries or swallows them.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for domain failures surfaced to the caller."""


class ValidationError(BookingError):
    """A required field is missing or a value is out of range."""

    def __init__(self, field: Optional[str], message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class ConstraintViolation(ValidationError):
    """A value breaks a store-level constraint (enum domain, rating, price)."""


class AuthorizationError(BookingError):
    # Callers only ever see this text, never which predicate failed
    message = "Not authorized"

    def __init__(self):
        super().__init__(self.message)


class NotFoundError(BookingError):
    def __init__(self, entity: str, identifier=None):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.identifier = identifier


class ConflictError(BookingError):
    """Lost an acceptance race, attempted an illegal transition, or a duplicate."""


def require(field: str, value):
    """Return ``value`` (stripped if text) or raise if it is missing or blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(field, f"{field} is required")
    return value.strip() if isinstance(value, str) else value
