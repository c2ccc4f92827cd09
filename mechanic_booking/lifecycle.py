from typing import Iterable, Union

from .errors import ConflictError, ConstraintViolation
from .models import BookingStatus, Role

PENDING = BookingStatus.PENDING
ACCEPTED = BookingStatus.ACCEPTED
IN_PROGRESS = BookingStatus.IN_PROGRESS
COMPLETED = BookingStatus.COMPLETED
CANCELLED = BookingStatus.CANCELLED

TERMINAL = frozenset({COMPLETED, CANCELLED})

TRANSITIONS = {
    Role.CUSTOMER: frozenset({(PENDING, CANCELLED)}),
    Role.MECHANIC: frozenset(
        {
            (PENDING, ACCEPTED),
            (ACCEPTED, IN_PROGRESS),
            (IN_PROGRESS, COMPLETED),
            (PENDING, CANCELLED),
            (ACCEPTED, CANCELLED),
        }
    ),
}


def parse_status(value: Union[str, BookingStatus]) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise ConstraintViolation("status", f"'{value}' is not a valid booking status") from None


def can_transition(current, requested, actor_role) -> bool:
    """Whether ``actor_role`` may move a booking from ``current`` to ``requested``."""
    try:
        current = BookingStatus(current)
        requested = BookingStatus(requested)
        actor_role = Role(actor_role)
    except ValueError:
        return False
    return (current, requested) in TRANSITIONS[actor_role]


def check_transition(current, requested, actor_roles: Iterable) -> BookingStatus:
    requested = parse_status(requested)
    roles = list(actor_roles)
    if any(can_transition(current, requested, role) for role in roles):
        return requested
    if BookingStatus(current) in TERMINAL:
        raise ConflictError(f"booking is already {BookingStatus(current).value}")
    raise ConflictError(f"cannot move booking from {BookingStatus(current).value} to {requested.value}")
