"""Row-level access policies.

Every domain operation asks this module whether the calling principal may
touch a row, either one row at a time (``enforce``) or as a SQL filter that
is folded into list queries (``visible``). Both forms express the same
predicates; a (table, operation) pair with no policy is denied, as is the
anonymous principal.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from sqlalchemy import false, inspect, or_, select, true
from sqlalchemy.orm import Session

from . import models
from .errors import AuthorizationError

logger = logging.getLogger(__name__)

PROFILE = "profile"
MECHANIC = "mechanic"
SERVICE = "service"
BOOKING = "booking"
REVIEW = "review"

SELECT = "select"
INSERT = "insert"
UPDATE = "update"
ACCEPT = "accept"


@dataclass(frozen=True)
class Principal:
    """The actor issuing a request. ``id`` is None for anonymous callers."""

    id: Optional[uuid.UUID] = None

    @property
    def authenticated(self) -> bool:
        return self.id is not None


ANONYMOUS = Principal()


def _value(row: Any, name: str):
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def post_image(row, changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Column values of ``row`` as they would read after applying ``changes``."""
    image = {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}
    image.update(changes)
    return image


# ────────────────────────────── OWNERSHIP ──────────────────────────────

def owned_mechanic_ids(principal: Principal):
    return select(models.Mechanic.id).where(models.Mechanic.user_id == principal.id)


def owns_mechanic(db: Session, principal: Principal, mechanic_id) -> bool:
    if mechanic_id is None:
        return False
    found = (
        db.query(models.Mechanic.id)
        .filter(models.Mechanic.id == mechanic_id, models.Mechanic.user_id == principal.id)
        .first()
    )
    return found is not None


def _owns_any_mechanic(db: Session, principal: Principal) -> bool:
    return db.query(models.Mechanic.id).filter(models.Mechanic.user_id == principal.id).first() is not None


# ────────────────────────────── PREDICATES ──────────────────────────────

Predicate = Callable[[Session, Principal, Any], bool]


def _anyone(db, principal, row) -> bool:
    return True


def _is_self(db, principal, row) -> bool:
    return _value(row, "id") == principal.id


def _is_owner(db, principal, row) -> bool:
    return _value(row, "user_id") == principal.id


def _is_customer(db, principal, row) -> bool:
    return _value(row, "customer_id") == principal.id


def _is_party(db, principal, row) -> bool:
    return _is_customer(db, principal, row) or owns_mechanic(db, principal, _value(row, "mechanic_id"))


def _is_mechanic(db, principal, row) -> bool:
    # Unassigned bookings are invisible to mechanics, so claiming needs its own rule.
    # The ledger checks that the booking is still open.
    return _owns_any_mechanic(db, principal)


POLICIES: Dict[Tuple[str, str], Predicate] = {
    (PROFILE, SELECT): _is_self,
    (PROFILE, INSERT): _is_self,
    (PROFILE, UPDATE): _is_self,
    (MECHANIC, SELECT): _anyone,
    (MECHANIC, INSERT): _is_owner,
    (MECHANIC, UPDATE): _is_owner,
    (SERVICE, SELECT): _anyone,
    (BOOKING, SELECT): _is_party,
    (BOOKING, INSERT): _is_customer,
    (BOOKING, UPDATE): _is_party,
    (BOOKING, ACCEPT): _is_mechanic,
    (REVIEW, SELECT): _anyone,
    (REVIEW, INSERT): _is_customer,
}


def is_permitted(db: Session, principal: Principal, table: str, operation: str, row, new_row=None) -> bool:
    """Evaluate the policy for one row.

    For updates the predicate must hold for the row as stored and, when
    ``new_row`` is given, for the row as it would be written.
    """
    if not principal.authenticated:
        return False
    predicate = POLICIES.get((table, operation))
    if predicate is None:
        return False
    if not predicate(db, principal, row):
        return False
    if new_row is not None:
        return predicate(db, principal, new_row)
    return True


def enforce(db: Session, principal: Principal, table: str, operation: str, row, new_row=None) -> None:
    if not is_permitted(db, principal, table, operation, row, new_row):
        logger.warning("policy denied %s on %s for principal %s", operation, table, principal.id)
        raise AuthorizationError()


def require_authenticated(principal: Principal) -> None:
    if not principal.authenticated:
        logger.warning("anonymous request denied")
        raise AuthorizationError()


def visible(principal: Principal, model):
    """SQL filter selecting the rows of ``model`` the principal may read."""
    if not principal.authenticated:
        return false()
    if model is models.Profile:
        return models.Profile.id == principal.id
    if model is models.Booking:
        return or_(
            models.Booking.customer_id == principal.id,
            models.Booking.mechanic_id.in_(owned_mechanic_ids(principal)),
        )
    if model in (models.Mechanic, models.Service, models.Review):
        return true()
    return false()
