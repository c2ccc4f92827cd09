import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import directory, ledger, models, policy, schemas
from .errors import ConflictError, ConstraintViolation, NotFoundError
from .models import BookingStatus
from .policy import Principal

logger = logging.getLogger(__name__)


def create_review(db: Session, principal: Principal, data: schemas.ReviewCreate) -> models.Review:
    policy.require_authenticated(principal)
    if not 1 <= data.rating <= 5:
        raise ConstraintViolation("rating", "rating must be between 1 and 5")
    booking = ledger.get_booking(db, principal, data.booking_id)

    review = models.Review(
        booking_id=booking.id,
        customer_id=principal.id,
        mechanic_id=booking.mechanic_id,
        rating=data.rating,
        comment=data.comment or "",
    )
    policy.enforce(db, principal, policy.REVIEW, policy.INSERT, review)
    # Only the booking's own customer reviews it; the mechanic can read it too
    policy.enforce(db, principal, policy.REVIEW, policy.INSERT, booking)

    if booking.status != BookingStatus.COMPLETED:
        raise ConflictError("only completed bookings can be reviewed")
    if booking.mechanic_id is None:
        raise NotFoundError("Mechanic")
    if db.query(models.Review.id).filter(models.Review.booking_id == booking.id).first() is not None:
        raise ConflictError("booking has already been reviewed")

    db.add(review)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("booking has already been reviewed") from e
    rating = directory.refresh_rating(db, booking.mechanic_id)
    db.commit()
    db.refresh(review)
    logger.info("review %s for booking %s; mechanic %s now rated %s", review.id, booking.id, review.mechanic_id, rating)
    return review


def list_reviews(db: Session, principal: Principal, mechanic_id=None) -> List[models.Review]:
    policy.require_authenticated(principal)
    query = db.query(models.Review).filter(policy.visible(principal, models.Review))
    if mechanic_id is not None:
        query = query.filter(models.Review.mechanic_id == mechanic_id)
    return query.order_by(models.Review.created_at.desc()).all()
