import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import accounts, models, policy, schemas
from .errors import AuthorizationError, ConflictError, NotFoundError, ValidationError, require
from .policy import Principal

logger = logging.getLogger(__name__)


def _check_ranges(values: dict):
    if values.get("years_experience") is not None and values["years_experience"] < 0:
        raise ValidationError("years_experience", "years of experience cannot be negative")
    if values.get("service_radius") is not None and values["service_radius"] <= 0:
        raise ValidationError("service_radius", "service radius must be positive")
    latitude = values.get("current_latitude")
    if latitude is not None and not -90 <= latitude <= 90:
        raise ValidationError("current_latitude", "latitude must be between -90 and 90")
    longitude = values.get("current_longitude")
    if longitude is not None and not -180 <= longitude <= 180:
        raise ValidationError("current_longitude", "longitude must be between -180 and 180")


def register_mechanic(db: Session, principal: Principal, data: schemas.MechanicCreate) -> models.Mechanic:
    profile = accounts.get_profile(db, principal)
    if profile.role != models.Role.MECHANIC:
        logger.warning("profile %s with role %s tried to register as mechanic", profile.id, profile.role)
        raise AuthorizationError()

    values = data.model_dump()
    values["business_name"] = require("business_name", values["business_name"])
    _check_ranges(values)
    mechanic = models.Mechanic(user_id=principal.id, **values)
    policy.enforce(db, principal, policy.MECHANIC, policy.INSERT, mechanic)

    if db.query(models.Mechanic.id).filter(models.Mechanic.user_id == principal.id).first() is not None:
        raise ConflictError("mechanic profile already exists")
    db.add(mechanic)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("mechanic profile already exists") from e
    db.refresh(mechanic)
    logger.info("mechanic %s registered for profile %s", mechanic.id, principal.id)
    return mechanic


def list_mechanics(db: Session, principal: Principal, available_only: bool = False) -> List[models.Mechanic]:
    policy.require_authenticated(principal)
    query = db.query(models.Mechanic).filter(policy.visible(principal, models.Mechanic))
    if available_only:
        query = query.filter(models.Mechanic.is_available.is_(True))
    return query.order_by(models.Mechanic.rating.desc(), models.Mechanic.business_name).all()


def get_mechanic(db: Session, principal: Principal, mechanic_id) -> models.Mechanic:
    policy.require_authenticated(principal)
    mechanic = db.query(models.Mechanic).filter(models.Mechanic.id == mechanic_id).first()
    if not mechanic:
        raise NotFoundError("Mechanic", mechanic_id)
    policy.enforce(db, principal, policy.MECHANIC, policy.SELECT, mechanic)
    return mechanic


def get_own_mechanic(db: Session, principal: Principal) -> models.Mechanic:
    policy.require_authenticated(principal)
    mechanic = db.query(models.Mechanic).filter(models.Mechanic.user_id == principal.id).first()
    if not mechanic:
        raise NotFoundError("Mechanic")
    return mechanic


def update_mechanic(db: Session, principal: Principal, changes: schemas.MechanicUpdate) -> models.Mechanic:
    """Availability, location and business details; only the owner may write."""
    mechanic = get_own_mechanic(db, principal)
    values = changes.model_dump(exclude_unset=True)
    if "business_name" in values:
        values["business_name"] = require("business_name", values["business_name"])
    for field in ("years_experience", "service_radius", "is_available", "certifications"):
        if field in values and values[field] is None:
            raise ValidationError(field, f"{field} cannot be null")
    _check_ranges(values)
    policy.enforce(db, principal, policy.MECHANIC, policy.UPDATE, mechanic, policy.post_image(mechanic, values))

    for key, value in values.items():
        setattr(mechanic, key, value)
    db.commit()
    db.refresh(mechanic)
    return mechanic


def record_completed_job(db: Session, mechanic_id) -> None:
    # Runs inside the caller's transaction; no commit here
    db.query(models.Mechanic).filter(models.Mechanic.id == mechanic_id).update(
        {models.Mechanic.total_jobs: models.Mechanic.total_jobs + 1}, synchronize_session=False
    )


def refresh_rating(db: Session, mechanic_id) -> Decimal:
    average = db.query(func.avg(models.Review.rating)).filter(models.Review.mechanic_id == mechanic_id).scalar()
    rating = Decimal(str(average or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    db.query(models.Mechanic).filter(models.Mechanic.id == mechanic_id).update(
        {models.Mechanic.rating: rating}, synchronize_session=False
    )
    return rating


def delete_mechanic(db: Session, mechanic_id) -> int:
    """Remove a mechanic row. Its bookings stay, with mechanic_id set to NULL.

    Service-role maintenance, not exposed over HTTP.
    """
    deleted = db.query(models.Mechanic).filter(models.Mechanic.id == mechanic_id).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info("mechanic %s deleted", mechanic_id)
    return deleted
