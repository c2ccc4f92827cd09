import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, policy, schemas
from .errors import ConflictError, ConstraintViolation, NotFoundError, require
from .models import utcnow
from .policy import Principal

logger = logging.getLogger(__name__)


def create_profile(db: Session, principal: Principal, data: schemas.ProfileCreate) -> models.Profile:
    policy.require_authenticated(principal)
    try:
        role = models.Role(data.role).value
    except ValueError:
        raise ConstraintViolation("role", f"'{data.role}' is not a valid role") from None

    profile = models.Profile(
        id=data.id or principal.id,
        email=require("email", data.email),
        full_name=require("full_name", data.full_name),
        phone=data.phone or None,
        role=role,
    )
    policy.enforce(db, principal, policy.PROFILE, policy.INSERT, profile)

    if db.query(models.Profile.id).filter(models.Profile.id == profile.id).first() is not None:
        raise ConflictError("profile already exists")
    db.add(profile)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("profile already exists") from e
    db.refresh(profile)
    logger.info("profile %s created with role %s", profile.id, profile.role)
    return profile


def get_profile(db: Session, principal: Principal, profile_id=None) -> models.Profile:
    policy.require_authenticated(principal)
    profile_id = profile_id or principal.id
    profile = (
        db.query(models.Profile)
        .filter(models.Profile.id == profile_id, policy.visible(principal, models.Profile))
        .first()
    )
    if not profile:
        raise NotFoundError("Profile", profile_id)
    return profile


def update_profile(db: Session, principal: Principal, changes: schemas.ProfileUpdate) -> models.Profile:
    profile = get_profile(db, principal)
    values = changes.model_dump(exclude_unset=True)
    if "full_name" in values:
        values["full_name"] = require("full_name", values["full_name"])
    policy.enforce(db, principal, policy.PROFILE, policy.UPDATE, profile, policy.post_image(profile, values))

    for key, value in values.items():
        setattr(profile, key, value)
    profile.updated_at = utcnow()
    db.commit()
    db.refresh(profile)
    return profile


def delete_profile(db: Session, profile_id) -> int:
    """Remove a profile and, through the store's cascades, its bookings,
    mechanic row and reviews. Service-role maintenance, not exposed over HTTP.
    """
    deleted = db.query(models.Profile).filter(models.Profile.id == profile_id).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info("profile %s deleted", profile_id)
    return deleted
