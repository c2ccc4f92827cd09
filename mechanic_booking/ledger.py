"""Booking ledger: creation, reads and every status change.

Bookings are never deleted here; terminal states stay on record. All status
writes are conditional updates keyed on the status the caller saw, so a
concurrent writer makes the loser fail with ``ConflictError`` instead of
overwriting.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from . import catalog, directory, lifecycle, models, policy, schemas
from .errors import (
    AuthorizationError,
    ConflictError,
    ConstraintViolation,
    NotFoundError,
    ValidationError,
    require,
)
from .models import BookingStatus, Role, utcnow
from .policy import Principal

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("service_id", "vehicle_make", "vehicle_model", "vehicle_year", "location_address")
TEXT_FIELDS = ("vehicle_make", "vehicle_model", "location_address")
OLDEST_VEHICLE_YEAR = 1900


def _check_vehicle_year(year):
    newest = utcnow().year + 1
    if not OLDEST_VEHICLE_YEAR <= year <= newest:
        raise ValidationError("vehicle_year", f"vehicle year must be between {OLDEST_VEHICLE_YEAR} and {newest}")


def _check_coordinates(latitude, longitude):
    if latitude is not None and not -90 <= latitude <= 90:
        raise ValidationError("location_latitude", "latitude must be between -90 and 90")
    if longitude is not None and not -180 <= longitude <= 180:
        raise ValidationError("location_longitude", "longitude must be between -180 and 180")


def _as_utc(moment: datetime) -> datetime:
    # SQLite keeps only the wall clock, so aware times are stored as UTC
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc)


def _load(db: Session, booking_id) -> models.Booking:
    booking = db.query(models.Booking).filter(models.Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


def _actor_roles(db: Session, principal: Principal, booking: models.Booking) -> List[Role]:
    roles = []
    if booking.customer_id == principal.id:
        roles.append(Role.CUSTOMER)
    if policy.owns_mechanic(db, principal, booking.mechanic_id):
        roles.append(Role.MECHANIC)
    return roles


# ────────────────────────────── CREATE ──────────────────────────────

def create_booking(db: Session, principal: Principal, data: schemas.BookingCreate) -> models.Booking:
    policy.require_authenticated(principal)
    for field in REQUIRED_FIELDS:
        require(field, getattr(data, field))
    _check_vehicle_year(data.vehicle_year)
    _check_coordinates(data.location_latitude, data.location_longitude)

    customer_id = data.customer_id or principal.id
    policy.enforce(
        db, principal, policy.BOOKING, policy.INSERT, {"customer_id": customer_id, "mechanic_id": data.mechanic_id}
    )
    if db.query(models.Profile.id).filter(models.Profile.id == customer_id).first() is None:
        raise NotFoundError("Profile", customer_id)

    service = catalog.get_service(db, principal, data.service_id)
    if data.mechanic_id is not None:
        mechanic = directory.get_mechanic(db, principal, data.mechanic_id)
        if not mechanic.is_available:
            raise ValidationError("mechanic_id", "selected mechanic is not available")

    booking = models.Booking(
        customer_id=customer_id,
        mechanic_id=data.mechanic_id,
        service_id=service.id,
        status=BookingStatus.PENDING.value,
        vehicle_make=data.vehicle_make.strip(),
        vehicle_model=data.vehicle_model.strip(),
        vehicle_year=data.vehicle_year,
        location_address=data.location_address.strip(),
        location_latitude=data.location_latitude or 0.0,
        location_longitude=data.location_longitude or 0.0,
        scheduled_time=_as_utc(data.scheduled_time or utcnow()),
        total_price=service.base_price,
        notes=data.notes or "",
    )
    db.add(booking)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConstraintViolation(None, "booking violates a store constraint") from e
    db.refresh(booking)
    logger.info("booking %s created by %s for service %s at %s", booking.id, customer_id, service.id, booking.total_price)
    return booking


# ────────────────────────────── READ ──────────────────────────────

def list_bookings(db: Session, principal: Principal, status: Optional[str] = None) -> List[models.Booking]:
    """Bookings the principal takes part in, newest first, with service and mechanic joined."""
    policy.require_authenticated(principal)
    query = (
        db.query(models.Booking)
        .options(joinedload(models.Booking.service), joinedload(models.Booking.mechanic))
        .filter(policy.visible(principal, models.Booking))
    )
    if status is not None:
        query = query.filter(models.Booking.status == lifecycle.parse_status(status).value)
    return query.order_by(models.Booking.created_at.desc()).all()


def get_booking(db: Session, principal: Principal, booking_id) -> models.Booking:
    # Rows outside the read policy are reported as absent
    policy.require_authenticated(principal)
    booking = (
        db.query(models.Booking)
        .options(joinedload(models.Booking.service), joinedload(models.Booking.mechanic))
        .filter(models.Booking.id == booking_id, policy.visible(principal, models.Booking))
        .first()
    )
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


# ────────────────────────────── STATUS ──────────────────────────────

def _claim(db: Session, booking_id, mechanic_id) -> int:
    """Assign and accept in one statement; returns the number of rows won (0 or 1)."""
    return (
        db.query(models.Booking)
        .filter(
            models.Booking.id == booking_id,
            models.Booking.status == BookingStatus.PENDING.value,
            or_(models.Booking.mechanic_id.is_(None), models.Booking.mechanic_id == mechanic_id),
        )
        .update(
            {
                models.Booking.mechanic_id: mechanic_id,
                models.Booking.status: BookingStatus.ACCEPTED.value,
                models.Booking.updated_at: utcnow(),
            },
            synchronize_session=False,
        )
    )


def accept_booking(db: Session, principal: Principal, booking_id) -> models.Booking:
    policy.require_authenticated(principal)
    booking = _load(db, booking_id)
    policy.enforce(db, principal, policy.BOOKING, policy.ACCEPT, booking)
    mechanic = directory.get_own_mechanic(db, principal)

    if booking.mechanic_id is not None and booking.mechanic_id != mechanic.id:
        raise ConflictError("booking is assigned to another mechanic")
    lifecycle.check_transition(booking.status, BookingStatus.ACCEPTED, [Role.MECHANIC])
    policy.enforce(
        db,
        principal,
        policy.BOOKING,
        policy.UPDATE,
        policy.post_image(booking, {"mechanic_id": mechanic.id, "status": BookingStatus.ACCEPTED.value}),
    )

    if _claim(db, booking.id, mechanic.id) == 0:
        db.rollback()
        logger.warning("mechanic %s lost the race to accept booking %s", mechanic.id, booking_id)
        raise ConflictError("booking was accepted by another mechanic")
    db.commit()
    db.refresh(booking)
    logger.info("booking %s accepted by mechanic %s", booking.id, mechanic.id)
    return booking


def update_booking_status(db: Session, principal: Principal, booking_id, status) -> models.Booking:
    policy.require_authenticated(principal)
    requested = lifecycle.parse_status(status)
    if requested == BookingStatus.ACCEPTED:
        return accept_booking(db, principal, booking_id)

    booking = _load(db, booking_id)
    policy.enforce(
        db, principal, policy.BOOKING, policy.UPDATE, booking, policy.post_image(booking, {"status": requested.value})
    )
    current = booking.status
    lifecycle.check_transition(current, requested, _actor_roles(db, principal, booking))

    rows = (
        db.query(models.Booking)
        .filter(models.Booking.id == booking.id, models.Booking.status == current)
        .update(
            {models.Booking.status: requested.value, models.Booking.updated_at: utcnow()},
            synchronize_session=False,
        )
    )
    if rows == 0:
        db.rollback()
        raise ConflictError("booking status changed concurrently")
    if requested == BookingStatus.COMPLETED and booking.mechanic_id is not None:
        directory.record_completed_job(db, booking.mechanic_id)
    db.commit()
    db.refresh(booking)
    logger.info("booking %s moved from %s to %s by %s", booking.id, current, requested.value, principal.id)
    return booking


# ────────────────────────────── DETAILS ──────────────────────────────

def update_booking_details(db: Session, principal: Principal, booking_id, changes: schemas.BookingUpdate) -> models.Booking:
    """Let the customer correct vehicle, location, time or notes before anyone accepts."""
    policy.require_authenticated(principal)
    booking = _load(db, booking_id)
    values = changes.model_dump(exclude_unset=True)
    for field in TEXT_FIELDS + ("vehicle_year", "scheduled_time"):
        if field in values:
            values[field] = require(field, values[field])
    if "vehicle_year" in values:
        _check_vehicle_year(values["vehicle_year"])
    if "scheduled_time" in values:
        values["scheduled_time"] = _as_utc(values["scheduled_time"])
    for field in ("location_latitude", "location_longitude"):
        if field in values and values[field] is None:
            values[field] = 0.0
    _check_coordinates(values.get("location_latitude"), values.get("location_longitude"))
    if "notes" in values and values["notes"] is None:
        values["notes"] = ""

    policy.enforce(db, principal, policy.BOOKING, policy.UPDATE, booking, policy.post_image(booking, values))
    if booking.customer_id != principal.id:
        raise AuthorizationError()
    if booking.status != BookingStatus.PENDING:
        raise ConflictError(f"booking is already {booking.status}")
    if not values:
        return booking

    values["updated_at"] = utcnow()
    rows = (
        db.query(models.Booking)
        .filter(models.Booking.id == booking.id, models.Booking.status == BookingStatus.PENDING.value)
        .update({getattr(models.Booking, key): value for key, value in values.items()}, synchronize_session=False)
    )
    if rows == 0:
        db.rollback()
        raise ConflictError("booking was accepted before the change was saved")
    db.commit()
    db.refresh(booking)
    return booking
