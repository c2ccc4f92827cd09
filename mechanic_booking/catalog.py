import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models, policy, schemas
from .errors import ConstraintViolation, NotFoundError
from .policy import Principal

logger = logging.getLogger(__name__)

SEED_SERVICES = [
    ("Oil Change", "Complete oil and filter change service", "maintenance", "49.99", 30),
    ("Brake Inspection", "Comprehensive brake system inspection", "inspection", "39.99", 45),
    ("Battery Replacement", "Battery testing and replacement", "repair", "129.99", 30),
    ("Tire Rotation", "Four-wheel tire rotation and balance", "maintenance", "59.99", 45),
    ("Engine Diagnostic", "Full engine diagnostic scan", "inspection", "89.99", 60),
    ("Flat Tire Repair", "Emergency flat tire repair or replacement", "emergency", "79.99", 30),
    ("Jump Start", "Emergency jump start service", "emergency", "39.99", 15),
    ("Brake Pad Replacement", "Replace worn brake pads", "repair", "199.99", 90),
]


def _category(value: str) -> str:
    try:
        return models.ServiceCategory(value).value
    except ValueError:
        raise ConstraintViolation("category", f"'{value}' is not a valid service category") from None


def list_services(db: Session, principal: Principal, category: Optional[str] = None) -> List[models.Service]:
    policy.require_authenticated(principal)
    query = db.query(models.Service).filter(policy.visible(principal, models.Service))
    if category is not None:
        query = query.filter(models.Service.category == _category(category))
    return query.order_by(models.Service.category, models.Service.name).all()


def get_service(db: Session, principal: Principal, service_id) -> models.Service:
    policy.require_authenticated(principal)
    service = db.query(models.Service).filter(models.Service.id == service_id).first()
    if not service:
        raise NotFoundError("Service", service_id)
    policy.enforce(db, principal, policy.SERVICE, policy.SELECT, service)
    return service


def create_service(db: Session, data: schemas.ServiceCreate) -> models.Service:
    """Add a catalog entry. Service-role only: no policy lets a principal insert services."""
    try:
        price = Decimal(data.base_price)
    except (InvalidOperation, TypeError):
        raise ConstraintViolation("base_price", "base price must be a number") from None
    if price < 0:
        raise ConstraintViolation("base_price", "base price cannot be negative")
    if data.estimated_duration <= 0:
        raise ConstraintViolation("estimated_duration", "estimated duration must be positive")

    service = models.Service(
        name=data.name,
        description=data.description,
        category=_category(data.category),
        base_price=price,
        estimated_duration=data.estimated_duration,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def seed_services(db: Session) -> int:
    """Insert the default catalog when the services table is empty."""
    if db.query(models.Service.id).first() is not None:
        return 0
    for name, description, category, price, minutes in SEED_SERVICES:
        db.add(
            models.Service(
                name=name,
                description=description,
                category=category,
                base_price=Decimal(price),
                estimated_duration=minutes,
            )
        )
    db.commit()
    logger.info("seeded %d catalog services", len(SEED_SERVICES))
    return len(SEED_SERVICES)
