import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from .database import Base


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    MECHANIC = "mechanic"


class ServiceCategory(str, enum.Enum):
    REPAIR = "repair"
    MAINTENANCE = "maintenance"
    INSPECTION = "inspection"
    EMERGENCY = "emergency"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _in(column, enum_cls):
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


def utcnow():
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (CheckConstraint(_in("role", Role), name="valid_role"),)

    # Same key as the identity provider's user id
    id = Column(Uuid, primary_key=True)
    email = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default=Role.CUSTOMER.value)  # customer / mechanic
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint(_in("category", ServiceCategory), name="valid_category"),
        CheckConstraint("base_price >= 0", name="non_negative_base_price"),
        CheckConstraint("estimated_duration > 0", name="positive_duration"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String, nullable=False, default=ServiceCategory.MAINTENANCE.value)
    base_price = Column(Numeric(10, 2), nullable=False)
    estimated_duration = Column(Integer, nullable=False)  # minutes
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Mechanic(Base):
    __tablename__ = "mechanics"
    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 5", name="valid_mechanic_rating"),
        CheckConstraint("years_experience >= 0", name="non_negative_experience"),
        CheckConstraint("total_jobs >= 0", name="non_negative_total_jobs"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Indexed: every booking read resolves "mechanics owned by principal" through it
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    business_name = Column(String, nullable=False)
    certifications = Column(JSON, nullable=False, default=list)
    years_experience = Column(Integer, nullable=False, default=0)
    service_radius = Column(Integer, nullable=False, default=10)  # km
    rating = Column(Numeric(3, 2), nullable=False, default=0)
    total_jobs = Column(Integer, nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=True)
    current_latitude = Column(Float, nullable=True)
    current_longitude = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint(_in("status", BookingStatus), name="valid_status"),
        CheckConstraint("total_price >= 0", name="non_negative_total_price"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    mechanic_id = Column(Uuid, ForeignKey("mechanics.id", ondelete="SET NULL"), nullable=True, index=True)
    service_id = Column(Uuid, ForeignKey("services.id"), nullable=False)
    status = Column(String, nullable=False, default=BookingStatus.PENDING.value)
    vehicle_make = Column(String, nullable=False)
    vehicle_model = Column(String, nullable=False)
    vehicle_year = Column(Integer, nullable=False)
    location_address = Column(Text, nullable=False)
    location_latitude = Column(Float, nullable=False, default=0.0)
    location_longitude = Column(Float, nullable=False, default=0.0)
    scheduled_time = Column(DateTime(timezone=True), nullable=False)
    # Copied from the service at booking time, never re-read from the catalog
    total_price = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    mechanic = relationship("Mechanic")
    service = relationship("Service")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (CheckConstraint("rating >= 1 AND rating <= 5", name="valid_rating"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True)
    customer_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    mechanic_id = Column(Uuid, ForeignKey("mechanics.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow)
