import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

# Request bodies are deliberately loose: required-field and range checks live
# in the domain operations so they report the same errors to every caller.

# ────────────────────────────── PROFILES ──────────────────────────────

class ProfileCreate(BaseModel):
    id: Optional[uuid.UUID] = None
    email: str
    full_name: str
    phone: Optional[str] = None
    role: str = "customer"


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None


class ProfileOut(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    phone: Optional[str]
    role: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ────────────────────────────── CATALOG ──────────────────────────────

class ServiceCreate(BaseModel):
    name: str
    description: str
    category: str = "maintenance"
    base_price: Decimal
    estimated_duration: int


class ServiceOut(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    category: str
    base_price: Decimal
    estimated_duration: int

    class Config:
        from_attributes = True


class ServiceBrief(BaseModel):
    id: uuid.UUID
    name: str
    estimated_duration: int

    class Config:
        from_attributes = True


# ────────────────────────────── MECHANICS ──────────────────────────────

class MechanicCreate(BaseModel):
    business_name: str
    certifications: List[str] = Field(default_factory=list)
    years_experience: int = 0
    service_radius: int = 10
    is_available: bool = True
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None


class MechanicUpdate(BaseModel):
    business_name: Optional[str] = None
    certifications: Optional[List[str]] = None
    years_experience: Optional[int] = None
    service_radius: Optional[int] = None
    is_available: Optional[bool] = None
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None


class MechanicOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    business_name: str
    certifications: List[str]
    years_experience: int
    service_radius: int
    rating: Decimal
    total_jobs: int
    is_available: bool
    current_latitude: Optional[float]
    current_longitude: Optional[float]

    class Config:
        from_attributes = True


class MechanicBrief(BaseModel):
    id: uuid.UUID
    business_name: str
    rating: Decimal

    class Config:
        from_attributes = True


# ────────────────────────────── BOOKINGS ──────────────────────────────

class BookingCreate(BaseModel):
    service_id: Optional[uuid.UUID] = None
    mechanic_id: Optional[uuid.UUID] = None
    customer_id: Optional[uuid.UUID] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[int] = None
    location_address: Optional[str] = None
    location_latitude: Optional[float] = None
    location_longitude: Optional[float] = None
    scheduled_time: Optional[datetime] = None
    notes: Optional[str] = ""


class BookingUpdate(BaseModel):
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[int] = None
    location_address: Optional[str] = None
    location_latitude: Optional[float] = None
    location_longitude: Optional[float] = None
    scheduled_time: Optional[datetime] = None
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class BookingOut(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    mechanic_id: Optional[uuid.UUID]
    service_id: uuid.UUID
    status: str
    vehicle_make: str
    vehicle_model: str
    vehicle_year: int
    location_address: str
    location_latitude: float
    location_longitude: float
    scheduled_time: datetime
    total_price: Decimal
    notes: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class BookingSummary(BookingOut):
    """Booking list row with the joined service and (if assigned) mechanic."""

    service: ServiceBrief
    mechanic: Optional[MechanicBrief] = None


# ────────────────────────────── REVIEWS ──────────────────────────────

class ReviewCreate(BaseModel):
    booking_id: uuid.UUID
    rating: int
    comment: Optional[str] = ""


class ReviewOut(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    customer_id: uuid.UUID
    mechanic_id: uuid.UUID
    rating: int
    comment: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
