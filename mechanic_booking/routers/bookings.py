import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import ledger, schemas
from ..database import get_db
from ..policy import Principal
from ..utils import get_principal

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=schemas.BookingOut, status_code=201)
def create_booking(
    data: schemas.BookingCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return ledger.create_booking(db, principal, data)


@router.get("/", response_model=List[schemas.BookingSummary])
def list_bookings(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return ledger.list_bookings(db, principal, status)


@router.get("/{booking_id}", response_model=schemas.BookingSummary)
def get_booking(booking_id: uuid.UUID, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return ledger.get_booking(db, principal, booking_id)


@router.patch("/{booking_id}", response_model=schemas.BookingOut)
def update_booking(
    booking_id: uuid.UUID,
    changes: schemas.BookingUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return ledger.update_booking_details(db, principal, booking_id, changes)


@router.patch("/{booking_id}/status", response_model=schemas.BookingOut)
def update_status(
    booking_id: uuid.UUID,
    change: schemas.StatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return ledger.update_booking_status(db, principal, booking_id, change.status)


@router.post("/{booking_id}/accept", response_model=schemas.BookingOut)
def accept_booking(booking_id: uuid.UUID, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return ledger.accept_booking(db, principal, booking_id)
