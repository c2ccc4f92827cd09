import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import directory, schemas
from ..database import get_db
from ..policy import Principal
from ..utils import get_principal

router = APIRouter(prefix="/mechanics", tags=["Mechanics"])


@router.get("/", response_model=List[schemas.MechanicOut])
def list_mechanics(
    available: bool = False,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return directory.list_mechanics(db, principal, available_only=available)


@router.post("/", response_model=schemas.MechanicOut, status_code=status.HTTP_201_CREATED)
def register_mechanic(
    data: schemas.MechanicCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return directory.register_mechanic(db, principal, data)


# /me is declared before /{mechanic_id} so it is not parsed as an id
@router.get("/me", response_model=schemas.MechanicOut)
def get_own_mechanic(db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return directory.get_own_mechanic(db, principal)


@router.patch("/me", response_model=schemas.MechanicOut)
def update_own_mechanic(
    changes: schemas.MechanicUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return directory.update_mechanic(db, principal, changes)


@router.get("/{mechanic_id}", response_model=schemas.MechanicOut)
def get_mechanic(mechanic_id: uuid.UUID, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return directory.get_mechanic(db, principal, mechanic_id)
