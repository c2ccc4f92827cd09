from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import accounts, schemas
from ..database import get_db
from ..policy import Principal
from ..utils import get_principal

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.post("/", response_model=schemas.ProfileOut, status_code=status.HTTP_201_CREATED)
def create_profile(
    data: schemas.ProfileCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return accounts.create_profile(db, principal, data)


@router.get("/me", response_model=schemas.ProfileOut)
def me(db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return accounts.get_profile(db, principal)


@router.patch("/me", response_model=schemas.ProfileOut)
def update_me(
    changes: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return accounts.update_profile(db, principal, changes)
