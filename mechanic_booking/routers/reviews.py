import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import reviews, schemas
from ..database import get_db
from ..policy import Principal
from ..utils import get_principal

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("/", response_model=List[schemas.ReviewOut])
def list_reviews(
    mechanic_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return reviews.list_reviews(db, principal, mechanic_id)


@router.post("/", response_model=schemas.ReviewOut, status_code=status.HTTP_201_CREATED)
def create_review(
    data: schemas.ReviewCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return reviews.create_review(db, principal, data)
