import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import catalog, schemas
from ..database import get_db
from ..policy import Principal
from ..utils import get_principal

router = APIRouter(prefix="/services", tags=["Services"])


@router.get("/", response_model=List[schemas.ServiceOut])
def list_services(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return catalog.list_services(db, principal, category)


@router.get("/{service_id}", response_model=schemas.ServiceOut)
def get_service(service_id: uuid.UUID, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return catalog.get_service(db, principal, service_id)
