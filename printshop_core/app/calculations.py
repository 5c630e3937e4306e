from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import List, Optional
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, require_page, client_ip
from .permissions import Page, can_manage_calculations
from .services.calculation_service import CalculationService
from .services.rules import InvalidOperationError

router = APIRouter(prefix="/api/calculations", tags=["pricing"])


@router.get("", response_model=List[schemas.SavedCalculationOut])
def list_calculations(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.PRICING)),
):
    """Saved quotes, newest first, optionally filtered by book title."""
    return CalculationService.list_calculations(db, search)


@router.post("", response_model=schemas.SavedCalculationOut, status_code=201)
def save_calculation(body: schemas.SavedCalculationCreate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.PRICING))):
    if not can_manage_calculations(current_user.role):
        raise HTTPException(status_code=403, detail="Only an admin can save price calculations")
    try:
        calculation = CalculationService.save_calculation(db, body.dict(), current_user, client_ip(request))
        db.commit()
    except InvalidOperationError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    db.refresh(calculation)
    return calculation


@router.delete("/{calculation_id}")
def delete_calculation(calculation_id: int, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.PRICING))):
    if not can_manage_calculations(current_user.role):
        raise HTTPException(status_code=403, detail="Only an admin can delete price calculations")
    calculation = CalculationService.get_calculation(db, calculation_id)
    CalculationService.delete_calculation(db, calculation, current_user, client_ip(request))
    db.commit()
    return {"message": "deleted"}
