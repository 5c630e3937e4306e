from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import List, Optional
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, require_page, client_ip
from .permissions import Page
from .services.inventory_service import MovementService, InventoryQueryService
from .services.rules import InsufficientStockError, InvalidOperationError

router = APIRouter(prefix="/api/inventory-movements", tags=["inventory"])


@router.get("", response_model=List[schemas.MovementOut])
def list_movements(
    material_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.INVENTORY)),
):
    """Movement ledger, newest first, including movements of deleted materials."""
    return InventoryQueryService.movements(db, material_id)


@router.post("", response_model=schemas.MovementOut, status_code=201)
def create_movement(
    movement_in: schemas.MovementCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.INVENTORY)),
):
    """
    Record a stock movement and adjust the material quantity.

    Validations:
    - Material must exist and not be deleted
    - An `out` movement cannot exceed the quantity on hand
    """
    try:
        movement, _ = MovementService.record_movement(
            db,
            material_id=movement_in.material_id,
            direction=movement_in.type,
            quantity=movement_in.quantity,
            user=current_user,
            notes=movement_in.notes,
            ip_address=client_ip(request),
        )
        db.commit()
    except InsufficientStockError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidOperationError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    db.refresh(movement)
    return movement
