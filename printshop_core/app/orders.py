from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import List, Optional
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, require_page, client_ip
from .permissions import Page, can_delete
from .services.order_service import OrderService
from .services.rules import InsufficientStockError, InvalidOperationError

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("", response_model=List[schemas.PrintOrderOut])
def list_orders(
    status: Optional[models.OrderStatus] = Query(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.ORDERS)),
):
    return OrderService.list_orders(db, status.value if status else None)


@router.post("", response_model=schemas.PrintOrderOut, status_code=201)
def create_order(order_in: schemas.PrintOrderCreate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.ORDERS))):
    """
    Create a print order.

    Listed materials are taken out of stock in the same transaction; if any
    of them is short the whole order is rejected.
    """
    data = order_in.dict(exclude={"materials"})
    materials = [m.dict() for m in order_in.materials]
    try:
        order = OrderService.create_order(db, data, materials, current_user, client_ip(request))
        db.commit()
    except (InsufficientStockError, InvalidOperationError) as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        db.rollback()
        raise
    db.refresh(order)
    return order


@router.get("/{order_id}", response_model=schemas.PrintOrderOut)
def get_order(order_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.ORDERS))):
    return OrderService.get_order(db, order_id)


@router.patch("/{order_id}", response_model=schemas.PrintOrderOut)
def update_order(order_id: int, order_in: schemas.PrintOrderUpdate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.ORDERS))):
    order = OrderService.get_order(db, order_id)
    OrderService.update_order(db, order, order_in.dict(exclude_unset=True), current_user, client_ip(request))
    db.commit()
    db.refresh(order)
    return order


@router.patch("/{order_id}/status", response_model=schemas.PrintOrderOut)
def update_order_status(order_id: int, body: schemas.OrderStatusIn, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.ORDERS))):
    order = OrderService.get_order(db, order_id)
    OrderService.update_status(db, order, body.status, current_user, client_ip(request))
    db.commit()
    db.refresh(order)
    return order


@router.delete("/{order_id}")
def delete_order(order_id: int, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.ORDERS))):
    if not can_delete(current_user.role):
        raise HTTPException(status_code=403, detail="Only an admin can delete orders")
    order = OrderService.get_order(db, order_id)
    OrderService.soft_delete_order(db, order, current_user, client_ip(request))
    db.commit()
    return {"message": "deleted"}
