import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import List, Optional
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, require_page, client_ip
from .permissions import Page
from .services.inventory_service import MaterialService, InventoryQueryService
from .services.rules import DeleteNotAllowedError, PrintShopError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/materials", tags=["materials"])


@router.get("", response_model=List[schemas.MaterialOut])
def list_materials(
    search: Optional[str] = Query(None),
    material_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.INVENTORY)),
):
    """
    List active materials, newest first.
    Soft-deleted materials are never returned here.
    """
    query = db.query(models.Material).filter(models.Material.lifecycle == models.Lifecycle.ACTIVE.value)

    if search:
        like = f"%{search}%"
        query = query.filter(
            (models.Material.name.ilike(like)) | (models.Material.barcode.ilike(like))
        )

    if material_type:
        query = query.filter(models.Material.type == material_type)

    return query.order_by(models.Material.created_at.desc(), models.Material.id.desc()).all()


@router.post("", response_model=schemas.MaterialOut, status_code=201)
def create_material(item_in: schemas.MaterialCreate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.INVENTORY))):
    try:
        material = MaterialService.create_material(db, item_in.dict(), current_user, client_ip(request))
        db.commit()
        db.refresh(material)
        return material
    except PrintShopError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/low-stock", response_model=List[schemas.MaterialOut])
def low_stock(db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.INVENTORY))):
    """Materials whose quantity is at or below their minimum"""
    return InventoryQueryService.low_stock(db)


@router.get("/{barcode}", response_model=schemas.MaterialOut)
def get_by_barcode(barcode: str, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.INVENTORY))):
    material = db.query(models.Material).filter(
        models.Material.barcode == barcode,
        models.Material.lifecycle == models.Lifecycle.ACTIVE.value
    ).first()
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    return material


@router.patch("/{material_id}", response_model=schemas.MaterialOut)
def update_material(material_id: int, item_in: schemas.MaterialUpdate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.INVENTORY))):
    """
    Update name, type, minimum quantity or price.
    Stock levels only change through inventory movements.
    """
    material = MaterialService.get_material(db, material_id)
    MaterialService.update_material(db, material, item_in.dict(exclude_unset=True), current_user, client_ip(request))
    db.commit()
    db.refresh(material)
    return material


@router.delete("/{material_id}")
def delete_material(material_id: int, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.INVENTORY))):
    material = MaterialService.get_material(db, material_id)
    try:
        MaterialService.soft_delete_material(db, material, current_user, client_ip(request))
        db.commit()
    except DeleteNotAllowedError as e:
        db.rollback()
        logger.warning("User %s (%s) refused deletion of material %s", current_user.username, current_user.role, material_id)
        raise HTTPException(status_code=403, detail=str(e))
    return {"message": "deleted"}
