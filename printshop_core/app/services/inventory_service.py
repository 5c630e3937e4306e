"""
Print Shop Inventory Service
============================
Business logic for materials and their movement ledger:
- Barcode assignment
- In/out movements with non-negative stock enforcement
- Admin-only deletion of materials that have history
- Low-stock queries

Services add rows to the session; routers own commit/rollback.
"""

import logging
from decimal import Decimal
from typing import Optional, List, Tuple

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models import (
    Material, InventoryMovement, User, Lifecycle, MovementDirection, ActivityAction
)
from ..permissions import can_delete_material
from .activity import record_activity
from .rules import (
    apply_movement, generate_barcode,
    InsufficientStockError, InvalidOperationError, DeleteNotAllowedError
)

logger = logging.getLogger(__name__)

BARCODE_ATTEMPTS = 5


def unique_barcode(db: Session, model, prefix: str) -> str:
    """Generate a barcode not yet used by any row of `model`."""
    for _ in range(BARCODE_ATTEMPTS):
        barcode = generate_barcode(prefix)
        exists = db.query(model.id).filter(model.barcode == barcode).first()
        if not exists:
            return barcode
    raise InvalidOperationError("Could not allocate a unique barcode, try again")


# =============================================================================
# MATERIALS
# =============================================================================

class MaterialService:
    """Service class for material catalog operations"""

    @staticmethod
    def get_material(db: Session, material_id: int) -> Material:
        material = db.query(Material).filter(
            Material.id == material_id,
            Material.lifecycle == Lifecycle.ACTIVE.value
        ).first()
        if not material:
            raise HTTPException(status_code=404, detail="Material not found")
        return material

    @staticmethod
    def create_material(db: Session, data: dict, user: Optional[User], ip_address: Optional[str] = None) -> Material:
        material = Material(
            name=data["name"].strip(),
            type=data["type"].strip(),
            quantity=data.get("quantity", 0),
            min_quantity=data.get("min_quantity", 10),
            price=Decimal(str(data["price"])),
            barcode=unique_barcode(db, Material, "MAT"),
            lifecycle=Lifecycle.ACTIVE.value,
        )
        db.add(material)
        db.flush()

        record_activity(
            db, user, ActivityAction.CREATE, "material",
            entity_id=material.id, entity_name=material.name,
            details={"quantity": material.quantity, "barcode": material.barcode},
            ip_address=ip_address,
        )
        return material

    @staticmethod
    def update_material(
        db: Session,
        material: Material,
        changes: dict,
        user: Optional[User],
        ip_address: Optional[str] = None
    ) -> Material:
        """
        Update descriptive fields of a material.

        Quantity is not editable here; it only changes through movements.
        """
        before = {}
        for field in ("name", "type", "min_quantity", "price"):
            if field in changes and changes[field] is not None:
                before[field] = getattr(material, field)
                value = changes[field]
                if field == "price":
                    value = Decimal(str(value))
                elif isinstance(value, str):
                    value = value.strip()
                setattr(material, field, value)

        if before:
            record_activity(
                db, user, ActivityAction.UPDATE, "material",
                entity_id=material.id, entity_name=material.name,
                details={"before": before, "after": {k: getattr(material, k) for k in before}},
                ip_address=ip_address,
            )
        return material

    @staticmethod
    def has_movements(db: Session, material_id: int) -> bool:
        return db.query(InventoryMovement.id).filter(
            InventoryMovement.material_id == material_id
        ).first() is not None

    @staticmethod
    def soft_delete_material(
        db: Session,
        material: Material,
        user: User,
        ip_address: Optional[str] = None
    ) -> Material:
        """
        Mark a material deleted. Movement history stays untouched.

        Raises:
            DeleteNotAllowedError: material has movements and caller is not admin
        """
        has_history = MaterialService.has_movements(db, material.id)
        if not can_delete_material(has_history, user.role):
            raise DeleteNotAllowedError(
                "Only an admin can delete a material that has inventory movements"
            )

        material.lifecycle = Lifecycle.DELETED.value
        record_activity(
            db, user, ActivityAction.DELETE, "material",
            entity_id=material.id, entity_name=material.name,
            details={"had_movements": has_history},
            ip_address=ip_address,
        )
        logger.info("Material %s (%s) deleted by %s", material.id, material.name, user.username)
        return material


# =============================================================================
# MOVEMENTS
# =============================================================================

class MovementService:
    """Service class for the inventory movement ledger"""

    @staticmethod
    def record_movement(
        db: Session,
        material_id: int,
        direction: MovementDirection,
        quantity: int,
        user: Optional[User],
        notes: Optional[str] = None,
        order_id: Optional[int] = None,
        ip_address: Optional[str] = None
    ) -> Tuple[InventoryMovement, Material]:
        """
        Apply one in/out movement to a material and record it.

        The quantity is changed with a conditional UPDATE so a concurrent
        `out` can never take stock below zero; the movement row is only added
        once that update succeeded. Both commit together.

        Raises:
            InsufficientStockError: `out` larger than the stock on hand
            InvalidOperationError: material deleted or bad quantity
        """
        material = db.query(Material).filter(
            Material.id == material_id
        ).with_for_update().first()

        if not material:
            raise HTTPException(status_code=404, detail="Material not found")

        if material.lifecycle != Lifecycle.ACTIVE.value:
            raise InvalidOperationError(f"Material {material.name} has been deleted")

        quantity_before = material.quantity
        quantity_after = apply_movement(quantity_before, direction, quantity)
        direction = MovementDirection(direction)

        guarded = db.query(Material).filter(Material.id == material.id)
        if direction == MovementDirection.OUT:
            guarded = guarded.filter(Material.quantity >= quantity)
            delta = -quantity
        else:
            delta = quantity
        updated = guarded.update(
            {Material.quantity: Material.quantity + delta},
            synchronize_session=False
        )
        if updated == 0:
            raise InsufficientStockError(
                f"Insufficient stock for {material.name}. Requested: {quantity}"
            )
        db.expire(material, ["quantity"])

        movement = InventoryMovement(
            material_id=material.id,
            type=direction.value,
            quantity=quantity,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            notes=notes,
            order_id=order_id,
            user_id=user.id if user else None,
        )
        db.add(movement)
        db.flush()

        action = ActivityAction.INVENTORY_IN if direction == MovementDirection.IN else ActivityAction.INVENTORY_OUT
        record_activity(
            db, user, action, "inventory_movement",
            entity_id=movement.id, entity_name=material.name,
            details={"quantity": quantity, "before": quantity_before, "after": quantity_after},
            ip_address=ip_address,
        )
        logger.info(
            "Movement %s %s x%s on material %s: %s -> %s",
            movement.id, direction.value, quantity, material.id, quantity_before, quantity_after
        )
        return movement, material


# =============================================================================
# QUERIES
# =============================================================================

class InventoryQueryService:
    """Service for inventory listings"""

    @staticmethod
    def low_stock(db: Session) -> List[Material]:
        """Active materials at or below their minimum quantity, emptiest first"""
        return db.query(Material).filter(
            Material.lifecycle == Lifecycle.ACTIVE.value,
            Material.quantity <= Material.min_quantity
        ).order_by(Material.quantity.asc(), Material.id.asc()).all()

    @staticmethod
    def movements(db: Session, material_id: Optional[int] = None) -> List[InventoryMovement]:
        query = db.query(InventoryMovement)
        if material_id:
            query = query.filter(InventoryMovement.material_id == material_id)
        return query.order_by(
            InventoryMovement.created_at.desc(), InventoryMovement.id.desc()
        ).all()
