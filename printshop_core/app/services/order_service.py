"""
Print order service.

Orders may consume materials; each consumed material becomes an `out`
movement in the same transaction as the order itself, so an order that
cannot be fully supplied is never stored.
"""

import logging
from decimal import Decimal
from typing import Optional, List

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models import (
    PrintOrder, OrderMaterial, User, Lifecycle, OrderStatus, MovementDirection, ActivityAction
)
from .activity import record_activity
from .inventory_service import MovementService

logger = logging.getLogger(__name__)


class OrderService:

    @staticmethod
    def get_order(db: Session, order_id: int) -> PrintOrder:
        order = db.query(PrintOrder).filter(
            PrintOrder.id == order_id,
            PrintOrder.lifecycle == Lifecycle.ACTIVE.value
        ).first()
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        return order

    @staticmethod
    def list_orders(db: Session, status: Optional[str] = None) -> List[PrintOrder]:
        query = db.query(PrintOrder).filter(PrintOrder.lifecycle == Lifecycle.ACTIVE.value)
        if status:
            query = query.filter(PrintOrder.status == status)
        return query.order_by(PrintOrder.created_at.desc(), PrintOrder.id.desc()).all()

    @staticmethod
    def create_order(
        db: Session,
        data: dict,
        materials: List[dict],
        user: Optional[User],
        ip_address: Optional[str] = None
    ) -> PrintOrder:
        """
        Create an order and consume its materials.

        Raises:
            InsufficientStockError: any listed material is short; nothing is kept
        """
        order = PrintOrder(
            customer_name=data["customer_name"].strip(),
            print_type=data["print_type"],
            copies=data["copies"],
            paper_type=data["paper_type"],
            cost=Decimal(str(data["cost"])),
            status=OrderStatus(data.get("status") or OrderStatus.PENDING).value,
            notes=data.get("notes"),
            lifecycle=Lifecycle.ACTIVE.value,
        )
        db.add(order)
        db.flush()

        for line in materials:
            MovementService.record_movement(
                db,
                material_id=line["material_id"],
                direction=MovementDirection.OUT,
                quantity=line["quantity"],
                user=user,
                notes=f"Print order #{order.id} ({order.customer_name})",
                order_id=order.id,
                ip_address=ip_address,
            )
            db.add(OrderMaterial(
                order_id=order.id,
                material_id=line["material_id"],
                quantity=line["quantity"],
            ))

        record_activity(
            db, user, ActivityAction.CREATE, "order",
            entity_id=order.id, entity_name=order.customer_name,
            details={"copies": order.copies, "cost": order.cost, "materials": len(materials)},
            ip_address=ip_address,
        )
        return order

    @staticmethod
    def update_order(
        db: Session,
        order: PrintOrder,
        changes: dict,
        user: Optional[User],
        ip_address: Optional[str] = None
    ) -> PrintOrder:
        changes = {k: v for k, v in changes.items() if v is not None}
        for key, value in changes.items():
            if key == "cost":
                value = Decimal(str(value))
            setattr(order, key, value)

        if changes:
            record_activity(
                db, user, ActivityAction.UPDATE, "order",
                entity_id=order.id, entity_name=order.customer_name,
                details={"fields": sorted(changes)},
                ip_address=ip_address,
            )
        return order

    @staticmethod
    def update_status(
        db: Session,
        order: PrintOrder,
        status: OrderStatus,
        user: Optional[User],
        ip_address: Optional[str] = None
    ) -> PrintOrder:
        """Any status may follow any other; no transition graph is enforced."""
        previous = order.status
        order.status = OrderStatus(status).value
        record_activity(
            db, user, ActivityAction.UPDATE, "order",
            entity_id=order.id, entity_name=order.customer_name,
            details={"status": {"from": previous, "to": order.status}},
            ip_address=ip_address,
        )
        logger.info("Order %s status %s -> %s", order.id, previous, order.status)
        return order

    @staticmethod
    def soft_delete_order(db: Session, order: PrintOrder, user: User, ip_address: Optional[str] = None) -> PrintOrder:
        order.lifecycle = Lifecycle.DELETED.value
        record_activity(
            db, user, ActivityAction.DELETE, "order",
            entity_id=order.id, entity_name=order.customer_name,
            ip_address=ip_address,
        )
        logger.info("Order %s deleted by %s", order.id, user.username)
        return order
