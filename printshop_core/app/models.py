from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Numeric,
    CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from .db import Base


# =============================================================================
# ENUMS
# =============================================================================

class Role(str, Enum):
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    EMPLOYEE = "employee"


class Lifecycle(str, Enum):
    """Soft-delete state of catalog rows"""
    ACTIVE = "active"
    DELETED = "deleted"


class MovementDirection(str, Enum):
    IN = "in"
    OUT = "out"


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookStatus(str, Enum):
    READY = "ready"
    PRINTING = "printing"
    UNAVAILABLE = "unavailable"


class ActivityAction(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    INVENTORY_IN = "inventory_in"
    INVENTORY_OUT = "inventory_out"


# =============================================================================
# TABLES
# =============================================================================

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.EMPLOYEE.value)
    is_active = Column(Boolean, nullable=False, default=True)  # disable instead of delete
    created_at = Column(DateTime, default=datetime.utcnow)


class Material(Base):
    __tablename__ = "materials"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_material_quantity_non_negative"),
    )
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # paper, ink, cover, book, other
    quantity = Column(Integer, nullable=False, default=0)
    min_quantity = Column(Integer, nullable=False, default=10)
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    barcode = Column(String, unique=True, index=True, nullable=False)
    lifecycle = Column(String, nullable=False, default=Lifecycle.ACTIVE.value)
    created_at = Column(DateTime, default=datetime.utcnow)

    movements = relationship("InventoryMovement", back_populates="material")

    @property
    def is_low_stock(self) -> bool:
        from .services.rules import is_low_stock
        return is_low_stock(self.quantity or 0, self.min_quantity or 0)


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        Index("ix_movement_material_created", "material_id", "created_at"),
    )
    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    type = Column(String, nullable=False)  # in / out
    quantity = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=True)
    quantity_after = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    order_id = Column(Integer, ForeignKey("print_orders.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    material = relationship("Material", back_populates="movements")
    user = relationship("User")

    @property
    def material_name(self):
        return self.material.name if self.material else None

    @property
    def material_barcode(self):
        return self.material.barcode if self.material else None


class PrintOrder(Base):
    __tablename__ = "print_orders"
    id = Column(Integer, primary_key=True, index=True)
    customer_name = Column(String, nullable=False)
    print_type = Column(String, nullable=False)
    copies = Column(Integer, nullable=False)
    paper_type = Column(String, nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    lifecycle = Column(String, nullable=False, default=Lifecycle.ACTIVE.value)
    created_at = Column(DateTime, default=datetime.utcnow)

    materials = relationship("OrderMaterial", back_populates="order")


class OrderMaterial(Base):
    """Materials consumed by a print order"""
    __tablename__ = "order_materials"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("print_orders.id"), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("PrintOrder", back_populates="materials")
    material = relationship("Material")


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint(
            "ready_quantity + printing_quantity <= total_quantity",
            name="ck_book_quantities_within_total",
        ),
    )
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    author = Column(String, nullable=False)
    isbn = Column(String, unique=True, index=True, nullable=False)
    barcode = Column(String, unique=True, index=True, nullable=False)
    category = Column(String, nullable=False, default="other")
    cover_image = Column(String, nullable=True)
    total_quantity = Column(Integer, nullable=False, default=0)
    ready_quantity = Column(Integer, nullable=False, default=0)
    printing_quantity = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, default=BookStatus.UNAVAILABLE.value)  # derived
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    # Pricing inputs
    page_count = Column(Integer, nullable=False, default=0)
    paper_price_per_sheet = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    ink_cartridge_price = Column(Numeric(10, 2), nullable=False, default=Decimal("3500"))
    pages_per_cartridge = Column(Integer, nullable=False, default=1000)
    additional_costs = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    lifecycle = Column(String, nullable=False, default=Lifecycle.ACTIVE.value)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def unit_cost(self) -> Decimal:
        from .services.rules import book_unit_cost
        return book_unit_cost(
            self.page_count or 0,
            self.paper_price_per_sheet or Decimal("0"),
            self.ink_cartridge_price or Decimal("0"),
            self.pages_per_cartridge or 0,
            self.additional_costs or Decimal("0"),
        )


class Expense(Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    category = Column(String, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class SavedCalculation(Base):
    """A print quote kept for later reference"""
    __tablename__ = "saved_calculations"
    __table_args__ = (
        CheckConstraint("total_price > 0", name="ck_calculation_total_positive"),
    )
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    book_title = Column(String, nullable=False, index=True)
    total_price = Column(Numeric(12, 2), nullable=False)
    paper_size = Column(String, nullable=False)
    page_count = Column(Integer, nullable=False)
    copy_count = Column(Integer, nullable=False)
    details = Column(Text, nullable=True)  # JSON breakdown of the quote
    created_at = Column(DateTime, default=datetime.utcnow)


class ActivityLog(Base):
    __tablename__ = "activity_logs"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    user_name = Column(String, nullable=False)
    user_role = Column(String, nullable=False)
    action = Column(String, nullable=False, index=True)
    entity_type = Column(String, nullable=False, index=True)
    entity_id = Column(Integer, nullable=True)
    entity_name = Column(String, nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
