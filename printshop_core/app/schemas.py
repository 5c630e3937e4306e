from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, validator

from .models import Role, MovementDirection, OrderStatus


class UserOut(BaseModel):
    id: int
    username: str
    full_name: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class LoginIn(BaseModel):
    username: str
    password: str


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)
    role: Role = Role.EMPLOYEE


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    full_name: Optional[str] = Field(None, min_length=1)
    role: Optional[Role] = None


class ToggleActiveIn(BaseModel):
    is_active: bool


class SetPasswordIn(BaseModel):
    new_password: str = Field(..., min_length=6)


class ChangePasswordIn(BaseModel):
    old_password: str
    new_password: str


# =============================================================================
# INVENTORY
# =============================================================================

class MaterialCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    quantity: int = Field(0, ge=0)
    min_quantity: int = Field(10, ge=0)
    price: float = Field(..., ge=0)


class MaterialUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    min_quantity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)


class MaterialOut(BaseModel):
    id: int
    name: str
    type: str
    quantity: int
    min_quantity: int
    price: float
    barcode: str
    lifecycle: str
    is_low_stock: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MovementCreate(BaseModel):
    material_id: int
    type: MovementDirection
    quantity: int = Field(..., gt=0)
    notes: Optional[str] = None


class MovementOut(BaseModel):
    id: int
    material_id: int
    type: str
    quantity: int
    quantity_before: Optional[int] = None
    quantity_after: Optional[int] = None
    notes: Optional[str] = None
    order_id: Optional[int] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    material_name: Optional[str] = None
    material_barcode: Optional[str] = None

    class Config:
        from_attributes = True


# =============================================================================
# ORDERS
# =============================================================================

class OrderMaterialIn(BaseModel):
    material_id: int
    quantity: int = Field(..., gt=0)


class OrderMaterialOut(BaseModel):
    material_id: int
    quantity: int

    class Config:
        from_attributes = True


class PrintOrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1)
    print_type: str = Field(..., min_length=1)
    copies: int = Field(..., gt=0)
    paper_type: str = Field(..., min_length=1)
    cost: float = Field(..., ge=0)
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    materials: List[OrderMaterialIn] = []


class PrintOrderUpdate(BaseModel):
    customer_name: Optional[str] = Field(None, min_length=1)
    print_type: Optional[str] = Field(None, min_length=1)
    copies: Optional[int] = Field(None, gt=0)
    paper_type: Optional[str] = Field(None, min_length=1)
    cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class OrderStatusIn(BaseModel):
    status: OrderStatus


class PrintOrderOut(BaseModel):
    id: int
    customer_name: str
    print_type: str
    copies: int
    paper_type: str
    cost: float
    status: str
    notes: Optional[str] = None
    lifecycle: str
    created_at: Optional[datetime] = None
    materials: List[OrderMaterialOut] = []

    class Config:
        from_attributes = True


# =============================================================================
# BOOKS
# =============================================================================

def _normalize_isbn(v: str) -> str:
    digits = v.replace("-", "").replace(" ", "")
    if len(digits) != 13 or not digits.isdigit():
        raise ValueError("ISBN must consist of 13 digits")
    return digits


class BookCreate(BaseModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    isbn: str
    category: str = "other"
    price: float = Field(0, ge=0)
    total_quantity: int = Field(0, ge=0)
    ready_quantity: int = Field(0, ge=0)
    printing_quantity: int = Field(0, ge=0)
    page_count: int = Field(0, ge=0)
    paper_price_per_sheet: float = Field(0, ge=0)
    ink_cartridge_price: float = Field(3500, ge=0)
    pages_per_cartridge: int = Field(1000, ge=1)
    additional_costs: float = Field(0, ge=0)

    @validator("isbn")
    def validate_isbn(cls, v):
        return _normalize_isbn(v)


class BookUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    isbn: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    total_quantity: Optional[int] = Field(None, ge=0)
    ready_quantity: Optional[int] = Field(None, ge=0)
    printing_quantity: Optional[int] = Field(None, ge=0)
    page_count: Optional[int] = Field(None, ge=0)
    paper_price_per_sheet: Optional[float] = Field(None, ge=0)
    ink_cartridge_price: Optional[float] = Field(None, ge=0)
    pages_per_cartridge: Optional[int] = Field(None, ge=1)
    additional_costs: Optional[float] = Field(None, ge=0)

    @validator("isbn")
    def validate_isbn(cls, v):
        if v is None:
            return v
        return _normalize_isbn(v)


class BookQuantitiesIn(BaseModel):
    # Range checks happen in validate_quantities so the reason is reported in order
    total_quantity: int
    ready_quantity: int
    printing_quantity: int


class BookOut(BaseModel):
    id: int
    title: str
    author: str
    isbn: str
    barcode: str
    category: str
    cover_image: Optional[str] = None
    total_quantity: int
    ready_quantity: int
    printing_quantity: int
    status: str
    price: float
    page_count: int
    paper_price_per_sheet: float
    ink_cartridge_price: float
    pages_per_cartridge: int
    additional_costs: float
    unit_cost: float = 0
    lifecycle: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# ACCOUNTING
# =============================================================================

class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    category: str = Field(..., min_length=1)


class ExpenseOut(BaseModel):
    id: int
    description: str
    amount: float
    category: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivityLogOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_name: str
    user_role: str
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    entity_name: Optional[str] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PricingQuoteIn(BaseModel):
    page_count: int = 0
    copies: int = 0
    paper_size: str = "16/24"
    paper_type: str = Field("normal", pattern="^(normal|colored)$")
    discount_type: str = Field("amount", pattern="^(amount|percent)$")
    discount_value: float = 0


class PricingQuoteOut(BaseModel):
    paper_cost: float
    cover_cost: float
    original_total: float
    discount_amount: float
    final_total: float


class SavedCalculationCreate(PricingQuoteIn):
    book_title: str = Field(..., min_length=1)


class SavedCalculationOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    book_title: str
    total_price: float
    paper_size: str
    page_count: int
    copy_count: int
    details: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
