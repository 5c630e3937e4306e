from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy import func, case
from sqlalchemy.orm import Session

from . import models
from .deps import get_db, require_page
from .permissions import Page

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

STATUS_ORDER = case(
    (models.PrintOrder.status == models.OrderStatus.PENDING.value, 0),
    (models.PrintOrder.status == models.OrderStatus.IN_PROGRESS.value, 1),
    (models.PrintOrder.status == models.OrderStatus.COMPLETED.value, 2),
    (models.PrintOrder.status == models.OrderStatus.CANCELLED.value, 3),
    else_=4,
)


def _material_row(m: models.Material) -> dict:
    return {
        "id": m.id,
        "name": m.name,
        "type": m.type,
        "quantity": m.quantity,
        "min_quantity": m.min_quantity,
        "barcode": m.barcode,
    }


def _order_row(o: models.PrintOrder) -> dict:
    return {
        "id": o.id,
        "customer_name": o.customer_name,
        "print_type": o.print_type,
        "copies": o.copies,
        "cost": float(o.cost),
        "status": o.status,
        "created_at": o.created_at,
    }


def _book_row(b: models.Book) -> dict:
    return {
        "id": b.id,
        "title": b.title,
        "author": b.author,
        "category": b.category,
        "total_quantity": b.total_quantity,
        "ready_quantity": b.ready_quantity,
        "printing_quantity": b.printing_quantity,
        "status": b.status,
    }


@router.get("/stats")
def dashboard_stats(db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.DASHBOARD))):
    """
    Dashboard summary, computed on every request.
    Only active (non-deleted) materials, orders and books are counted.
    """
    active = models.Lifecycle.ACTIVE.value

    # ==================== Materials ====================
    materials_q = db.query(models.Material).filter(models.Material.lifecycle == active)
    total_materials = materials_q.count()
    low_stock_q = materials_q.filter(models.Material.quantity <= models.Material.min_quantity)
    low_stock_count = low_stock_q.count()
    low_stock_items = low_stock_q.order_by(models.Material.quantity.asc(), models.Material.id.asc()).limit(5).all()
    top_materials = materials_q.order_by(models.Material.quantity.desc(), models.Material.id.asc()).limit(10).all()

    # ==================== Orders ====================
    orders_q = db.query(models.PrintOrder).filter(models.PrintOrder.lifecycle == active)
    total_orders = orders_q.count()
    pending_orders = orders_q.filter(
        models.PrintOrder.status.in_([models.OrderStatus.PENDING.value, models.OrderStatus.IN_PROGRESS.value])
    ).count()
    recent_orders = orders_q.order_by(models.PrintOrder.created_at.desc(), models.PrintOrder.id.desc()).limit(5).all()
    orders_by_status = orders_q.order_by(
        STATUS_ORDER, models.PrintOrder.created_at.desc(), models.PrintOrder.id.desc()
    ).limit(10).all()

    # ==================== Books ====================
    books_q = db.query(models.Book).filter(models.Book.lifecycle == active)
    total_books = books_q.count()
    total_printed = books_q.with_entities(func.coalesce(func.sum(models.Book.total_quantity), 0)).scalar()
    ready_books_q = books_q.filter(models.Book.ready_quantity > 0)
    ready_books_count = ready_books_q.count()
    ready_books_quantity = ready_books_q.with_entities(func.coalesce(func.sum(models.Book.ready_quantity), 0)).scalar()
    ready_books = ready_books_q.order_by(models.Book.ready_quantity.desc(), models.Book.id.asc()).all()

    books_by_status = {s.value: 0 for s in models.BookStatus}
    for status, count in books_q.with_entities(models.Book.status, func.count(models.Book.id)).group_by(models.Book.status):
        books_by_status[status] = count

    books_by_category = {
        category: count
        for category, count in books_q.with_entities(models.Book.category, func.count(models.Book.id)).group_by(models.Book.category)
    }

    # ==================== Expenses ====================
    now = datetime.utcnow()
    month_start = datetime(now.year, now.month, 1)
    month_expenses = db.query(func.coalesce(func.sum(models.Expense.amount), 0)).filter(
        models.Expense.created_at >= month_start
    ).scalar()

    return {
        "total_materials": total_materials,
        "low_stock_count": low_stock_count,
        "low_stock_items": [_material_row(m) for m in low_stock_items],
        "total_orders": total_orders,
        "pending_orders": pending_orders,
        "total_books": total_books,
        "total_printed_copies": int(total_printed or 0),
        "ready_books_count": ready_books_count,
        "ready_books_quantity": int(ready_books_quantity or 0),
        "ready_books": [_book_row(b) for b in ready_books],
        "month_expenses": float(month_expenses or 0),
        "recent_orders": [_order_row(o) for o in recent_orders],
        "orders_by_status": [_order_row(o) for o in orders_by_status],
        "books_by_status": books_by_status,
        "books_by_category": books_by_category,
        "top_materials": [_material_row(m) for m in top_materials],
    }
