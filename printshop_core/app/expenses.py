from decimal import Decimal
from fastapi import APIRouter, Depends, Query, Request
from typing import List, Optional
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, require_page, client_ip
from .permissions import Page
from .services.activity import record_activity

router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.get("", response_model=List[schemas.ExpenseOut])
def list_expenses(
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.EXPENSES)),
):
    query = db.query(models.Expense)
    if category:
        query = query.filter(models.Expense.category == category)
    return query.order_by(models.Expense.created_at.desc(), models.Expense.id.desc()).all()


@router.post("", response_model=schemas.ExpenseOut, status_code=201)
def create_expense(expense_in: schemas.ExpenseCreate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.EXPENSES))):
    expense = models.Expense(
        description=expense_in.description,
        amount=Decimal(str(expense_in.amount)),
        category=expense_in.category,
        created_by=current_user.id,
    )
    db.add(expense)
    db.flush()
    record_activity(
        db, current_user, models.ActivityAction.CREATE, "expense",
        entity_id=expense.id, entity_name=expense.description,
        details={"amount": expense.amount, "category": expense.category},
        ip_address=client_ip(request),
    )
    db.commit()
    db.refresh(expense)
    return expense
