"""
Saved print quotes.

A saved calculation is re-priced on the server from its inputs, so the stored
total always matches the current paper-size table at the time of saving.
"""

import json
import logging
from typing import Optional, List

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models import SavedCalculation, User, ActivityAction
from .activity import record_activity
from .pricing import quote_print_job
from .rules import InvalidOperationError

logger = logging.getLogger(__name__)


class CalculationService:

    @staticmethod
    def list_calculations(db: Session, search: Optional[str] = None) -> List[SavedCalculation]:
        query = db.query(SavedCalculation)
        if search:
            query = query.filter(SavedCalculation.book_title.ilike(f"%{search.strip()}%"))
        return query.order_by(SavedCalculation.created_at.desc(), SavedCalculation.id.desc()).all()

    @staticmethod
    def get_calculation(db: Session, calculation_id: int) -> SavedCalculation:
        calculation = db.query(SavedCalculation).filter(SavedCalculation.id == calculation_id).first()
        if not calculation:
            raise HTTPException(status_code=404, detail="Calculation not found")
        return calculation

    @staticmethod
    def save_calculation(db: Session, data: dict, user: User, ip_address: Optional[str] = None) -> SavedCalculation:
        """
        Price the job and store the result.

        Raises:
            InvalidOperationError: blank title, unknown paper, or a total of zero
        """
        title = (data.get("book_title") or "").strip()
        if not title:
            raise InvalidOperationError("Book title is required")

        quote = quote_print_job(
            page_count=data["page_count"],
            copies=data["copies"],
            paper_size=data["paper_size"],
            paper_type=data["paper_type"],
            discount_type=data["discount_type"],
            discount_value=data["discount_value"],
            allow_discount=True,
        )
        if quote["final_total"] <= 0:
            raise InvalidOperationError("Final total must be greater than zero to save")

        details = dict(quote)
        details.update({
            "paper_type": data["paper_type"],
            "discount_type": data["discount_type"],
            "discount_value": data["discount_value"],
        })

        calculation = SavedCalculation(
            user_id=user.id if user else None,
            book_title=title,
            total_price=quote["final_total"],
            paper_size=data["paper_size"],
            page_count=data["page_count"],
            copy_count=data["copies"],
            details=json.dumps(details, default=str),
        )
        db.add(calculation)
        db.flush()

        record_activity(
            db, user, ActivityAction.CREATE, "calculation",
            entity_id=calculation.id, entity_name=calculation.book_title,
            details={"total_price": calculation.total_price, "copies": calculation.copy_count},
            ip_address=ip_address,
        )
        return calculation

    @staticmethod
    def delete_calculation(db: Session, calculation: SavedCalculation, user: User, ip_address: Optional[str] = None):
        record_activity(
            db, user, ActivityAction.DELETE, "calculation",
            entity_id=calculation.id, entity_name=calculation.book_title,
            ip_address=ip_address,
        )
        db.delete(calculation)
        logger.info("Calculation %s (%s) deleted by %s", calculation.id, calculation.book_title, user.username)
