"""
Book catalog service.

Every write path re-derives the stored status from the quantities and checks
the quantity invariants before any attribute on the row is touched.
"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models import Book, User, Lifecycle, ActivityAction
from .activity import record_activity
from .inventory_service import unique_barcode
from .rules import derive_status, validate_quantities, InvalidOperationError

logger = logging.getLogger(__name__)

MONEY_FIELDS = ("price", "paper_price_per_sheet", "ink_cartridge_price", "additional_costs")
QUANTITY_FIELDS = ("total_quantity", "ready_quantity", "printing_quantity")


def _money(value) -> Decimal:
    return Decimal(str(value))


class BookService:

    @staticmethod
    def get_book(db: Session, book_id: int) -> Book:
        book = db.query(Book).filter(
            Book.id == book_id,
            Book.lifecycle == Lifecycle.ACTIVE.value
        ).first()
        if not book:
            raise HTTPException(status_code=404, detail="Book not found")
        return book

    @staticmethod
    def ensure_isbn_free(db: Session, isbn: str, exclude_id: Optional[int] = None):
        query = db.query(Book.id).filter(Book.isbn == isbn)
        if exclude_id is not None:
            query = query.filter(Book.id != exclude_id)
        if query.first():
            raise InvalidOperationError(f"A book with ISBN {isbn} already exists")

    @staticmethod
    def create_book(db: Session, data: dict, user: Optional[User], ip_address: Optional[str] = None) -> Book:
        total = data.get("total_quantity", 0)
        ready = data.get("ready_quantity", 0)
        printing = data.get("printing_quantity", 0)
        validate_quantities(total, ready, printing)
        BookService.ensure_isbn_free(db, data["isbn"])

        fields = dict(data)
        for key in MONEY_FIELDS:
            if key in fields:
                fields[key] = _money(fields[key])

        book = Book(
            **fields,
            barcode=unique_barcode(db, Book, "BOOK"),
            status=derive_status(ready, printing).value,
            lifecycle=Lifecycle.ACTIVE.value,
        )
        db.add(book)
        db.flush()

        record_activity(
            db, user, ActivityAction.CREATE, "book",
            entity_id=book.id, entity_name=book.title,
            details={"isbn": book.isbn, "total": total, "ready": ready, "printing": printing},
            ip_address=ip_address,
        )
        return book

    @staticmethod
    def update_quantities(
        db: Session,
        book: Book,
        total: int,
        ready: int,
        printing: int,
        user: Optional[User],
        ip_address: Optional[str] = None
    ) -> Book:
        """
        Replace the three quantities and re-derive status.

        Raises:
            QuantityInvariantError: book left untouched
        """
        validate_quantities(total, ready, printing)

        before = {k: getattr(book, k) for k in QUANTITY_FIELDS}
        book.total_quantity = total
        book.ready_quantity = ready
        book.printing_quantity = printing
        book.status = derive_status(ready, printing).value

        record_activity(
            db, user, ActivityAction.UPDATE, "book",
            entity_id=book.id, entity_name=book.title,
            details={"before": before, "after": {k: getattr(book, k) for k in QUANTITY_FIELDS}, "status": book.status},
            ip_address=ip_address,
        )
        return book

    @staticmethod
    def update_book(
        db: Session,
        book: Book,
        changes: dict,
        user: Optional[User],
        ip_address: Optional[str] = None
    ) -> Book:
        """Partial update; quantities are merged with stored values and validated together."""
        changes = {k: v for k, v in changes.items() if v is not None}

        total = changes.get("total_quantity", book.total_quantity)
        ready = changes.get("ready_quantity", book.ready_quantity)
        printing = changes.get("printing_quantity", book.printing_quantity)
        validate_quantities(total, ready, printing)

        if "isbn" in changes and changes["isbn"] != book.isbn:
            BookService.ensure_isbn_free(db, changes["isbn"], exclude_id=book.id)

        for key, value in changes.items():
            if key in MONEY_FIELDS:
                value = _money(value)
            setattr(book, key, value)
        book.status = derive_status(ready, printing).value

        if changes:
            record_activity(
                db, user, ActivityAction.UPDATE, "book",
                entity_id=book.id, entity_name=book.title,
                details={"fields": sorted(changes)},
                ip_address=ip_address,
            )
        return book

    @staticmethod
    def set_cover(db: Session, book: Book, filename: str, user: Optional[User], ip_address: Optional[str] = None) -> Book:
        book.cover_image = filename
        record_activity(
            db, user, ActivityAction.UPDATE, "book",
            entity_id=book.id, entity_name=book.title,
            details={"cover_image": filename},
            ip_address=ip_address,
        )
        return book

    @staticmethod
    def soft_delete_book(db: Session, book: Book, user: User, ip_address: Optional[str] = None) -> Book:
        book.lifecycle = Lifecycle.DELETED.value
        record_activity(
            db, user, ActivityAction.DELETE, "book",
            entity_id=book.id, entity_name=book.title,
            ip_address=ip_address,
        )
        logger.info("Book %s (%s) deleted by %s", book.id, book.title, user.username)
        return book
