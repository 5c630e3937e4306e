import os
import uuid
import logging
from pathlib import Path
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, require_page, client_ip
from .permissions import Page, can_delete
from .services.book_service import BookService
from .services.rules import QuantityInvariantError, InvalidOperationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/books", tags=["books"])

MAX_COVER_BYTES = 5 * 1024 * 1024
COVER_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def get_upload_dir() -> Path:
    """Cover images directory, from UPLOAD_DIR or next to the package."""
    env_dir = os.getenv("UPLOAD_DIR")
    base = Path(env_dir) if env_dir else Path(__file__).resolve().parents[1] / "uploads"
    covers = base / "covers"
    covers.mkdir(parents=True, exist_ok=True)
    return covers


def remove_cover_file(filename: str):
    try:
        (get_upload_dir() / filename).unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove cover file %s", filename, exc_info=True)


@router.get("", response_model=List[schemas.BookOut])
def list_books(
    status: Optional[models.BookStatus] = None,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.BOOKS)),
):
    query = db.query(models.Book).filter(models.Book.lifecycle == models.Lifecycle.ACTIVE.value)
    if status:
        query = query.filter(models.Book.status == status.value)
    if category:
        query = query.filter(models.Book.category == category)
    return query.order_by(models.Book.created_at.desc(), models.Book.id.desc()).all()


@router.post("", response_model=schemas.BookOut, status_code=201)
def create_book(book_in: schemas.BookCreate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.BOOKS))):
    """
    Add a book to the catalog.

    Status is derived from the quantities; the barcode is generated.
    """
    try:
        book = BookService.create_book(db, book_in.dict(), current_user, client_ip(request))
        db.commit()
    except (QuantityInvariantError, InvalidOperationError) as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="A book with that ISBN or barcode already exists")
    db.refresh(book)
    return book


@router.get("/barcode/{barcode}", response_model=schemas.BookOut)
def get_book_by_barcode(barcode: str, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.BOOKS))):
    book = db.query(models.Book).filter(
        models.Book.barcode == barcode,
        models.Book.lifecycle == models.Lifecycle.ACTIVE.value
    ).first()
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.get("/{book_id}", response_model=schemas.BookOut)
def get_book(book_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.BOOKS))):
    return BookService.get_book(db, book_id)


@router.patch("/{book_id}", response_model=schemas.BookOut)
def update_book(book_id: int, book_in: schemas.BookUpdate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.BOOKS))):
    book = BookService.get_book(db, book_id)
    try:
        BookService.update_book(db, book, book_in.dict(exclude_unset=True), current_user, client_ip(request))
        db.commit()
    except (QuantityInvariantError, InvalidOperationError) as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="A book with that ISBN or barcode already exists")
    db.refresh(book)
    return book


@router.patch("/{book_id}/quantities", response_model=schemas.BookOut)
def update_book_quantities(book_id: int, body: schemas.BookQuantitiesIn, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.BOOKS))):
    book = BookService.get_book(db, book_id)
    try:
        BookService.update_quantities(
            db, book,
            total=body.total_quantity,
            ready=body.ready_quantity,
            printing=body.printing_quantity,
            user=current_user,
            ip_address=client_ip(request),
        )
        db.commit()
    except QuantityInvariantError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    db.refresh(book)
    return book


@router.post("/{book_id}/cover", response_model=schemas.BookOut)
def upload_cover(
    book_id: int,
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.BOOKS)),
):
    """Store a JPEG, PNG or WebP cover of at most 5 MB."""
    book = BookService.get_book(db, book_id)

    extension = COVER_TYPES.get((file.content_type or "").lower())
    if extension is None:
        raise HTTPException(status_code=400, detail="Only JPEG, PNG and WebP images are allowed")

    content = file.file.read(MAX_COVER_BYTES + 1)
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > MAX_COVER_BYTES:
        raise HTTPException(status_code=400, detail="Cover image must not exceed 5 MB")

    filename = f"book-{book.id}-{uuid.uuid4().hex}{extension}"
    (get_upload_dir() / filename).write_bytes(content)

    previous = book.cover_image
    try:
        BookService.set_cover(db, book, filename, current_user, client_ip(request))
        db.commit()
    except Exception:
        db.rollback()
        remove_cover_file(filename)
        raise
    if previous and previous != filename:
        remove_cover_file(previous)
    db.refresh(book)
    logger.info("Cover %s stored for book %s", filename, book.id)
    return book


@router.delete("/{book_id}")
def delete_book(book_id: int, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.BOOKS))):
    if not can_delete(current_user.role):
        raise HTTPException(status_code=403, detail="Only an admin can delete books")
    book = BookService.get_book(db, book_id)
    BookService.soft_delete_book(db, book, current_user, client_ip(request))
    db.commit()
    return {"message": "deleted"}
