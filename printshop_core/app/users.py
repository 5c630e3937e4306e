from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, get_current_user, verify_password, get_password_hash, require_page, client_ip
from .permissions import Page, can_manage_employees
from .services.activity import record_activity

router = APIRouter(prefix="/api/users", tags=["users"])


def manage_employees(current_user: models.User = Depends(get_current_user)) -> models.User:
    if not can_manage_employees(current_user.role):
        raise HTTPException(status_code=403, detail="Only an admin can manage employees")
    return current_user


def _get_user(db: Session, user_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _clean_username(username: str) -> str:
    username = username.strip()
    if len(username) < 3:
        raise HTTPException(status_code=400, detail="Username must be at least 3 characters")
    return username


def _ensure_username_free(db: Session, username: str, exclude_id: int = None):
    query = db.query(models.User).filter(models.User.username == username)
    if exclude_id is not None:
        query = query.filter(models.User.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail="User with that username already exists")


@router.get("/me", response_model=schemas.UserOut)
def me_user(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.post("/me/change-password")
def change_password(pw: schemas.ChangePasswordIn, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    if not verify_password(pw.old_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="Old password is incorrect")
    if not pw.new_password or len(pw.new_password) < 6:
        raise HTTPException(status_code=400, detail="New password must be at least 6 characters long")
    current_user.password_hash = get_password_hash(pw.new_password)
    db.add(current_user)
    db.commit()
    return {"status": "ok", "message": "Password updated"}


@router.get("", response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(get_db), current_user: models.User = Depends(require_page(Page.EMPLOYEES))):
    return db.query(models.User).order_by(models.User.created_at.desc(), models.User.id.desc()).all()


@router.post("", response_model=schemas.UserOut, status_code=201)
def create_user(user_in: schemas.UserCreate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(manage_employees)):
    username = _clean_username(user_in.username)
    _ensure_username_free(db, username)
    user = models.User(
        username=username,
        password_hash=get_password_hash(user_in.password),
        full_name=user_in.full_name.strip(),
        role=user_in.role.value,
        is_active=True,
    )
    try:
        db.add(user)
        db.flush()
        record_activity(
            db, current_user, models.ActivityAction.CREATE, "user",
            entity_id=user.id, entity_name=user.full_name,
            details={"role": user.role}, ip_address=client_ip(request),
        )
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent insert of the same username
        db.rollback()
        raise HTTPException(status_code=400, detail="User with that username already exists")
    db.refresh(user)
    return user


@router.patch("/{user_id}", response_model=schemas.UserOut)
def update_user(user_id: int, user_in: schemas.UserUpdate, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(manage_employees)):
    user = _get_user(db, user_id)
    changes = user_in.dict(exclude_unset=True, exclude_none=True)
    if "username" in changes:
        changes["username"] = _clean_username(changes["username"])
        _ensure_username_free(db, changes["username"], exclude_id=user.id)
    if "role" in changes:
        changes["role"] = changes["role"].value
    for key, value in changes.items():
        setattr(user, key, value)
    record_activity(
        db, current_user, models.ActivityAction.UPDATE, "user",
        entity_id=user.id, entity_name=user.full_name,
        details={"fields": sorted(changes)}, ip_address=client_ip(request),
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="User with that username already exists")
    db.refresh(user)
    return user


@router.patch("/{user_id}/toggle-active", response_model=schemas.UserOut)
def toggle_active(user_id: int, body: schemas.ToggleActiveIn, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(manage_employees)):
    user = _get_user(db, user_id)
    if user.id == current_user.id and not body.is_active:
        raise HTTPException(status_code=400, detail="You cannot disable your own account")
    user.is_active = body.is_active
    record_activity(
        db, current_user, models.ActivityAction.UPDATE, "user",
        entity_id=user.id, entity_name=user.full_name,
        details={"is_active": body.is_active}, ip_address=client_ip(request),
    )
    db.commit()
    db.refresh(user)
    return user


@router.patch("/{user_id}/password")
def set_password(user_id: int, body: schemas.SetPasswordIn, request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(manage_employees)):
    user = _get_user(db, user_id)
    user.password_hash = get_password_hash(body.new_password)
    record_activity(
        db, current_user, models.ActivityAction.UPDATE, "user",
        entity_id=user.id, entity_name=user.full_name,
        details="password reset", ip_address=client_ip(request),
    )
    db.commit()
    return {"status": "ok", "message": "Password updated"}
