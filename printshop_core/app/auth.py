import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, verify_password, create_access_token, get_current_user, client_ip
from .services.activity import record_activity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=schemas.Token)
def login(credentials: schemas.LoginIn, request: Request, db: Session = Depends(get_db)):
    """Exchange username/password for a bearer token plus the user profile."""
    user = db.query(models.User).filter(models.User.username == credentials.username).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning("Failed login for %s from %s", credentials.username, client_ip(request))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User account is disabled")

    record_activity(
        db, user, models.ActivityAction.LOGIN, "auth",
        entity_id=user.id, entity_name=user.username,
        ip_address=client_ip(request),
    )
    db.commit()

    access_token = create_access_token({"sub": user.username, "role": user.role})
    return {"access_token": access_token, "token_type": "bearer", "user": user}


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    record_activity(
        db, current_user, models.ActivityAction.LOGOUT, "auth",
        entity_id=current_user.id, entity_name=current_user.username,
        ip_address=client_ip(request),
    )
    db.commit()
    return {"success": True}
