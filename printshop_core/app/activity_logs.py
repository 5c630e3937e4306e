from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, require_page
from .permissions import Page

router = APIRouter(prefix="/api/activity-logs", tags=["activity-logs"])


@router.get("", response_model=List[schemas.ActivityLogOut])
def list_activity_logs(
    user_id: Optional[int] = Query(None),
    action: Optional[models.ActivityAction] = Query(None),
    entity_type: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.ACTIVITY_LOGS)),
):
    """Audit trail, newest first."""
    query = db.query(models.ActivityLog)
    if user_id is not None:
        query = query.filter(models.ActivityLog.user_id == user_id)
    if action:
        query = query.filter(models.ActivityLog.action == action.value)
    if entity_type:
        query = query.filter(models.ActivityLog.entity_type == entity_type)
    return query.order_by(models.ActivityLog.created_at.desc(), models.ActivityLog.id.desc()).limit(limit).all()
