"""Activity log writer. Rows are added to the caller's session and commit with it."""

import json
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import ActivityLog, ActivityAction, User

logger = logging.getLogger(__name__)


def record_activity(
    db: Session,
    user: Optional[User],
    action: ActivityAction,
    entity_type: str,
    entity_id: Optional[int] = None,
    entity_name: Optional[str] = None,
    details=None,
    ip_address: Optional[str] = None
) -> ActivityLog:
    if isinstance(details, dict):
        details = json.dumps(details, default=str, ensure_ascii=False)

    log = ActivityLog(
        user_id=user.id if user else None,
        user_name=user.full_name if user else "system",
        user_role=user.role if user else "system",
        action=ActivityAction(action).value,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        details=details,
        ip_address=ip_address,
    )
    db.add(log)
    logger.debug("activity %s %s #%s by %s", log.action, entity_type, entity_id, log.user_name)
    return log
