"""
In-app notifications and admin audit trail helpers.

Both add rows to the caller's session without committing, so they land in
the same transaction as the change they describe.
"""
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from homecare.models.notification import Notification
from homecare.models.audit import AuditLog
from homecare.utils.logging import get_logger

logger = get_logger(__name__)


def notify(
    db: Session,
    user_id: str,
    title: str,
    message: str,
    type: str = "info",
    link: Optional[str] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        link=link,
    )
    db.add(notification)
    logger.debug(f"Notification queued for {user_id}: {title}")
    return notification


def record_audit(
    db: Session,
    actor_id: str,
    action: str,
    target_type: str,
    target_id: Optional[str],
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details or {},
    )
    db.add(entry)
    logger.info(f"Audit: {action} {target_type}={target_id} by {actor_id}")
    return entry
