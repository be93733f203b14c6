"""
Notification Endpoints
"""
from datetime import datetime
from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.user import User, UserRole
from homecare.models.notification import Notification
from homecare.schemas.notification import (
    NotificationCreate,
    NotificationResponse,
    NotificationListResponse,
    MarkReadRequest,
    MarkReadResponse,
)
from homecare.schemas.task import ReminderRunResponse
from homecare.api.deps import get_current_user, get_current_user_optional
from homecare.core.exceptions import AuthenticationError, InvalidInputError, NotFoundError, PermissionDenied
from homecare.core.security import verify_job_secret
from homecare.services.notifications import notify
from homecare.services.tasks import send_task_reminders
from homecare.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if unread_only:
        query = query.filter(Notification.is_read == False)

    notifications = query.order_by(Notification.created_at.desc()).limit(limit).all()
    unread_count = db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.is_read == False
    ).count()

    return NotificationListResponse(notifications=notifications, unread_count=unread_count)


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a notification for yourself, or (admins) for any user."""
    target_id = payload.user_id or current_user.id
    if target_id != current_user.id:
        if current_user.role != UserRole.ADMIN:
            raise PermissionDenied("Only admins can notify other users")
        if not db.get(User, target_id):
            raise NotFoundError("User", target_id)

    notification = notify(
        db,
        target_id,
        payload.title,
        payload.message,
        type=payload.type,
        link=payload.link,
    )
    db.commit()
    db.refresh(notification)
    return notification


@router.post("/read", response_model=MarkReadResponse)
async def mark_read(
    payload: MarkReadRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.is_read == False
    )
    if payload.mark_all:
        pass
    elif payload.notification_ids:
        query = query.filter(Notification.id.in_(payload.notification_ids))
    elif payload.notification_id:
        query = query.filter(Notification.id == payload.notification_id)
    else:
        raise InvalidInputError("Provide notification_id, notification_ids or mark_all")

    updated = query.update(
        {Notification.is_read: True, Notification.read_at: datetime.utcnow()},
        synchronize_session=False
    )
    db.commit()
    return MarkReadResponse(updated=updated)


@router.post("/send-reminders", response_model=ReminderRunResponse)
async def send_reminders(
    x_job_secret: Optional[str] = Header(None),
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    """
    Queue "due tomorrow" and "due in 7 days" task reminders.

    Called by an admin, or by a scheduled job presenting X-Job-Secret.
    """
    if not verify_job_secret(x_job_secret):
        if current_user is None:
            if x_job_secret:
                log_security_event("privilege_violation", {"path": "/notifications/send-reminders"}, logger)
            raise AuthenticationError("Admin token or job secret required")
        if current_user.role != UserRole.ADMIN:
            raise PermissionDenied("Admin privileges required")

    result = send_task_reminders(db)
    logger.info(f"Task reminders sent: {result}")
    return result
