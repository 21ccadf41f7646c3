from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.errors import NotFound, ValidationFailed
from marketplace.models.user import Profile
from marketplace.schemas.notification_schemas import NotificationReadRequest
from marketplace.services import notification_service
from marketplace.utils.token import get_current_user

router = APIRouter()


@router.get("")
def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    notifications = notification_service.list_notifications(
        session, current_user.id, limit=limit, unread_only=unread_only
    )

    return {
        "notifications": notifications,
        "unread_count": notification_service.unread_count(session, current_user.id),
    }


@router.post("")
def mark_notifications_read(
    data: NotificationReadRequest,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    if data.mark_all:
        notification_service.mark_all_read(session, current_user.id)
    elif data.notification_id:
        notification_service.mark_read(session, current_user.id, data.notification_id)
    else:
        raise ValidationFailed("notification_id or mark_all required")

    return {"success": True}


@router.delete("")
def delete_notification(
    id: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    if not id:
        raise ValidationFailed("Notification ID required")

    if not notification_service.delete_notification(session, current_user.id, id):
        raise NotFound("Notification", id)

    return {"success": True}
