from typing import Any, Dict, List, Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from marketplace.models.notifications import Notification, NotificationType


def create_notification(
    *,
    session: Session,
    user_id: str,
    type: NotificationType | str,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type.value if isinstance(type, NotificationType) else type,
        title=title,
        message=message,
        data=data or {},
        read=False,
    )
    session.add(notification)
    session.flush()
    return notification


def list_notifications(
    session: Session,
    user_id: str,
    *,
    limit: int = 20,
    unread_only: bool = False,
) -> List[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)

    if unread_only:
        query = query.where(Notification.read == False)  # noqa: E712

    return session.exec(
        query.order_by(Notification.created_at.desc()).limit(limit)
    ).all()


def unread_count(session: Session, user_id: str) -> int:
    return session.exec(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
    ).one()


def mark_read(session: Session, user_id: str, notification_id: str) -> int:
    result = session.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read=True)
    )
    session.commit()
    return result.rowcount


def mark_all_read(session: Session, user_id: str) -> int:
    result = session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
        .values(read=True)
    )
    session.commit()
    return result.rowcount


def delete_notification(session: Session, user_id: str, notification_id: str) -> bool:
    notification = session.exec(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    ).first()

    if not notification:
        return False

    session.delete(notification)
    session.commit()
    return True
