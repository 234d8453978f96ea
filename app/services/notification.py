from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.core.timeutils import utcnow
from app.models.notification import Notification
from app.models.user import User, ADMIN_ROLES


class NotificationService:
    """
    Records notices for the in-app inbox. Push and email delivery are not
    handled here. Callers own the transaction: nothing in this class commits.
    """

    @staticmethod
    def notify_admins(
        db: Session,
        title: str,
        message: str,
        type: str = "warning",
        source_type: Optional[str] = None,
        source_id: Optional[int] = None,
    ) -> List[Notification]:
        """One notice per active admin or super admin."""
        admins = db.query(User.id).filter(User.role.in_(ADMIN_ROLES), User.is_active == True).all()  # noqa: E712
        notices = [
            Notification(
                user_id=admin_id,
                type=type,
                title=title,
                message=message,
                source_type=source_type,
                source_id=source_id,
            )
            for (admin_id,) in admins
        ]
        db.add_all(notices)
        db.flush()
        return notices

    @staticmethod
    def inbox(db: Session, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(~Notification.is_read)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    @staticmethod
    def unread_count(db: Session, user_id: int) -> int:
        return db.query(Notification).filter(Notification.user_id == user_id, ~Notification.is_read).count()

    @staticmethod
    def mark_read(db: Session, user_id: int, notification_id: int) -> Notification:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        ).first()
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.read_at is None:
            notification.read_at = utcnow()
        return notification

    @staticmethod
    def mark_all_read(db: Session, user_id: int) -> int:
        return db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.read_at.is_(None),
        ).update({Notification.read_at: utcnow()}, synchronize_session=False)
