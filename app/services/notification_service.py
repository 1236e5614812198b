"""
Persisted notifications (dashboard inbox)
"""
from app import db
from app.models.enums import NotificationType
from app.models.notification import Notification


class NotificationService:
    """Durable notification records, separate from live fanout"""

    LIST_LIMIT = 50

    @staticmethod
    def record(user_id: int, title: str, message: str, notification_type=NotificationType.INFO,
               action_url: str = None) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            notification_type=NotificationType(notification_type).value,
            action_url=action_url
        )
        db.session.add(notification)
        db.session.commit()
        return notification

    @classmethod
    def list_for_user(cls, user_id: int) -> list:
        notifications = (Notification.query
                         .filter_by(user_id=user_id)
                         .order_by(Notification.created_at.desc(), Notification.id.desc())
                         .limit(cls.LIST_LIMIT)
                         .all())
        return [notification.to_dict() for notification in notifications]

    @staticmethod
    def mark_read(user_id: int, notification_id: int) -> bool:
        updated = Notification.query.filter_by(id=notification_id, user_id=user_id).update(
            {'is_read': True}, synchronize_session=False
        )
        db.session.commit()
        return updated == 1

    @staticmethod
    def mark_all_read(user_id: int) -> int:
        updated = Notification.query.filter_by(user_id=user_id, is_read=False).update(
            {'is_read': True}, synchronize_session=False
        )
        db.session.commit()
        return updated
