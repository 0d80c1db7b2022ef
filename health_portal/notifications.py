"""Notification emitter used by the access workflow."""

import logging

from health_portal.records import NOTIFICATION_TYPES

logger = logging.getLogger(__name__)


class NotificationEmitter:
    def __init__(self, storage):
        self.storage = storage

    def notify(self, recipient_id, title, message, type, related_id=None):
        """Append an unread notification to the recipient's list."""
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type}")
        notification = self.storage.add_notification(
            recipient_id, title, message, type, related_id=related_id
        )
        logger.info(f"Notification {notification.id} ({type}) queued for user {recipient_id}")
        return notification

    def mark_read(self, notification_id, reader_id=None):
        """Flip the read flag. Idempotent; an unknown id is treated as success.

        Ownership is not enforced here. A reader other than the recipient is
        logged so the gap stays visible.
        """
        notification = self.storage.get_notification(notification_id)
        if notification is None:
            return None
        if reader_id is not None and notification.user_id != reader_id:
            logger.warning(
                f"User {reader_id} marked notification {notification_id} "
                f"owned by user {notification.user_id} as read"
            )
        if notification.is_read:
            return notification
        notification.is_read = True
        return self.storage.update_notification(notification)

    def list_for(self, recipient_id):
        return self.storage.notifications_for(recipient_id)

    def unread_count(self, recipient_id):
        return sum(1 for n in self.list_for(recipient_id) if not n.is_read)
