from conectado.notifications.models.notification import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from conectado.notifications.models.online_status import UserOnlineStatus

__all__ = ["Notification", "NotificationPriority", "NotificationType", "UserOnlineStatus"]
