"""
Database base module - imports all models for Alembic migration detection.

This module imports all SQLAlchemy models to ensure they are registered
with Alembic for automatic migration generation. While the imports appear
unused, they are essential for the migration system to work properly.
"""

from conectado.auth.models.user import User
from conectado.badges.models.badge import Badge, UserBadge
from conectado.db.session import Base
from conectado.messaging.models.conversation import Conversation
from conectado.messaging.models.message import Message
from conectado.notifications.models.notification import Notification
from conectado.notifications.models.online_status import UserOnlineStatus

# Export all models for Alembic
__all__ = [
    "Base",
    "User",
    "Badge",
    "UserBadge",
    "Conversation",
    "Message",
    "Notification",
    "UserOnlineStatus",
]
