import enum
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from conectado.db.session import Base


class NotificationType:
    """Notification type codes stored in ``Notification.type``.

    Kept as plain strings rather than an Enum column so other services can
    introduce new codes without a migration.
    """

    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    APPLICATION_CANCELLED = "application_cancelled"
    OPPORTUNITY_CREATED = "opportunity_created"
    OPPORTUNITY_UPDATED = "opportunity_updated"
    OPPORTUNITY_CANCELLED = "opportunity_cancelled"
    MESSAGE_RECEIVED = "message_received"
    PROFILE_VERIFIED = "profile_verified"
    REMINDER_UPCOMING = "reminder_upcoming"
    SYSTEM_ANNOUNCEMENT = "system_announcement"
    BADGE_EARNED = "badge_earned"
    WELCOME = "welcome"


class NotificationPriority(int, enum.Enum):
    LOW = 1
    NORMAL = 2
    HIGH = 3
    URGENT = 4


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
        Index("ix_notifications_recipient_unread", "recipient_id", "is_read"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True, index=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    sender_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), default=None
    )

    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(50))
    action_url: Mapped[str | None] = mapped_column(String(500), default=None)
    priority: Mapped[int] = mapped_column(default=NotificationPriority.NORMAL.value)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, default=None)

    is_read: Mapped[bool] = mapped_column(default=False)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    read_at: Mapped[datetime | None] = mapped_column(default=None)

    sender = relationship("User", foreign_keys=[sender_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, recipient_id={self.recipient_id}, type={self.type})>"
