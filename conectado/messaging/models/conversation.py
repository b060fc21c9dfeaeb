from datetime import UTC, datetime

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from conectado.db.session import Base


class Conversation(Base):
    """One row per unordered pair of users, keyed ``"{lower}_{higher}"``.

    ``user1_id`` always holds the lower user id, so the per-participant unread
    flags are addressed by comparing a user id against the two slots.
    """

    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_user1_last_message", "user1_id", "last_message_at"),
        Index("ix_conversations_user2_last_message", "user2_id", "last_message_at"),
    )

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    user1_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    user2_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))

    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    last_message_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    last_message_id: Mapped[int | None] = mapped_column(
        ForeignKey("messages.id", ondelete="SET NULL", use_alter=True), default=None
    )

    user1_has_unread: Mapped[bool] = mapped_column(default=False)
    user2_has_unread: Mapped[bool] = mapped_column(default=False)
    is_archived: Mapped[bool] = mapped_column(default=False)

    user1 = relationship("User", foreign_keys=[user1_id], lazy="joined")
    user2 = relationship("User", foreign_keys=[user2_id], lazy="joined")
    last_message = relationship("Message", foreign_keys=[last_message_id], post_update=True)

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_user_id(self, user_id: int) -> int:
        return self.user2_id if user_id == self.user1_id else self.user1_id

    def has_unread_for(self, user_id: int) -> bool:
        return self.user1_has_unread if user_id == self.user1_id else self.user2_has_unread

    def mark_unread_for(self, user_id: int) -> None:
        if user_id == self.user1_id:
            self.user1_has_unread = True
        else:
            self.user2_has_unread = True

    def clear_unread_for(self, user_id: int) -> None:
        if user_id == self.user1_id:
            self.user1_has_unread = False
        else:
            self.user2_has_unread = False

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id})>"
