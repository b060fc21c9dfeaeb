from datetime import UTC, datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from conectado.db.session import Base


class UserOnlineStatus(Base):
    """Latest presence state per user. Overwritten on every change, no history."""

    __tablename__ = "user_online_statuses"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    is_online: Mapped[bool] = mapped_column(default=False, index=True)
    last_seen: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    connection_id: Mapped[str | None] = mapped_column(String(100), default=None)
