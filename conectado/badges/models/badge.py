import enum
from datetime import UTC, datetime

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from conectado.db.session import Base


class BadgeRule(str, enum.Enum):
    """Stable identifiers of automatic-award rules.

    Stored in ``Badge.rule_code``; the badge's display name can change freely.
    """

    COMMUNICATOR = "communicator"
    VETERAN = "veteran"
    CONVERSATIONALIST = "conversationalist"


class Badge(Base):
    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    description: Mapped[str] = mapped_column(String(500), default="")
    icon_url: Mapped[str | None] = mapped_column(String(500), default=None)
    color: Mapped[str | None] = mapped_column(String(20), default=None)
    category: Mapped[str | None] = mapped_column(String(50), default=None)
    rule_code: Mapped[str | None] = mapped_column(String(50), default=None, index=True)
    threshold: Mapped[int] = mapped_column(default=0)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    user_badges = relationship("UserBadge", back_populates="badge", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Badge(id={self.id}, name={self.name}, rule_code={self.rule_code})>"


class UserBadge(Base):
    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="uq_user_badge"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    badge_id: Mapped[int] = mapped_column(ForeignKey("badges.id", ondelete="CASCADE"), index=True)
    earned_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    reason: Mapped[str | None] = mapped_column(String(255), default=None)

    user = relationship("User", lazy="joined")
    badge = relationship("Badge", back_populates="user_badges", lazy="joined")

    def __repr__(self) -> str:
        return f"<UserBadge(id={self.id}, user_id={self.user_id}, badge_id={self.badge_id})>"
