import enum
from datetime import UTC, datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from conectado.db.session import Base


class UserRole(str, enum.Enum):
    VOLUNTEER = "volunteer"
    ORGANIZATION = "organization"
    ADMIN = "admin"


class User(Base):
    """
    Platform account shared by volunteers, organizations and administrators.

    Attributes:
        id: Integer primary key, also the participant id inside conversation keys
        email: Unique email address (indexed for fast lookups)
        hashed_password: Argon2 hashed password
        first_name / last_name: Display name parts
        avatar_url: Optional profile image
        role: "volunteer", "organization" or "admin"
        is_active: Whether the account may sign in
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100), default="")
    avatar_url: Mapped[str | None] = mapped_column(String(500), default=None)

    role: Mapped[str] = mapped_column(String(50), default=UserRole.VOLUNTEER.value)
    is_active: Mapped[bool] = mapped_column(default=True)

    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
