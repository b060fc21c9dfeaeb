from datetime import UTC, datetime

from faker import Faker
from sqlalchemy.orm import Session

from conectado.auth.models.user import User
from conectado.badges.models.badge import Badge, BadgeRule
from conectado.core.security import get_password_hash
from conectado.notifications.models.notification import Notification, NotificationType

fake = Faker("es_ES")


def create_user_factory(
    db_session: Session,
    email: str | None = None,
    password: str = "testpass123",
    first_name: str | None = None,
    last_name: str | None = None,
    role: str = "volunteer",
    is_active: bool = True,
    created_at: datetime | None = None,
    id: int | None = None,
) -> User:
    """
    Factory function to create test users.

    Args:
        db_session: Database session
        email: User email (generates random if None)
        password: Plain text password
        first_name / last_name: Display name (generates random if None)
        role: "volunteer", "organization" or "admin"
        is_active: Whether user is active
        created_at: Account creation time, defaults to now
        id: Explicit primary key, autoincrement if None

    Returns:
        Created User instance
    """
    now = datetime.now(UTC)
    user = User(
        id=id,
        email=email or fake.unique.email(),
        hashed_password=get_password_hash(password),
        first_name=first_name or fake.first_name(),
        last_name=last_name if last_name is not None else fake.last_name(),
        role=role,
        is_active=is_active,
        created_at=created_at or now,
        updated_at=now,
    )

    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)

    return user


def create_notification_factory(
    db_session: Session,
    recipient: User,
    title: str | None = None,
    type: str = NotificationType.SYSTEM_ANNOUNCEMENT,
    is_read: bool = False,
    priority: int = 2,
) -> Notification:
    notification = Notification(
        recipient_id=recipient.id,
        title=title or fake.sentence(nb_words=4),
        message=fake.sentence(),
        type=type,
        priority=priority,
        is_read=is_read,
        created_at=datetime.now(UTC),
    )
    db_session.add(notification)
    db_session.commit()
    db_session.refresh(notification)
    return notification


def create_badge_factory(
    db_session: Session,
    name: str | None = None,
    rule_code: BadgeRule | None = None,
    threshold: int = 0,
    category: str = "Participación",
    is_active: bool = True,
) -> Badge:
    badge = Badge(
        name=name or f"Insignia {fake.unique.word()}",
        description="Insignia de prueba para la comunidad",
        color="#1E90FF",
        category=category,
        rule_code=rule_code.value if rule_code else None,
        threshold=threshold,
        is_active=is_active,
        created_at=datetime.now(UTC),
    )
    db_session.add(badge)
    db_session.commit()
    db_session.refresh(badge)
    return badge
