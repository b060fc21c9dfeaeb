import logging
from collections.abc import Callable
from datetime import timedelta

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from conectado.auth.models.user import User
from conectado.auth.schemas.user import UserBasic
from conectado.badges.models.badge import Badge, BadgeRule, UserBadge
from conectado.badges.schemas.badge import (
    BadgeCategoryStats,
    BadgeCreate,
    BadgeHolder,
    BadgePopularity,
    BadgeResponse,
    BadgeStats,
    BadgeUpdate,
)
from conectado.core.datetime_utils import as_utc, utcnow
from conectado.core.exceptions import ConflictError, NotFoundError
from conectado.messaging.models.conversation import Conversation
from conectado.messaging.models.message import Message
from conectado.notifications.models.notification import NotificationPriority, NotificationType
from conectado.notifications.schemas.notification import CreateNotificationRequest
from conectado.notifications.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

AUTOMATIC_AWARD_REASON = "Obtenido automáticamente"

RuleCheck = Callable[[Session, User, int], bool]


def _messages_sent(db: Session, user: User, threshold: int) -> bool:
    sent = (
        db.query(func.count(Message.id))
        .filter(Message.sender_id == user.id, Message.is_deleted == False)  # noqa: E712
        .scalar()
        or 0
    )
    return sent >= threshold


def _account_age_days(db: Session, user: User, threshold: int) -> bool:
    return utcnow() - as_utc(user.created_at) >= timedelta(days=threshold)


def _distinct_conversations(db: Session, user: User, threshold: int) -> bool:
    count = (
        db.query(func.count(Conversation.id))
        .filter(or_(Conversation.user1_id == user.id, Conversation.user2_id == user.id))
        .scalar()
        or 0
    )
    return count >= threshold


# Keyed by the stable rule code, never by the badge's display name
BADGE_RULES: dict[BadgeRule, RuleCheck] = {
    BadgeRule.COMMUNICATOR: _messages_sent,
    BadgeRule.VETERAN: _account_age_days,
    BadgeRule.CONVERSATIONALIST: _distinct_conversations,
}


class BadgeService:
    def __init__(self, db: Session, notifications: NotificationService | None = None) -> None:
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def list_badges(self) -> list[BadgeResponse]:
        badges = self.db.query(Badge).order_by(Badge.category, Badge.name).all()
        awarded = self._award_counts()
        return [self.to_response(b, total_awarded=awarded.get(b.id, 0)) for b in badges]

    def list_user_badges(self, user_id: int) -> list[BadgeResponse]:
        user_badges = (
            self.db.query(UserBadge)
            .filter(UserBadge.user_id == user_id)
            .order_by(UserBadge.earned_at.desc())
            .all()
        )
        return [
            self.to_response(ub.badge, earned_at=ub.earned_at, reason=ub.reason)
            for ub in user_badges
        ]

    def get_badge(self, badge_id: int) -> Badge:
        badge = self.db.get(Badge, badge_id)
        if badge is None:
            raise NotFoundError("Insignia no encontrada", resource="badge")
        return badge

    def create_badge(self, data: BadgeCreate) -> BadgeResponse:
        self._ensure_name_free(data.name)
        badge = Badge(
            name=data.name,
            description=data.description,
            icon_url=data.icon_url,
            color=data.color,
            category=data.category,
            rule_code=data.rule_code.value if data.rule_code else None,
            threshold=data.threshold,
            is_active=True,
            created_at=utcnow(),
        )
        self.db.add(badge)
        self.db.commit()
        self.db.refresh(badge)
        logger.info("Badge %s created (rule=%s)", badge.id, badge.rule_code)
        return self.to_response(badge)

    def update_badge(self, badge_id: int, data: BadgeUpdate) -> BadgeResponse:
        badge = self.get_badge(badge_id)
        if data.name != badge.name:
            self._ensure_name_free(data.name)

        badge.name = data.name
        badge.description = data.description
        badge.icon_url = data.icon_url
        badge.color = data.color
        badge.category = data.category
        badge.rule_code = data.rule_code.value if data.rule_code else None
        badge.threshold = data.threshold
        badge.is_active = data.is_active
        self.db.commit()
        self.db.refresh(badge)
        return self.to_response(badge, total_awarded=self._award_counts().get(badge.id, 0))

    def delete_badge(self, badge_id: int) -> bool:
        badge = self.db.get(Badge, badge_id)
        if badge is None:
            return False
        self.db.delete(badge)
        self.db.commit()
        logger.info("Badge %s deleted", badge_id)
        return True

    async def award(self, user_id: int, badge_id: int, reason: str | None = None) -> bool:
        """Give a badge to a user once.

        Returns False, without writing anything, when the user already holds
        the badge or when the user or badge does not exist.
        """
        existing = (
            self.db.query(UserBadge)
            .filter(UserBadge.user_id == user_id, UserBadge.badge_id == badge_id)
            .first()
        )
        if existing is not None:
            return False

        badge = self.db.get(Badge, badge_id)
        user = self.db.get(User, user_id)
        if badge is None or user is None:
            return False

        self.db.add(
            UserBadge(user_id=user_id, badge_id=badge_id, reason=reason, earned_at=utcnow())
        )
        self.db.commit()

        logger.info("Badge %s awarded to user %s", badge_id, user_id)

        await self.notifications.create(
            CreateNotificationRequest(
                recipient_id=user_id,
                title="¡Nueva insignia obtenida!",
                message=f"Has obtenido la insignia '{badge.name}'. ¡Felicidades!",
                type=NotificationType.BADGE_EARNED,
                action_url="/Profile/Badges",
                priority=NotificationPriority.NORMAL,
                data={"badge_id": badge.id},
            )
        )
        return True

    def revoke(self, user_id: int, badge_id: int) -> bool:
        user_badge = (
            self.db.query(UserBadge)
            .filter(UserBadge.user_id == user_id, UserBadge.badge_id == badge_id)
            .first()
        )
        if user_badge is None:
            return False
        self.db.delete(user_badge)
        self.db.commit()
        logger.info("Badge %s revoked from user %s", badge_id, user_id)
        return True

    def list_available(self, user_id: int) -> list[BadgeResponse]:
        held = select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
        badges = (
            self.db.query(Badge)
            .filter(Badge.is_active == True, Badge.id.not_in(held))  # noqa: E712
            .order_by(Badge.category, Badge.name)
            .all()
        )
        return [self.to_response(b) for b in badges]

    async def check_automatic(self, user_id: int) -> list[BadgeResponse]:
        """Evaluate every active rule-backed badge the user lacks and award the met ones."""
        user = self.db.get(User, user_id)
        if user is None:
            return []

        held = select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
        candidates = (
            self.db.query(Badge)
            .filter(
                Badge.is_active == True,  # noqa: E712
                Badge.rule_code.is_not(None),
                Badge.id.not_in(held),
            )
            .all()
        )

        awarded: list[BadgeResponse] = []
        for badge in candidates:
            try:
                rule = BadgeRule(badge.rule_code)
            except ValueError:
                logger.warning("Badge %s has unknown rule code %r", badge.id, badge.rule_code)
                continue

            if BADGE_RULES[rule](self.db, user, badge.threshold):
                if await self.award(user_id, badge.id, AUTOMATIC_AWARD_REASON):
                    awarded.append(self.to_response(badge, reason=AUTOMATIC_AWARD_REASON))
        return awarded

    def get_stats(self) -> BadgeStats:
        active = self.db.query(Badge).filter(Badge.is_active == True).all()  # noqa: E712
        awarded = self._award_counts()

        categories: dict[str | None, BadgeCategoryStats] = {}
        for badge in active:
            stats = categories.setdefault(
                badge.category,
                BadgeCategoryStats(category=badge.category, total_badges=0, total_awarded=0),
            )
            stats.total_badges += 1
            stats.total_awarded += awarded.get(badge.id, 0)

        top = sorted(active, key=lambda b: awarded.get(b.id, 0), reverse=True)[:10]

        return BadgeStats(
            total_badges=len(active),
            total_awarded=self.db.query(func.count(UserBadge.id)).scalar() or 0,
            unique_holders=self.db.query(func.count(func.distinct(UserBadge.user_id))).scalar()
            or 0,
            category_stats=list(categories.values()),
            top_badges=[
                BadgePopularity(
                    badge_id=b.id,
                    name=b.name,
                    icon_url=b.icon_url,
                    times_awarded=awarded.get(b.id, 0),
                )
                for b in top
            ],
        )

    def list_holders(self, badge_id: int, page: int = 1, page_size: int = 20) -> list[BadgeHolder]:
        self.get_badge(badge_id)
        rows = (
            self.db.query(UserBadge)
            .filter(UserBadge.badge_id == badge_id)
            .order_by(UserBadge.earned_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return [
            BadgeHolder(
                user_id=ub.user_id,
                badge_id=ub.badge_id,
                user=UserBasic.model_validate(ub.user),
                badge=self.to_response(ub.badge),
                earned_at=ub.earned_at,
                reason=ub.reason,
            )
            for ub in rows
        ]

    @staticmethod
    def to_response(
        badge: Badge,
        total_awarded: int = 0,
        earned_at=None,
        reason: str | None = None,
    ) -> BadgeResponse:
        return BadgeResponse(
            id=badge.id,
            name=badge.name,
            description=badge.description,
            icon_url=badge.icon_url,
            color=badge.color,
            category=badge.category,
            rule_code=badge.rule_code,
            threshold=badge.threshold,
            is_automatic=badge.rule_code is not None,
            is_active=badge.is_active,
            created_at=badge.created_at,
            total_awarded=total_awarded,
            earned_at=earned_at,
            reason=reason,
        )

    def _award_counts(self) -> dict[int, int]:
        rows = (
            self.db.query(UserBadge.badge_id, func.count(UserBadge.id))
            .group_by(UserBadge.badge_id)
            .all()
        )
        return {badge_id: count for badge_id, count in rows}

    def _ensure_name_free(self, name: str) -> None:
        if self.db.query(Badge.id).filter(Badge.name == name).first() is not None:
            raise ConflictError("Ya existe una insignia con ese nombre", resource="badge")
