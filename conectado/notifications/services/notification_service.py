"""Notification records and their real-time delivery.

Every notification is persisted first and pushed afterwards. Push delivery
goes through the gateway, which never raises, so a recipient who is offline
simply sees the notification the next time they list them.
"""

import asyncio
import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from conectado.auth.models.user import User
from conectado.auth.schemas.user import UserBasic
from conectado.core.config import settings
from conectado.core.datetime_utils import time_ago, utcnow
from conectado.core.exceptions import NotFoundError
from conectado.notifications.models.notification import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from conectado.notifications.schemas.notification import (
    BulkNotificationRequest,
    CreateNotificationRequest,
    NotificationListResponse,
    NotificationResponse,
)
from conectado.realtime.gateway import PushEvent, PushGateway, get_gateway

logger = logging.getLogger(__name__)

JUST_NOW_TEXT = "hace un momento"
DEFAULT_ICON = "bi-bell"

ICONS: dict[str, str] = {
    NotificationType.APPLICATION_SUBMITTED: "bi-person-plus",
    NotificationType.APPLICATION_APPROVED: "bi-check-circle",
    NotificationType.APPLICATION_REJECTED: "bi-x-circle",
    NotificationType.APPLICATION_CANCELLED: "bi-dash-circle",
    NotificationType.OPPORTUNITY_CREATED: "bi-calendar-plus",
    NotificationType.OPPORTUNITY_UPDATED: "bi-calendar-check",
    NotificationType.OPPORTUNITY_CANCELLED: "bi-calendar-x",
    NotificationType.MESSAGE_RECEIVED: "bi-chat-dots",
    NotificationType.PROFILE_VERIFIED: "bi-patch-check",
    NotificationType.REMINDER_UPCOMING: "bi-bell",
    NotificationType.SYSTEM_ANNOUNCEMENT: "bi-megaphone",
    NotificationType.BADGE_EARNED: "bi-award",
    NotificationType.WELCOME: "bi-heart",
}

COLORS: dict[str, str] = {
    NotificationType.APPLICATION_APPROVED: "success",
    NotificationType.APPLICATION_REJECTED: "warning",
    NotificationType.APPLICATION_CANCELLED: "secondary",
    NotificationType.OPPORTUNITY_CREATED: "primary",
    NotificationType.MESSAGE_RECEIVED: "info",
    NotificationType.PROFILE_VERIFIED: "success",
    NotificationType.BADGE_EARNED: "warning",
    NotificationType.WELCOME: "primary",
}


def notification_icon(notification_type: str) -> str:
    return ICONS.get(notification_type, DEFAULT_ICON)


def notification_color(notification_type: str, priority: int) -> str:
    """Bootstrap color hint. Urgent always wins over the type's own color."""
    if priority == NotificationPriority.URGENT:
        return "danger"
    if notification_type in COLORS:
        return COLORS[notification_type]
    return "warning" if priority == NotificationPriority.HIGH else "primary"


class NotificationService:
    def __init__(self, db: Session, gateway: PushGateway | None = None) -> None:
        self.db = db
        self.gateway = gateway or get_gateway()

    async def create(self, data: CreateNotificationRequest) -> NotificationResponse:
        if self.db.query(User.id).filter(User.id == data.recipient_id).first() is None:
            raise NotFoundError("Destinatario no encontrado", resource="user")

        notification = self._build(data.recipient_id, data)
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)

        logger.info(
            "Notification %s created for user %s (type=%s)",
            notification.id,
            notification.recipient_id,
            notification.type,
        )

        response = self.to_response(notification)
        await self.gateway.send_to_user(
            notification.recipient_id, PushEvent.RECEIVE_NOTIFICATION, response
        )
        await self.push_unread_count(notification.recipient_id)
        return response

    async def create_bulk(self, data: BulkNotificationRequest) -> list[NotificationResponse]:
        """Insert all rows in one commit, then fan the pushes out concurrently."""
        existing = {
            row.id for row in self.db.query(User.id).filter(User.id.in_(data.recipient_ids)).all()
        }
        missing = sorted(set(data.recipient_ids) - existing)
        if missing:
            raise NotFoundError(
                f"Destinatarios no encontrados: {', '.join(str(m) for m in missing)}",
                resource="user",
            )

        notifications = [self._build(recipient_id, data) for recipient_id in data.recipient_ids]
        self.db.add_all(notifications)
        self.db.commit()
        for notification in notifications:
            self.db.refresh(notification)

        logger.info("Created %d notifications of type %s", len(notifications), data.type)

        responses = [self.to_response(n) for n in notifications]
        unread_counts = self._unread_counts(list(existing))
        semaphore = asyncio.Semaphore(settings.NOTIFICATION_FANOUT_CONCURRENCY)

        async def push(response: NotificationResponse) -> None:
            async with semaphore:
                await self.gateway.send_to_user(
                    response.recipient_id, PushEvent.RECEIVE_NOTIFICATION, response
                )
                await self.gateway.send_to_user(
                    response.recipient_id,
                    PushEvent.UNREAD_COUNT,
                    {"count": unread_counts.get(response.recipient_id, 0)},
                )

        await asyncio.gather(*(push(r) for r in responses))
        return responses

    def list_for_user(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> NotificationListResponse:
        query = self.db.query(Notification).filter(Notification.recipient_id == user_id)
        total = query.count()
        rows = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return NotificationListResponse(
            notifications=[self.to_response(n) for n in rows],
            unread_count=self.get_unread_count(user_id),
            page=page,
            page_size=page_size,
            total_count=total,
        )

    def get_unread_count(self, user_id: int) -> int:
        return (
            self.db.query(func.count(Notification.id))
            .filter(Notification.recipient_id == user_id, Notification.is_read == False)  # noqa: E712
            .scalar()
            or 0
        )

    async def mark_read(self, notification_id: int, user_id: int) -> bool:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == user_id)
            .first()
        )
        if notification is None or notification.is_read:
            return False

        notification.is_read = True
        notification.read_at = utcnow()
        self.db.commit()

        await self.push_unread_count(user_id)
        return True

    async def mark_all_read(self, user_id: int) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.recipient_id == user_id, Notification.is_read == False)  # noqa: E712
            .update({"is_read": True, "read_at": utcnow()})
        )
        self.db.commit()

        logger.info("Marked %d notifications as read for user %s", updated, user_id)
        await self.push_unread_count(user_id)
        return int(updated)

    async def delete(self, notification_id: int, user_id: int) -> bool:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == user_id)
            .first()
        )
        if notification is None:
            return False

        self.db.delete(notification)
        self.db.commit()

        await self.push_unread_count(user_id)
        return True

    async def push_unread_count(self, user_id: int) -> None:
        await self.gateway.send_to_user(
            user_id, PushEvent.UNREAD_COUNT, {"count": self.get_unread_count(user_id)}
        )

    async def send_to_user(self, user_id: int, notification: NotificationResponse) -> None:
        await self.gateway.send_to_user(user_id, PushEvent.RECEIVE_NOTIFICATION, notification)

    async def send_to_group(self, group: str, notification: NotificationResponse) -> None:
        await self.gateway.send_to_group(group, PushEvent.RECEIVE_NOTIFICATION, notification)

    async def send_to_all(self, notification: NotificationResponse) -> None:
        await self.gateway.send_to_all(PushEvent.RECEIVE_NOTIFICATION, notification)

    def to_response(self, notification: Notification) -> NotificationResponse:
        return NotificationResponse(
            id=notification.id,
            recipient_id=notification.recipient_id,
            sender_id=notification.sender_id,
            sender=UserBasic.model_validate(notification.sender) if notification.sender else None,
            title=notification.title,
            message=notification.message,
            type=notification.type,
            action_url=notification.action_url,
            priority=NotificationPriority(notification.priority),
            data=notification.data,
            is_read=notification.is_read,
            created_at=notification.created_at,
            read_at=notification.read_at,
            time_ago=time_ago(notification.created_at, just_now=JUST_NOW_TEXT),
            icon=notification_icon(notification.type),
            color=notification_color(notification.type, notification.priority),
        )

    @staticmethod
    def _build(
        recipient_id: int, data: CreateNotificationRequest | BulkNotificationRequest
    ) -> Notification:
        return Notification(
            recipient_id=recipient_id,
            sender_id=data.sender_id,
            title=data.title,
            message=data.message,
            type=data.type,
            action_url=data.action_url,
            priority=data.priority.value,
            data=data.data,
            created_at=utcnow(),
        )

    def _unread_counts(self, user_ids: list[int]) -> dict[int, int]:
        rows: list[Any] = (
            self.db.query(Notification.recipient_id, func.count(Notification.id))
            .filter(
                Notification.recipient_id.in_(user_ids),
                Notification.is_read == False,  # noqa: E712
            )
            .group_by(Notification.recipient_id)
            .all()
        )
        return {recipient_id: count for recipient_id, count in rows}
