from datetime import timedelta

import pytest

from conectado.core.datetime_utils import utcnow
from conectado.core.exceptions import NotFoundError
from conectado.notifications.models.notification import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from conectado.notifications.schemas.notification import (
    BulkNotificationRequest,
    CreateNotificationRequest,
)
from conectado.notifications.services import templates
from conectado.notifications.services.notification_service import (
    notification_color,
    notification_icon,
)
from conectado.realtime.gateway import PushEvent
from tests.utils.factories import create_notification_factory, create_user_factory


def unread_rows(db_session, user) -> int:
    return (
        db_session.query(Notification)
        .filter(Notification.recipient_id == user.id, Notification.is_read == False)  # noqa: E712
        .count()
    )


class TestCreate:
    async def test_should_persist_and_push(self, notification_service, gateway, test_user):
        response = await notification_service.create(
            CreateNotificationRequest(
                recipient_id=test_user.id,
                title="Recordatorio",
                message="Tu evento es mañana",
                type=NotificationType.REMINDER_UPCOMING,
                priority=NotificationPriority.HIGH,
            )
        )

        assert response.id is not None
        assert response.is_read is False
        assert response.time_ago == "hace un momento"
        assert response.icon == "bi-bell"
        assert response.color == "warning"

        pushed = gateway.events_for(test_user.id)
        assert [event for event, _ in pushed] == [
            PushEvent.RECEIVE_NOTIFICATION,
            PushEvent.UNREAD_COUNT,
        ]
        assert pushed[1][1] == {"count": 1}

    async def test_should_reject_unknown_recipient(self, notification_service):
        with pytest.raises(NotFoundError):
            await notification_service.create(
                CreateNotificationRequest(
                    recipient_id=987_654, title="Hola", message="Hola", type="welcome"
                )
            )

    async def test_should_embed_sender(self, notification_service, test_user, test_organization):
        response = await notification_service.create(
            templates.application_submitted(
                test_organization.id, test_user.id, test_user.full_name, "Jornada de limpieza", 3
            )
        )

        assert response.sender is not None
        assert response.sender.id == test_user.id
        assert response.type == NotificationType.APPLICATION_SUBMITTED


class TestBulk:
    async def test_should_create_one_row_per_recipient(
        self, db_session, notification_service, gateway
    ):
        users = [create_user_factory(db_session) for _ in range(4)]

        responses = await notification_service.create_bulk(
            BulkNotificationRequest(
                recipient_ids=[u.id for u in users],
                title="Aviso",
                message="Mantenimiento programado",
                type=NotificationType.SYSTEM_ANNOUNCEMENT,
            )
        )

        assert len(responses) == 4
        assert {r.recipient_id for r in responses} == {u.id for u in users}
        for user in users:
            assert unread_rows(db_session, user) == 1
            events = [e for e, _ in gateway.events_for(user.id)]
            assert events == [PushEvent.RECEIVE_NOTIFICATION, PushEvent.UNREAD_COUNT]

    async def test_should_write_nothing_when_a_recipient_is_missing(
        self, db_session, notification_service, gateway, test_user
    ):
        with pytest.raises(NotFoundError):
            await notification_service.create_bulk(
                BulkNotificationRequest(
                    recipient_ids=[test_user.id, 555_555],
                    title="Aviso",
                    message="Hola",
                    type=NotificationType.SYSTEM_ANNOUNCEMENT,
                )
            )

        assert db_session.query(Notification).count() == 0
        assert gateway.sent == []


class TestReadState:
    async def test_unread_count_matches_rows(self, db_session, notification_service, test_user):
        for _ in range(3):
            create_notification_factory(db_session, test_user)
        create_notification_factory(db_session, test_user, is_read=True)

        assert notification_service.get_unread_count(test_user.id) == 3
        assert notification_service.get_unread_count(test_user.id) == unread_rows(
            db_session, test_user
        )

    async def test_mark_all_read_sets_count_to_zero(
        self, db_session, notification_service, gateway, test_user, other_user
    ):
        for _ in range(3):
            create_notification_factory(db_session, test_user)
        foreign = create_notification_factory(db_session, other_user)

        updated = await notification_service.mark_all_read(test_user.id)

        assert updated == 3
        assert notification_service.get_unread_count(test_user.id) == 0
        assert unread_rows(db_session, test_user) == 0
        assert db_session.get(Notification, foreign.id).is_read is False
        assert gateway.events_for(test_user.id, PushEvent.UNREAD_COUNT)[-1][1] == {"count": 0}

    async def test_mark_read_returns_false_for_foreign_or_read(
        self, db_session, notification_service, test_user, other_user
    ):
        own = create_notification_factory(db_session, test_user)
        foreign = create_notification_factory(db_session, other_user)

        assert await notification_service.mark_read(own.id, test_user.id) is True
        assert await notification_service.mark_read(own.id, test_user.id) is False
        assert await notification_service.mark_read(foreign.id, test_user.id) is False
        assert await notification_service.mark_read(123_456, test_user.id) is False
        assert db_session.get(Notification, own.id).read_at is not None

    async def test_delete_only_own(self, db_session, notification_service, test_user, other_user):
        own = create_notification_factory(db_session, test_user)
        foreign = create_notification_factory(db_session, other_user)

        assert await notification_service.delete(foreign.id, test_user.id) is False
        assert await notification_service.delete(own.id, test_user.id) is True
        assert db_session.get(Notification, own.id) is None
        assert db_session.get(Notification, foreign.id) is not None


class TestListing:
    async def test_should_page_newest_first(self, db_session, notification_service, test_user):
        old = create_notification_factory(db_session, test_user, title="Antigua")
        old.created_at = utcnow() - timedelta(days=2)
        db_session.flush()
        create_notification_factory(db_session, test_user, title="Nueva")

        result = notification_service.list_for_user(test_user.id, page=1, page_size=1)

        assert [n.title for n in result.notifications] == ["Nueva"]
        assert result.total_count == 2
        assert result.unread_count == 2
        assert result.has_next_page is True

        second = notification_service.list_for_user(test_user.id, page=2, page_size=1)
        assert second.notifications[0].time_ago == "hace 2 días"


class TestIconAndColor:
    def test_known_types_map_to_icons(self):
        assert notification_icon(NotificationType.MESSAGE_RECEIVED) == "bi-chat-dots"
        assert notification_icon(NotificationType.BADGE_EARNED) == "bi-award"
        assert notification_icon("something_new") == "bi-bell"

    def test_urgent_priority_wins(self):
        assert notification_color(NotificationType.APPLICATION_APPROVED, 4) == "danger"

    def test_type_color_then_priority_fallback(self):
        assert notification_color(NotificationType.APPLICATION_APPROVED, 2) == "success"
        assert notification_color("something_new", NotificationPriority.HIGH) == "warning"
        assert notification_color("something_new", NotificationPriority.LOW) == "primary"


class TestPushHelpers:
    async def test_send_to_group_and_user(self, notification_service, gateway, test_user):
        response = await notification_service.create(templates.welcome(test_user.id, "Ana"))
        gateway.sent.clear()

        await notification_service.send_to_group("Voluntarios", response)
        await notification_service.send_to_user(test_user.id, response)

        assert [(g, e) for g, e, _ in gateway.sent] == [
            ("Voluntarios", PushEvent.RECEIVE_NOTIFICATION),
            (f"User_{test_user.id}", PushEvent.RECEIVE_NOTIFICATION),
        ]
