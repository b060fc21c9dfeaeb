import pytest

from conectado.core import redis as redis_module
from conectado.messaging.schemas.message import SendMessageRequest
from conectado.messaging.services.conversation_service import ConversationService
from conectado.messaging.services.message_service import MessageService
from conectado.notifications.services.presence_service import PresenceService
from tests.utils.factories import create_user_factory


@pytest.fixture
def messages(db_session, gateway, storage):
    return MessageService(db_session, gateway, storage=storage)


@pytest.fixture
def conversations(db_session):
    return ConversationService(db_session)


async def send(messages, sender, recipient, content="Hola"):
    return await messages.send_message(
        sender, SendMessageRequest(recipient_id=recipient.id, content=content)
    )


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)


class TestListConversations:
    async def test_should_list_newest_first_with_other_user(
        self, db_session, messages, conversations, test_user, other_user
    ):
        third = create_user_factory(db_session)
        await send(messages, other_user, test_user, "Primero")
        await send(messages, third, test_user, "Segundo")

        result = conversations.list_conversations(test_user.id)

        assert result.total_count == 2
        assert [c.other_user.id for c in result.conversations] == [third.id, other_user.id]
        assert result.total_unread == 2
        assert all(c.unread_count == 1 for c in result.conversations)
        assert result.conversations[0].last_message.content == "Segundo"

    async def test_should_skip_archived(
        self, messages, conversations, test_user, other_user
    ):
        sent = await send(messages, other_user, test_user)

        conversations.archive(test_user.id, sent.conversation_id)

        assert conversations.list_conversations(test_user.id).total_count == 0

    async def test_should_include_presence_of_other_user(
        self, db_session, messages, conversations, test_user, other_user
    ):
        await send(messages, other_user, test_user)
        PresenceService(db_session).set_online(other_user.id, True)

        result = conversations.list_conversations(test_user.id)

        assert result.conversations[0].is_online is True
        assert result.conversations[0].last_seen is not None


class TestStatsAndCounts:
    async def test_should_count_unread_conversations_and_messages(
        self, messages, conversations, test_user, other_user
    ):
        await send(messages, other_user, test_user, "Uno")
        await send(messages, other_user, test_user, "Dos")

        stats = conversations.get_stats(test_user.id)

        assert stats.total_conversations == 1
        assert stats.unread_conversations == 1
        assert stats.total_unread_messages == 2
        assert stats.last_activity is not None
        assert conversations.get_unread_count(test_user.id) == 1
        assert conversations.get_unread_count(other_user.id) == 0

    async def test_should_drop_to_zero_after_read(
        self, messages, conversations, test_user, other_user
    ):
        sent = await send(messages, other_user, test_user)

        await messages.mark_as_read(test_user.id, sent.conversation_id)

        assert conversations.get_unread_count(test_user.id) == 0
        assert conversations.count_unread_messages(test_user.id) == 0


class TestUnreadCountCache:
    async def test_should_work_without_redis(self, messages, conversations, test_user, other_user):
        redis_module.redis_client = None
        await send(messages, other_user, test_user)

        assert await conversations.get_unread_count_cached(test_user.id) == 1

    async def test_should_serve_cached_value_until_invalidated(
        self, messages, conversations, test_user, other_user, monkeypatch
    ):
        fake = FakeRedis()
        monkeypatch.setattr(redis_module, "redis_client", fake)

        assert await conversations.get_unread_count_cached(test_user.id) == 0
        assert fake.store == {f"dm:unread:{test_user.id}": "0"}

        await send(messages, other_user, test_user)

        assert fake.store == {}
        assert await conversations.get_unread_count_cached(test_user.id) == 1
