import pytest
from sqlalchemy import insert

from conectado.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from conectado.messaging.models.conversation import Conversation
from conectado.messaging.services.conversation_service import (
    ConversationService,
    conversation_key,
    parse_conversation_key,
)


class TestConversationKey:
    @pytest.mark.parametrize("a,b", [(5, 9), (9, 5), (1, 2), (10, 9), (123, 45)])
    def test_should_be_order_independent(self, a, b):
        assert conversation_key(a, b) == conversation_key(b, a)

    def test_should_put_lower_id_first_numerically(self):
        assert conversation_key(10, 9) == "9_10"
        assert conversation_key(5, 9) == "5_9"

    def test_should_parse_canonical_key(self):
        assert parse_conversation_key("5_9") == (5, 9)

    @pytest.mark.parametrize(
        "key", ["", "5", "5_", "_9", "a_b", "9_5", "5_5", "0_3", "5_9_1", " 5_9"]
    )
    def test_should_reject_malformed_keys(self, key):
        with pytest.raises(ValidationError):
            parse_conversation_key(key)


class TestGetOrCreate:
    def test_should_return_same_row_for_both_orders(self, db_session, test_user, other_user):
        service = ConversationService(db_session)

        first = service.get_or_create(test_user.id, other_user.id)
        second = service.get_or_create(other_user.id, test_user.id)

        assert first is second
        assert first.id == conversation_key(test_user.id, other_user.id)
        assert first.user1_id == min(test_user.id, other_user.id)
        assert first.user2_id == max(test_user.id, other_user.id)

    def test_should_start_without_unread_flags(self, db_session, test_user, other_user):
        conversation = ConversationService(db_session).get_or_create(test_user.id, other_user.id)

        assert conversation.user1_has_unread is False
        assert conversation.user2_has_unread is False
        assert conversation.last_message_id is None

    def test_should_reuse_row_inserted_concurrently(
        self, db_session, monkeypatch, test_user, other_user
    ):
        key = conversation_key(test_user.id, other_user.id)
        db_session.execute(
            insert(Conversation).values(
                id=key,
                user1_id=min(test_user.id, other_user.id),
                user2_id=max(test_user.id, other_user.id),
            )
        )
        real_get = db_session.get
        lookups: list[str] = []

        def get_missing_first(entity, ident, **kwargs):
            # The first lookup happens before the other request commits
            if entity is Conversation and not lookups:
                lookups.append(ident)
                return None
            return real_get(entity, ident, **kwargs)

        monkeypatch.setattr(db_session, "get", get_missing_first)

        conversation = ConversationService(db_session).get_or_create(
            other_user.id, test_user.id
        )

        assert lookups == [key]
        assert conversation.id == key
        assert db_session.query(Conversation).filter(Conversation.id == key).count() == 1


class TestGetForParticipant:
    def test_should_forbid_outsider(self, db_session, test_user, other_user, test_admin):
        service = ConversationService(db_session)
        conversation = service.get_or_create(test_user.id, other_user.id)

        with pytest.raises(ForbiddenError):
            service.get_for_participant(conversation.id, test_admin.id)

    def test_should_raise_not_found_when_never_started(self, db_session, test_user, other_user):
        service = ConversationService(db_session)

        with pytest.raises(NotFoundError):
            service.get_for_participant(
                conversation_key(test_user.id, other_user.id), test_user.id
            )

    def test_should_reject_malformed_id(self, db_session, test_user):
        with pytest.raises(ValidationError):
            ConversationService(db_session).get_for_participant("not-a-key", test_user.id)
