import logging
import re
from typing import cast

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from conectado.auth.schemas.user import UserBasic
from conectado.core import redis as redis_module
from conectado.core.config import settings
from conectado.core.constants import UNREAD_DM_CACHE_KEY
from conectado.core.datetime_utils import utcnow
from conectado.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from conectado.messaging.models.conversation import Conversation
from conectado.messaging.models.message import Message
from conectado.messaging.schemas.conversation import (
    ConversationListResponse,
    ConversationResponse,
    ConversationStats,
)
from conectado.messaging.services.message_mapper import MessageMapper
from conectado.notifications.services.presence_service import PresenceService

logger = logging.getLogger(__name__)

_CONVERSATION_KEY_RE = re.compile(r"^(\d+)_(\d+)$")


def conversation_key(user_a: int, user_b: int) -> str:
    """Canonical id of the conversation between two users, independent of order."""
    return f"{min(user_a, user_b)}_{max(user_a, user_b)}"


def parse_conversation_key(key: str) -> tuple[int, int]:
    """Split ``"{lower}_{higher}"`` into its two user ids.

    Raises:
        ValidationError: If the key is not two positive integers, lower first.
    """
    match = _CONVERSATION_KEY_RE.match(key or "")
    if match is None:
        raise ValidationError("Identificador de conversación inválido", field="conversation_id")
    lower, higher = int(match.group(1)), int(match.group(2))
    if lower <= 0 or lower >= higher:
        raise ValidationError("Identificador de conversación inválido", field="conversation_id")
    return lower, higher


class ConversationService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.presence = PresenceService(db)
        self.mapper = MessageMapper()

    def get_or_create(self, user_a: int, user_b: int) -> Conversation:
        key = conversation_key(user_a, user_b)
        conversation = self.db.get(Conversation, key)
        if conversation is not None:
            return conversation

        now = utcnow()
        conversation = Conversation(
            id=key,
            user1_id=min(user_a, user_b),
            user2_id=max(user_a, user_b),
            created_at=now,
            last_message_at=now,
            user1_has_unread=False,
            user2_has_unread=False,
        )
        try:
            with self.db.begin_nested():
                self.db.add(conversation)
        except IntegrityError:
            # Another request created the pair between the lookup and the insert
            logger.info("Conversation %s created concurrently, reusing it", key)
            return cast(Conversation, self.db.get(Conversation, key))

        logger.info("Conversation %s created", key)
        return conversation

    def get_for_participant(self, conversation_id: str, user_id: int) -> Conversation:
        """Load a conversation the user takes part in.

        Raises:
            ValidationError: Malformed conversation id.
            ForbiddenError: The user is not one of the two participants.
            NotFoundError: No conversation has been started for the pair yet.
        """
        participants = parse_conversation_key(conversation_id)
        if user_id not in participants:
            raise ForbiddenError("No tienes acceso a esta conversación")

        conversation = self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversación no encontrada", resource="conversation")
        return cast(Conversation, conversation)

    def list_conversations(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> ConversationListResponse:
        query = self.db.query(Conversation).filter(
            or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id),
            Conversation.is_archived == False,  # noqa: E712
        )
        total = query.count()
        conversations = (
            query.order_by(Conversation.last_message_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        items = [self.build_response(c, user_id) for c in conversations]

        return ConversationListResponse(
            conversations=items,
            total_unread=sum(1 for item in items if item.has_unread),
            page=page,
            page_size=page_size,
            total_count=total,
        )

    def get_stats(self, user_id: int) -> ConversationStats:
        involved = or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id)
        active = self.db.query(Conversation).filter(
            involved,
            Conversation.is_archived == False,  # noqa: E712
        )

        unread_conversations = active.filter(
            or_(
                (Conversation.user1_id == user_id) & (Conversation.user1_has_unread == True),  # noqa: E712
                (Conversation.user2_id == user_id) & (Conversation.user2_has_unread == True),  # noqa: E712
            )
        ).count()

        last_activity = (
            self.db.query(func.max(Message.sent_at))
            .filter(or_(Message.sender_id == user_id, Message.recipient_id == user_id))
            .scalar()
        )

        return ConversationStats(
            total_conversations=active.count(),
            unread_conversations=unread_conversations,
            total_unread_messages=self.count_unread_messages(user_id),
            last_activity=last_activity,
        )

    def archive(self, user_id: int, conversation_id: str) -> None:
        conversation = self.get_for_participant(conversation_id, user_id)
        conversation.is_archived = True
        self.db.commit()
        logger.info("Conversation %s archived by user %s", conversation_id, user_id)

    def count_unread_messages(self, user_id: int, conversation_id: str | None = None) -> int:
        query = self.db.query(func.count(Message.id)).filter(
            Message.recipient_id == user_id,
            Message.is_read == False,  # noqa: E712
            Message.is_deleted == False,  # noqa: E712
        )
        if conversation_id is not None:
            query = query.filter(Message.conversation_id == conversation_id)
        return query.scalar() or 0

    def get_unread_count(self, user_id: int) -> int:
        """Number of non-archived conversations with the user's unread flag set."""
        return (
            self.db.query(func.count(Conversation.id))
            .filter(
                Conversation.is_archived == False,  # noqa: E712
                or_(
                    (Conversation.user1_id == user_id) & (Conversation.user1_has_unread == True),  # noqa: E712
                    (Conversation.user2_id == user_id) & (Conversation.user2_has_unread == True),  # noqa: E712
                ),
            )
            .scalar()
            or 0
        )

    async def get_unread_count_cached(self, user_id: int) -> int:
        cache_key = UNREAD_DM_CACHE_KEY.format(user_id=user_id)
        try:
            cached = await redis_module.cache_get_int(cache_key)
            if cached is not None:
                return cached
        except Exception:
            logger.warning("Redis cache read failed for unread count")

        count = self.get_unread_count(user_id)

        try:
            await redis_module.cache_set_int(
                cache_key, count, settings.UNREAD_COUNT_CACHE_TTL_SECONDS
            )
        except Exception:
            logger.warning("Redis cache write failed for unread count")

        return count

    async def invalidate_unread_cache(self, *user_ids: int) -> None:
        try:
            await redis_module.cache_delete(
                *(UNREAD_DM_CACHE_KEY.format(user_id=uid) for uid in user_ids)
            )
        except Exception:
            logger.warning("Redis cache invalidation failed for unread count")

    def build_response(
        self, conversation: Conversation, user_id: int
    ) -> ConversationResponse:
        other = conversation.user2 if user_id == conversation.user1_id else conversation.user1
        status = self.presence.get_status(other.id)

        last_message = None
        if conversation.last_message is not None:
            last_message = self.mapper.to_response(conversation.last_message, viewer_id=user_id)

        return ConversationResponse(
            id=conversation.id,
            other_user=UserBasic.model_validate(other),
            last_message=last_message,
            last_message_at=conversation.last_message_at,
            has_unread=conversation.has_unread_for(user_id),
            unread_count=self.count_unread_messages(user_id, conversation.id),
            is_online=status.is_online,
            last_seen=status.last_seen,
            is_archived=conversation.is_archived,
            created_at=conversation.created_at,
        )
