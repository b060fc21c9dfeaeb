from pydantic import BaseModel

from conectado.auth.schemas.user import UserBasic
from conectado.core.datetime_utils import UTCDatetime
from conectado.core.schemas import PagedResult
from conectado.messaging.schemas.message import MessageResponse


class ConversationResponse(BaseModel):
    id: str
    other_user: UserBasic
    last_message: MessageResponse | None = None
    last_message_at: UTCDatetime
    has_unread: bool
    unread_count: int
    is_online: bool
    last_seen: UTCDatetime | None = None
    is_archived: bool = False
    created_at: UTCDatetime


class ConversationListResponse(PagedResult):
    conversations: list[ConversationResponse]
    total_unread: int


class ConversationMessagesResponse(PagedResult):
    conversation_id: str
    other_user: UserBasic
    messages: list[MessageResponse]
    is_other_user_online: bool
    other_user_last_seen: UTCDatetime | None = None
    is_typing: bool = False


class ConversationStats(BaseModel):
    total_conversations: int
    unread_conversations: int
    total_unread_messages: int
    last_activity: UTCDatetime | None = None
