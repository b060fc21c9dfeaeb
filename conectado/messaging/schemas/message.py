from dataclasses import dataclass

from pydantic import BaseModel, Field

from conectado.auth.schemas.user import UserBasic
from conectado.core.constants import MESSAGE_CONTENT_MAX_LENGTH
from conectado.core.datetime_utils import UTCDatetime
from conectado.messaging.models.message import MessageType


@dataclass(frozen=True)
class UploadedAttachment:
    """File received with a message, before validation or storage."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class SendMessageRequest(BaseModel):
    recipient_id: int = Field(..., gt=0)
    content: str = Field(default="", max_length=MESSAGE_CONTENT_MAX_LENGTH)
    message_type: MessageType = MessageType.TEXT
    reply_to_message_id: int | None = None


class StartConversationRequest(BaseModel):
    recipient_id: int = Field(..., gt=0)
    initial_message: str = Field(..., min_length=1, max_length=MESSAGE_CONTENT_MAX_LENGTH)
    subject: str | None = None


class EditMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=MESSAGE_CONTENT_MAX_LENGTH)


class TypingRequest(BaseModel):
    recipient_id: int = Field(..., gt=0)
    conversation_id: str
    is_typing: bool = True


class ReplyToMessage(BaseModel):
    id: int
    content: str
    sender: UserBasic


class MessageResponse(BaseModel):
    id: int
    conversation_id: str
    sender_id: int
    recipient_id: int
    content: str
    message_type: MessageType
    is_read: bool
    sent_at: UTCDatetime
    read_at: UTCDatetime | None = None
    edited_at: UTCDatetime | None = None
    is_deleted: bool = False
    reply_to_message_id: int | None = None
    attachment_url: str | None = None
    attachment_file_name: str | None = None
    attachment_mime_type: str | None = None
    attachment_size: int | None = None
    sender: UserBasic
    recipient: UserBasic
    reply_to_message: ReplyToMessage | None = None
    time_ago: str
    is_from_current_user: bool
    formatted_content: str


class MessageReadReceipt(BaseModel):
    message_id: int
    is_read: bool
    read_at: UTCDatetime | None = None


class TypingIndicator(BaseModel):
    user_id: int
    user_name: str
    conversation_id: str
    is_typing: bool
