import html
import re

from conectado.auth.schemas.user import UserBasic
from conectado.core.datetime_utils import time_ago
from conectado.messaging.models.message import Message, MessageType
from conectado.messaging.schemas.message import MessageResponse, ReplyToMessage

_URL_RE = re.compile(r"(https?://[^\s]+)")

_UNFORMATTED_TYPES = {MessageType.SYSTEM.value, MessageType.APPLICATION_UPDATE.value}


def format_content(content: str, message_type: str) -> str:
    """Render message text as light HTML: escaped, URLs linked, newlines as ``<br>``.

    System and application-update messages are returned untouched.
    """
    if message_type in _UNFORMATTED_TYPES:
        return content

    escaped = html.escape(content)
    linked = _URL_RE.sub(
        r'<a href="\1" target="_blank" rel="noopener noreferrer">\1</a>', escaped
    )
    return linked.replace("\n", "<br>")


class MessageMapper:
    """Turns Message rows into the view a given user sees."""

    def to_response(self, message: Message, viewer_id: int) -> MessageResponse:
        reply = None
        if message.reply_to is not None:
            reply = ReplyToMessage(
                id=message.reply_to.id,
                content=message.reply_to.content,
                sender=UserBasic.model_validate(message.reply_to.sender),
            )

        # A deleted message keeps its attachment columns but never exposes them
        attachment = not message.is_deleted and message.attachment_url is not None

        return MessageResponse(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            recipient_id=message.recipient_id,
            content=message.content,
            message_type=MessageType(message.message_type),
            is_read=message.is_read,
            sent_at=message.sent_at,
            read_at=message.read_at,
            edited_at=message.edited_at,
            is_deleted=message.is_deleted,
            reply_to_message_id=message.reply_to_message_id,
            attachment_url=message.attachment_url if attachment else None,
            attachment_file_name=message.attachment_file_name if attachment else None,
            attachment_mime_type=message.attachment_mime_type if attachment else None,
            attachment_size=message.attachment_size if attachment else None,
            sender=UserBasic.model_validate(message.sender),
            recipient=UserBasic.model_validate(message.recipient),
            reply_to_message=reply,
            time_ago=time_ago(message.sent_at),
            is_from_current_user=message.sender_id == viewer_id,
            formatted_content=format_content(message.content, message.message_type),
        )
