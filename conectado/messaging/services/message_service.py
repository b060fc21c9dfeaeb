import logging
from datetime import timedelta

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from conectado.auth.models.user import User
from conectado.auth.schemas.user import UserBasic
from conectado.core.config import settings
from conectado.core.constants import (
    DELETED_MESSAGE_PLACEHOLDER,
    MESSAGE_ATTACHMENT_ALLOWED_MIME_TYPES,
    MESSAGE_ATTACHMENT_FOLDER,
)
from conectado.core.datetime_utils import as_utc, utcnow
from conectado.core.exceptions import ConflictError, NotFoundError, ValidationError
from conectado.core.storage import StorageBackend, generate_unique_filename, get_storage
from conectado.messaging.models.message import Message, MessageType
from conectado.messaging.schemas.conversation import (
    ConversationMessagesResponse,
    ConversationResponse,
)
from conectado.messaging.schemas.message import (
    MessageReadReceipt,
    MessageResponse,
    SendMessageRequest,
    StartConversationRequest,
    TypingIndicator,
    UploadedAttachment,
)
from conectado.messaging.services.conversation_service import (
    ConversationService,
    conversation_key,
)
from conectado.messaging.services.message_mapper import MessageMapper
from conectado.notifications.models.notification import NotificationType
from conectado.notifications.schemas.notification import CreateNotificationRequest
from conectado.notifications.services.notification_service import NotificationService
from conectado.realtime.gateway import PushEvent, PushGateway, get_gateway

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(
        self,
        db: Session,
        gateway: PushGateway | None = None,
        notifications: NotificationService | None = None,
        storage: StorageBackend | None = None,
    ) -> None:
        self.db = db
        self.gateway = gateway or get_gateway()
        self.notifications = notifications or NotificationService(db, self.gateway)
        self._storage = storage
        self.conversations = ConversationService(db)
        self.mapper = MessageMapper()

    @property
    def storage(self) -> StorageBackend:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    async def send_message(
        self,
        sender: User,
        data: SendMessageRequest,
        attachment: UploadedAttachment | None = None,
    ) -> MessageResponse:
        if data.recipient_id == sender.id:
            raise ValidationError("No puedes enviarte mensajes a ti mismo", field="recipient_id")

        recipient = self.db.query(User).filter(User.id == data.recipient_id).first()
        if recipient is None:
            raise NotFoundError("Destinatario no encontrado", resource="user")

        content = data.content.strip()
        if not content and attachment is None:
            raise ValidationError("El mensaje no puede estar vacío", field="content")

        message_type = data.message_type
        if attachment is not None:
            self._validate_attachment(attachment)
            if attachment.content_type.lower().startswith("image/"):
                message_type = MessageType.IMAGE
            else:
                message_type = MessageType.FILE

        key = conversation_key(sender.id, recipient.id)
        if data.reply_to_message_id is not None:
            self._check_reply_target(data.reply_to_message_id, key)

        attachment_fields: dict[str, object] = {}
        if attachment is not None:
            path = self.storage.upload(
                attachment.content,
                MESSAGE_ATTACHMENT_FOLDER,
                generate_unique_filename(attachment.filename),
                content_type=attachment.content_type.lower(),
            )
            attachment_fields = {
                "attachment_url": self.storage.download_url(path),
                "attachment_file_name": attachment.filename,
                "attachment_mime_type": attachment.content_type.lower(),
                "attachment_size": attachment.size,
            }

        conversation = self.conversations.get_or_create(sender.id, recipient.id)

        now = utcnow()
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender.id,
            recipient_id=recipient.id,
            content=content,
            message_type=message_type.value,
            sent_at=now,
            reply_to_message_id=data.reply_to_message_id,
            **attachment_fields,
        )
        self.db.add(message)
        self.db.flush()

        conversation.last_message = message
        conversation.last_message_at = now
        conversation.mark_unread_for(recipient.id)

        self.db.commit()
        self.db.refresh(message)

        logger.info(
            "Message %s sent from user %s to user %s in conversation %s",
            message.id,
            sender.id,
            recipient.id,
            conversation.id,
        )

        await self.conversations.invalidate_unread_cache(recipient.id)
        await self.gateway.send_to_user(
            recipient.id,
            PushEvent.RECEIVE_MESSAGE,
            self.mapper.to_response(message, viewer_id=recipient.id),
        )
        await self._notify_new_message(sender, recipient.id, message)

        return self.mapper.to_response(message, viewer_id=sender.id)

    async def start_conversation(
        self, sender: User, data: StartConversationRequest
    ) -> ConversationResponse:
        await self.send_message(
            sender,
            SendMessageRequest(recipient_id=data.recipient_id, content=data.initial_message),
        )
        conversation = self.conversations.get_for_participant(
            conversation_key(sender.id, data.recipient_id), sender.id
        )
        return self.conversations.build_response(conversation, sender.id)

    def get_conversation_messages(
        self,
        user_id: int,
        conversation_id: str,
        page: int = 1,
        page_size: int = 50,
        include_deleted: bool = False,
    ) -> ConversationMessagesResponse:
        """Return one page of history, newest page first, oldest-first within the page."""
        conversation = self.conversations.get_for_participant(conversation_id, user_id)

        query = self.db.query(Message).filter(Message.conversation_id == conversation_id)
        if not include_deleted:
            query = query.filter(Message.is_deleted == False)  # noqa: E712

        total = query.count()
        messages = (
            query.order_by(Message.sent_at.desc(), Message.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        messages.reverse()

        other_id = conversation.other_user_id(user_id)
        other = conversation.user2 if other_id == conversation.user2_id else conversation.user1
        status = self.conversations.presence.get_status(other_id)

        return ConversationMessagesResponse(
            conversation_id=conversation_id,
            other_user=UserBasic.model_validate(other),
            messages=[self.mapper.to_response(m, viewer_id=user_id) for m in messages],
            is_other_user_online=status.is_online,
            other_user_last_seen=status.last_seen,
            page=page,
            page_size=page_size,
            total_count=total,
        )

    async def edit_message(self, message_id: int, user_id: int, content: str) -> MessageResponse:
        message = self._get_own_message(message_id, user_id)
        if message.is_deleted:
            raise ValidationError("No se puede editar un mensaje eliminado")

        window = timedelta(minutes=settings.MESSAGE_EDIT_WINDOW_MINUTES)
        if utcnow() - as_utc(message.sent_at) > window:
            raise ValidationError(
                f"Solo puedes editar mensajes durante los primeros "
                f"{settings.MESSAGE_EDIT_WINDOW_MINUTES} minutos"
            )

        content = content.strip()
        if not content:
            raise ValidationError("El mensaje no puede estar vacío", field="content")

        message.content = content
        message.edited_at = utcnow()
        self._commit_message_change(message)

        logger.info("Message %s edited by user %s", message.id, user_id)

        await self.gateway.send_to_user(
            message.recipient_id,
            PushEvent.MESSAGE_EDITED,
            self.mapper.to_response(message, viewer_id=message.recipient_id),
        )
        return self.mapper.to_response(message, viewer_id=user_id)

    async def delete_message(self, message_id: int, user_id: int) -> None:
        message = self._get_own_message(message_id, user_id)
        if message.is_deleted:
            raise NotFoundError("Mensaje no encontrado", resource="message")

        message.is_deleted = True
        message.deleted_at = utcnow()
        message.content = DELETED_MESSAGE_PLACEHOLDER
        self._commit_message_change(message)

        logger.info("Message %s deleted by user %s", message.id, user_id)

        await self.gateway.send_to_user(
            message.recipient_id, PushEvent.MESSAGE_DELETED, {"message_id": message.id}
        )

    async def mark_as_read(self, user_id: int, conversation_id: str) -> int:
        """Mark every unread message addressed to ``user_id`` as read. Returns how many."""
        conversation = self.conversations.get_for_participant(conversation_id, user_id)

        unread = (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.recipient_id == user_id,
                Message.is_read == False,  # noqa: E712
            )
            .all()
        )

        now = utcnow()
        for message in unread:
            message.is_read = True
            message.read_at = now
        conversation.clear_unread_for(user_id)
        self.db.commit()

        await self.conversations.invalidate_unread_cache(user_id)

        for message in unread:
            await self.gateway.send_to_user(
                message.sender_id,
                PushEvent.MESSAGE_READ,
                MessageReadReceipt(message_id=message.id, is_read=True, read_at=now),
            )
        return len(unread)

    async def notify_typing(
        self, sender_id: int, recipient_id: int, conversation_id: str, is_typing: bool
    ) -> None:
        if conversation_id != conversation_key(sender_id, recipient_id):
            logger.warning(
                "Typing indicator from user %s for foreign conversation %s ignored",
                sender_id,
                conversation_id,
            )
            return

        sender = self.db.get(User, sender_id)
        if sender is None:
            logger.warning("Typing indicator from unknown user %s ignored", sender_id)
            return

        await self.gateway.send_to_user(
            recipient_id,
            PushEvent.TYPING_INDICATOR,
            TypingIndicator(
                user_id=sender.id,
                user_name=sender.full_name,
                conversation_id=conversation_id,
                is_typing=is_typing,
            ),
        )

    def _validate_attachment(self, attachment: UploadedAttachment) -> None:
        if attachment.content_type.lower() not in MESSAGE_ATTACHMENT_ALLOWED_MIME_TYPES:
            raise ValidationError("Tipo de archivo no permitido", field="attachment")
        if attachment.size > settings.MESSAGE_ATTACHMENT_MAX_BYTES:
            max_mb = settings.MESSAGE_ATTACHMENT_MAX_BYTES // (1024 * 1024)
            raise ValidationError(
                f"El archivo excede el tamaño máximo de {max_mb} MB", field="attachment"
            )

    def _check_reply_target(self, reply_to_message_id: int, conversation_id: str) -> None:
        target = self.db.get(Message, reply_to_message_id)
        if target is None or target.conversation_id != conversation_id:
            raise ValidationError(
                "El mensaje al que respondes no pertenece a esta conversación",
                field="reply_to_message_id",
            )

    def _get_own_message(self, message_id: int, user_id: int) -> Message:
        message = (
            self.db.query(Message)
            .filter(Message.id == message_id, Message.sender_id == user_id)
            .first()
        )
        if message is None:
            raise NotFoundError("Mensaje no encontrado", resource="message")
        return message

    def _commit_message_change(self, message: Message) -> None:
        message_id = message.id
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning("Concurrent modification of message %s", message_id)
            raise ConflictError(
                "El mensaje fue modificado por otra operación, inténtalo de nuevo",
                resource="message",
            ) from None

    async def _notify_new_message(self, sender: User, recipient_id: int, message: Message) -> None:
        try:
            await self.notifications.create(
                CreateNotificationRequest(
                    recipient_id=recipient_id,
                    sender_id=sender.id,
                    title="Nuevo mensaje",
                    message=f"Tienes un nuevo mensaje de {sender.full_name}",
                    type=NotificationType.MESSAGE_RECEIVED,
                    action_url=f"/Messages/{message.conversation_id}",
                    data={"conversation_id": message.conversation_id, "message_id": message.id},
                )
            )
        except Exception as exc:
            logger.warning(
                "Failed to create message notification for user %s: %s", recipient_id, exc
            )
