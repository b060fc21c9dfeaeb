from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from conectado.auth.dependencies import get_current_user
from conectado.auth.models.user import User
from conectado.core.config import settings
from conectado.core.constants import (
    CONVERSATION_MESSAGES_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
)
from conectado.core.rate_limit import limiter
from conectado.core.schemas import ApiResponse, success_response
from conectado.db.session import get_db
from conectado.messaging.models.message import MessageType
from conectado.messaging.schemas.conversation import (
    ConversationListResponse,
    ConversationMessagesResponse,
    ConversationResponse,
    ConversationStats,
)
from conectado.messaging.schemas.message import (
    EditMessageRequest,
    MessageResponse,
    SendMessageRequest,
    StartConversationRequest,
    TypingRequest,
    UploadedAttachment,
)
from conectado.messaging.services.conversation_service import ConversationService
from conectado.messaging.services.message_service import MessageService
from conectado.notifications.schemas.notification import UnreadCountResponse
from conectado.realtime.gateway import PushGateway, get_gateway

router = APIRouter()


@router.post(
    "/send",
    response_model=ApiResponse[MessageResponse],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.SEND_MESSAGE_RATE_LIMIT)
async def send_message(
    request: Request,
    recipient_id: int = Form(...),
    content: str = Form(""),
    message_type: MessageType = Form(MessageType.TEXT),
    reply_to_message_id: int | None = Form(None),
    attachment: UploadFile | None = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[MessageResponse]:
    data = SendMessageRequest(
        recipient_id=recipient_id,
        content=content,
        message_type=message_type,
        reply_to_message_id=reply_to_message_id,
    )

    uploaded = None
    if attachment is not None and attachment.filename:
        uploaded = UploadedAttachment(
            filename=attachment.filename,
            content_type=attachment.content_type or "application/octet-stream",
            content=await attachment.read(),
        )

    service = MessageService(db, gateway)
    message = await service.send_message(current_user, data, uploaded)
    return success_response(message, "Mensaje enviado")


@router.get("/conversations", response_model=ApiResponse[ConversationListResponse])
async def list_conversations(
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[ConversationListResponse]:
    service = ConversationService(db)
    return success_response(service.list_conversations(current_user.id, page, page_size))


@router.get(
    "/conversation/{conversation_id}/messages",
    response_model=ApiResponse[ConversationMessagesResponse],
)
async def get_conversation_messages(
    conversation_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(CONVERSATION_MESSAGES_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    include_deleted: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[ConversationMessagesResponse]:
    service = MessageService(db, gateway)
    return success_response(
        service.get_conversation_messages(
            current_user.id, conversation_id, page, page_size, include_deleted=include_deleted
        )
    )


@router.post(
    "/conversation/start",
    response_model=ApiResponse[ConversationResponse],
    status_code=status.HTTP_201_CREATED,
)
async def start_conversation(
    data: StartConversationRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[ConversationResponse]:
    service = MessageService(db, gateway)
    conversation = await service.start_conversation(current_user, data)
    return success_response(conversation, "Conversación iniciada")


@router.put("/conversation/{conversation_id}/read", response_model=ApiResponse[int])
async def mark_conversation_read(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[int]:
    service = MessageService(db, gateway)
    count = await service.mark_as_read(current_user.id, conversation_id)
    return success_response(count, "Mensajes marcados como leídos")


@router.put("/conversation/{conversation_id}/archive", response_model=ApiResponse[None])
async def archive_conversation(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[None]:
    ConversationService(db).archive(current_user.id, conversation_id)
    return success_response(None, "Conversación archivada")


@router.get("/stats", response_model=ApiResponse[ConversationStats])
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[ConversationStats]:
    return success_response(ConversationService(db).get_stats(current_user.id))


@router.get("/unread-count", response_model=ApiResponse[UnreadCountResponse])
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[UnreadCountResponse]:
    count = await ConversationService(db).get_unread_count_cached(current_user.id)
    return success_response(UnreadCountResponse(count=count))


@router.post("/typing", response_model=ApiResponse[None])
async def send_typing(
    data: TypingRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[None]:
    service = MessageService(db, gateway)
    await service.notify_typing(
        current_user.id, data.recipient_id, data.conversation_id, data.is_typing
    )
    return success_response(None)


@router.put("/{message_id}", response_model=ApiResponse[MessageResponse])
async def edit_message(
    message_id: int,
    data: EditMessageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[MessageResponse]:
    service = MessageService(db, gateway)
    message = await service.edit_message(message_id, current_user.id, data.content)
    return success_response(message, "Mensaje editado")


@router.delete("/{message_id}", response_model=ApiResponse[None])
async def delete_message(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PushGateway = Depends(get_gateway),
) -> ApiResponse[None]:
    service = MessageService(db, gateway)
    await service.delete_message(message_id, current_user.id)
    return success_response(None, "Mensaje eliminado")
