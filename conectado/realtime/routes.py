"""Notifications WebSocket hub.

One socket per browser tab. On connect the socket joins ``User_{id}``, the
user is marked online and receives its unread notification count. On
disconnect the user is marked offline after a short grace period, unless
another socket of theirs is still connected.
"""

import asyncio
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from conectado.auth.models.user import User
from conectado.core import security
from conectado.core.config import settings
from conectado.core.exceptions import AppError
from conectado.db.session import SessionFactory, get_session_factory
from conectado.messaging.services.conversation_service import parse_conversation_key
from conectado.notifications.services.notification_service import NotificationService
from conectado.notifications.services.presence_service import PresenceService
from conectado.realtime.gateway import (
    PushEvent,
    PushGateway,
    conversation_group,
    get_gateway,
    user_group,
)
from conectado.realtime.schemas import (
    ClientFrame,
    GetNotificationsFrame,
    JoinConversationFrame,
    JoinGroupFrame,
    LeaveConversationFrame,
    LeaveGroupFrame,
    MarkAllNotificationsReadFrame,
    MarkNotificationReadFrame,
    StartTypingFrame,
    StopTypingFrame,
    parse_client_frame,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RESERVED_GROUP_PREFIXES = ("User_", "Conversation_")


async def _send(websocket: WebSocket, event: str, payload: object) -> None:
    await websocket.send_json({"event": event, "data": jsonable_encoder(payload)})


async def _send_error(websocket: WebSocket, message: str) -> None:
    await _send(websocket, PushEvent.ERROR, {"message": message})


class NotificationHub:
    """Handles the frames of a single authenticated connection.

    The connection can stay open for hours, so no database session is held
    across frames. Every frame, and the connect and disconnect bookkeeping,
    runs in its own short session from ``session_factory``.
    """

    def __init__(
        self,
        websocket: WebSocket,
        user: User,
        session_factory: SessionFactory,
        gateway: PushGateway,
    ):
        self.websocket = websocket
        self.user_id = user.id
        self.user_name = user.full_name
        self.session_factory = session_factory
        self.gateway = gateway

    @contextmanager
    def _unit_of_work(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def on_connect(self) -> None:
        await self.gateway.add_to_group(self.websocket, user_group(self.user_id))
        with self._unit_of_work() as db:
            PresenceService(db).set_online(self.user_id, True, connection_id=uuid.uuid4().hex)
            await NotificationService(db, self.gateway).push_unread_count(self.user_id)
        logger.info("User %s connected to notifications hub", self.user_id)

    async def on_disconnect(self) -> None:
        await self.gateway.discard_connection(self.websocket)
        await asyncio.sleep(settings.PRESENCE_OFFLINE_GRACE_SECONDS)
        if self.gateway.is_connected(self.user_id):
            return
        try:
            with self._unit_of_work() as db:
                PresenceService(db).set_online(self.user_id, False)
        except Exception:
            logger.exception("Could not mark user %s offline", self.user_id)
            return
        logger.info("User %s went offline", self.user_id)

    async def handle(self, frame: ClientFrame) -> None:
        match frame:
            case JoinGroupFrame(group=group):
                if group.startswith(RESERVED_GROUP_PREFIXES):
                    await _send_error(self.websocket, "Grupo no permitido")
                    return
                await self.gateway.add_to_group(self.websocket, group)
            case LeaveGroupFrame(group=group):
                await self.gateway.remove_from_group(self.websocket, group)
            case JoinConversationFrame(conversation_id=conversation_id):
                if self._participates(conversation_id):
                    await self.gateway.add_to_group(
                        self.websocket, conversation_group(conversation_id)
                    )
                else:
                    await _send_error(self.websocket, "No tienes acceso a esta conversación")
            case LeaveConversationFrame(conversation_id=conversation_id):
                await self.gateway.remove_from_group(
                    self.websocket, conversation_group(conversation_id)
                )
            case MarkNotificationReadFrame(notification_id=notification_id):
                with self._unit_of_work() as db:
                    await NotificationService(db, self.gateway).mark_read(
                        notification_id, self.user_id
                    )
            case MarkAllNotificationsReadFrame():
                with self._unit_of_work() as db:
                    await NotificationService(db, self.gateway).mark_all_read(self.user_id)
            case GetNotificationsFrame(page=page, page_size=page_size):
                with self._unit_of_work() as db:
                    result = NotificationService(db, self.gateway).list_for_user(
                        self.user_id, page, page_size
                    )
                await _send(self.websocket, PushEvent.NOTIFICATIONS_LIST, result)
            case StartTypingFrame() | StopTypingFrame():
                await self._typing(frame)

    async def _typing(self, frame: StartTypingFrame | StopTypingFrame) -> None:
        if not self._participates(frame.conversation_id, frame.recipient_id):
            await _send_error(self.websocket, "No tienes acceso a esta conversación")
            return
        await self.gateway.send_to_user(
            frame.recipient_id,
            PushEvent.USER_TYPING,
            {
                "user_id": self.user_id,
                "user_name": self.user_name,
                "conversation_id": frame.conversation_id,
                "is_typing": isinstance(frame, StartTypingFrame),
            },
        )

    def _participates(self, conversation_id: str, other_id: int | None = None) -> bool:
        try:
            participants = parse_conversation_key(conversation_id)
        except AppError:
            return False
        if self.user_id not in participants:
            return False
        return other_id is None or other_id in participants


def _authenticate(session_factory: SessionFactory, token: str | None) -> User | None:
    user_id = security.user_id_from_token(token) if token else None
    if user_id is None:
        return None
    db = session_factory()
    try:
        user = db.get(User, user_id)
    finally:
        db.close()
    if user is None or not user.is_active:
        return None
    return user


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    token: str | None = Query(None),
    session_factory: SessionFactory = Depends(get_session_factory),
    gateway: PushGateway = Depends(get_gateway),
) -> None:
    user = _authenticate(session_factory, token)
    if user is None:
        logger.info("Rejected notifications socket with invalid credentials")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    hub = NotificationHub(websocket, user, session_factory, gateway)

    try:
        await hub.on_connect()
        while True:
            raw = await websocket.receive_text()
            try:
                frame = parse_client_frame(raw)
            except PydanticValidationError:
                await _send_error(websocket, "Mensaje no reconocido")
                continue

            try:
                await hub.handle(frame)
            except AppError as exc:
                await _send_error(websocket, exc.message)
            except Exception:
                logger.exception("Frame %s from user %s failed", frame.action, hub.user_id)
                await _send_error(websocket, "No se pudo procesar la solicitud")
    except WebSocketDisconnect:
        logger.debug("User %s disconnected from notifications hub", hub.user_id)
    finally:
        await hub.on_disconnect()
