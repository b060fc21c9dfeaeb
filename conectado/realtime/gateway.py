"""In-process push gateway for WebSocket connections.

Connections join named groups (``User_{id}`` for every socket a user has
open, ``Conversation_{id}`` for ad-hoc rooms). Events are fanned out to every
socket of a group as ``{"event": name, "data": payload}`` JSON frames.

Delivery is best-effort: a failing socket is dropped from all of its groups
and the error is logged, never raised to the caller.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class PushEvent:
    RECEIVE_MESSAGE = "ReceiveMessage"
    MESSAGE_EDITED = "MessageEdited"
    MESSAGE_DELETED = "MessageDeleted"
    MESSAGE_READ = "MessageRead"
    TYPING_INDICATOR = "TypingIndicator"
    RECEIVE_NOTIFICATION = "ReceiveNotification"
    UNREAD_COUNT = "UnreadCount"
    NOTIFICATIONS_LIST = "NotificationsList"
    USER_TYPING = "UserTyping"
    ERROR = "Error"


def user_group(user_id: int) -> str:
    return f"User_{user_id}"


def conversation_group(conversation_id: str) -> str:
    return f"Conversation_{conversation_id}"


class PushGateway:
    def __init__(self) -> None:
        self._groups: dict[str, set[WebSocket]] = defaultdict(set)
        self._memberships: dict[WebSocket, set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def add_to_group(self, websocket: WebSocket, group: str) -> None:
        async with self._lock:
            self._groups[group].add(websocket)
            self._memberships[websocket].add(group)

    async def remove_from_group(self, websocket: WebSocket, group: str) -> None:
        async with self._lock:
            self._remove(websocket, group)

    async def discard_connection(self, websocket: WebSocket) -> set[str]:
        """Drop a socket from every group. Returns the groups it belonged to."""
        async with self._lock:
            groups = set(self._memberships.get(websocket, ()))
            for group in groups:
                self._remove(websocket, group)
            return groups

    def _remove(self, websocket: WebSocket, group: str) -> None:
        sockets = self._groups.get(group)
        if sockets is not None:
            sockets.discard(websocket)
            if not sockets:
                del self._groups[group]
        memberships = self._memberships.get(websocket)
        if memberships is not None:
            memberships.discard(group)
            if not memberships:
                del self._memberships[websocket]

    def group_size(self, group: str) -> int:
        return len(self._groups.get(group, ()))

    def is_connected(self, user_id: int) -> bool:
        return self.group_size(user_group(user_id)) > 0

    async def send_to_group(self, group: str, event: str, payload: Any) -> int:
        """Send one frame to every socket in ``group``. Returns how many got it."""
        async with self._lock:
            sockets = list(self._groups.get(group, ()))
        if not sockets:
            return 0

        try:
            frame = {"event": event, "data": jsonable_encoder(payload)}
        except Exception:
            logger.exception("Could not encode %s payload for %s", event, group)
            return 0

        delivered = 0
        dead: list[WebSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_json(frame)
                delivered += 1
            except Exception as exc:
                logger.warning("Push of %s to %s failed: %s", event, group, exc)
                dead.append(websocket)

        for websocket in dead:
            await self.discard_connection(websocket)
        return delivered

    async def send_to_user(self, user_id: int, event: str, payload: Any) -> int:
        return await self.send_to_group(user_group(user_id), event, payload)

    async def send_to_all(self, event: str, payload: Any) -> int:
        async with self._lock:
            groups = [g for g in self._groups if g.startswith("User_")]
        delivered = 0
        for group in groups:
            delivered += await self.send_to_group(group, event, payload)
        return delivered


gateway = PushGateway()


def get_gateway() -> PushGateway:
    return gateway
