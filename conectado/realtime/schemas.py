"""Frames a client may send over the notifications socket.

Every frame is a JSON object tagged by ``action``. Anything that does not
validate against one of these models is answered with an ``Error`` event.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter


class JoinGroupFrame(BaseModel):
    action: Literal["join_group"]
    group: str = Field(..., min_length=1, max_length=100)


class LeaveGroupFrame(BaseModel):
    action: Literal["leave_group"]
    group: str = Field(..., min_length=1, max_length=100)


class JoinConversationFrame(BaseModel):
    action: Literal["join_conversation"]
    conversation_id: str


class LeaveConversationFrame(BaseModel):
    action: Literal["leave_conversation"]
    conversation_id: str


class MarkNotificationReadFrame(BaseModel):
    action: Literal["mark_notification_read"]
    notification_id: int


class MarkAllNotificationsReadFrame(BaseModel):
    action: Literal["mark_all_notifications_read"]


class GetNotificationsFrame(BaseModel):
    action: Literal["get_notifications"]
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)


class StartTypingFrame(BaseModel):
    action: Literal["start_typing"]
    conversation_id: str
    recipient_id: int


class StopTypingFrame(BaseModel):
    action: Literal["stop_typing"]
    conversation_id: str
    recipient_id: int


ClientFrame = Annotated[
    JoinGroupFrame
    | LeaveGroupFrame
    | JoinConversationFrame
    | LeaveConversationFrame
    | MarkNotificationReadFrame
    | MarkAllNotificationsReadFrame
    | GetNotificationsFrame
    | StartTypingFrame
    | StopTypingFrame,
    Field(discriminator="action"),
]

client_frame_adapter: TypeAdapter[ClientFrame] = TypeAdapter(ClientFrame)


def parse_client_frame(raw: str | bytes) -> ClientFrame:
    """Raises ``pydantic.ValidationError`` on malformed JSON or unknown actions."""
    return client_frame_adapter.validate_json(raw)
