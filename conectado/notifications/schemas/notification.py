from typing import Any

from pydantic import BaseModel, Field

from conectado.auth.schemas.user import UserBasic
from conectado.core.datetime_utils import UTCDatetime
from conectado.core.schemas import PagedResult
from conectado.notifications.models.notification import NotificationPriority


class CreateNotificationRequest(BaseModel):
    recipient_id: int = Field(..., gt=0)
    sender_id: int | None = None
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    type: str = Field(..., min_length=1, max_length=50)
    action_url: str | None = Field(default=None, max_length=500)
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] | None = None


class BulkNotificationRequest(BaseModel):
    recipient_ids: list[int] = Field(..., min_length=1)
    sender_id: int | None = None
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    type: str = Field(..., min_length=1, max_length=50)
    action_url: str | None = Field(default=None, max_length=500)
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] | None = None


class NotificationResponse(BaseModel):
    id: int
    recipient_id: int
    sender_id: int | None = None
    sender: UserBasic | None = None
    title: str
    message: str
    type: str
    action_url: str | None = None
    priority: NotificationPriority
    data: dict[str, Any] | None = None
    is_read: bool
    created_at: UTCDatetime
    read_at: UTCDatetime | None = None
    time_ago: str
    icon: str
    color: str


class NotificationListResponse(PagedResult):
    notifications: list[NotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    count: int


class OnlineStatusResponse(BaseModel):
    user_id: int
    is_online: bool
    last_seen: UTCDatetime | None = None
    last_seen_text: str
