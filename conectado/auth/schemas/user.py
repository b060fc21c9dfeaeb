from pydantic import BaseModel

from conectado.core.datetime_utils import UTCDatetime


class UserBasic(BaseModel):
    """Minimal public profile embedded in messages, conversations and notifications."""

    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    avatar_url: str | None = None
    role: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    is_active: bool
    avatar_url: str | None = None
    created_at: UTCDatetime | None = None

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    total: int
    users: list[UserResponse]
