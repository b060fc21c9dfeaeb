from pydantic import BaseModel, Field

from conectado.auth.schemas.user import UserBasic
from conectado.badges.models.badge import BadgeRule
from conectado.core.datetime_utils import UTCDatetime

HEX_COLOR_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"


class BadgeCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    icon_url: str | None = Field(default=None, max_length=500)
    color: str = Field(..., pattern=HEX_COLOR_PATTERN)
    category: str = Field(..., max_length=50)
    rule_code: BadgeRule | None = None
    threshold: int = Field(default=0, ge=0)


class BadgeUpdate(BadgeCreate):
    is_active: bool = True


class BadgeResponse(BaseModel):
    id: int
    name: str
    description: str
    icon_url: str | None = None
    color: str | None = None
    category: str | None = None
    rule_code: BadgeRule | None = None
    threshold: int
    is_automatic: bool
    is_active: bool
    created_at: UTCDatetime
    total_awarded: int = 0
    earned_at: UTCDatetime | None = None
    reason: str | None = None


class AwardBadgeRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    badge_id: int = Field(..., gt=0)
    reason: str | None = Field(default=None, max_length=200)


class BadgeHolder(BaseModel):
    user_id: int
    badge_id: int
    user: UserBasic
    badge: BadgeResponse
    earned_at: UTCDatetime
    reason: str | None = None


class BadgeCategoryStats(BaseModel):
    category: str | None
    total_badges: int
    total_awarded: int


class BadgePopularity(BaseModel):
    badge_id: int
    name: str
    icon_url: str | None = None
    times_awarded: int


class BadgeStats(BaseModel):
    total_badges: int
    total_awarded: int
    unique_holders: int
    category_stats: list[BadgeCategoryStats]
    top_badges: list[BadgePopularity]
