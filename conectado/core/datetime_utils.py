from datetime import UTC, datetime
from typing import Annotated

from pydantic.functional_serializers import PlainSerializer


def _serialize_utc_datetime(v: datetime | None) -> str | None:
    if v is None:
        return None
    if v.tzinfo is None:
        v = v.replace(tzinfo=UTC)
    return v.isoformat()


UTCDatetime = Annotated[datetime, PlainSerializer(_serialize_utc_datetime)]


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(v: datetime) -> datetime:
    """Attach UTC to naive values read back from the database."""
    if v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v.astimezone(UTC)


def time_ago(v: datetime, *, now: datetime | None = None, just_now: str = "ahora") -> str:
    """Spanish relative time: "hace N días/horas/minutos" or ``just_now``.

    Only the largest whole unit is reported, so 1 day 5 hours is "hace 1 día".
    """
    delta = (now or utcnow()) - as_utc(v)
    seconds = int(delta.total_seconds())

    days, remainder = divmod(seconds, 86400)
    if days > 0:
        return f"hace {days} día{'s' if days > 1 else ''}"
    hours, remainder = divmod(remainder, 3600)
    if hours > 0:
        return f"hace {hours} hora{'s' if hours > 1 else ''}"
    minutes = remainder // 60
    if minutes > 0:
        return f"hace {minutes} minuto{'s' if minutes > 1 else ''}"
    return just_now
