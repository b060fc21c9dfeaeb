import logging

from sqlalchemy.orm import Session

from conectado.core.constants import NEVER_CONNECTED_TEXT, ONLINE_TEXT
from conectado.core.datetime_utils import time_ago, utcnow
from conectado.notifications.models.online_status import UserOnlineStatus
from conectado.notifications.schemas.notification import OnlineStatusResponse

logger = logging.getLogger(__name__)


class PresenceService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def set_online(
        self, user_id: int, is_online: bool, connection_id: str | None = None
    ) -> UserOnlineStatus:
        """Upsert the user's presence row. ``last_seen`` moves on every call."""
        status = self.db.get(UserOnlineStatus, user_id)
        if status is None:
            status = UserOnlineStatus(user_id=user_id)
            self.db.add(status)

        status.is_online = is_online
        status.last_seen = utcnow()
        status.connection_id = connection_id if is_online else None
        self.db.commit()

        logger.debug("User %s is now %s", user_id, "online" if is_online else "offline")
        return status

    def is_online(self, user_id: int) -> bool:
        status = self.db.get(UserOnlineStatus, user_id)
        return bool(status and status.is_online)

    def get_status(self, user_id: int) -> OnlineStatusResponse:
        status = self.db.get(UserOnlineStatus, user_id)
        if status is None:
            return OnlineStatusResponse(
                user_id=user_id,
                is_online=False,
                last_seen=None,
                last_seen_text=NEVER_CONNECTED_TEXT,
            )
        return OnlineStatusResponse(
            user_id=user_id,
            is_online=status.is_online,
            last_seen=status.last_seen,
            last_seen_text=time_ago(status.last_seen),
        )

    def list_online_users(self) -> list[OnlineStatusResponse]:
        rows = (
            self.db.query(UserOnlineStatus)
            .filter(UserOnlineStatus.is_online == True)  # noqa: E712
            .order_by(UserOnlineStatus.last_seen.desc())
            .all()
        )
        return [
            OnlineStatusResponse(
                user_id=row.user_id,
                is_online=True,
                last_seen=row.last_seen,
                last_seen_text=ONLINE_TEXT,
            )
            for row in rows
        ]
