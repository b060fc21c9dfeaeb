from collections.abc import Callable
from typing import Any, cast

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from conectado.realtime.gateway import PushGateway


class RecordingGateway(PushGateway):
    """Push gateway that records every frame instead of writing to sockets."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[tuple[str, str, Any]] = []

    async def send_to_group(self, group: str, event: str, payload: Any) -> int:
        self.sent.append((group, event, jsonable_encoder(payload)))
        return 1

    def events_for(self, user_id: int, event: str | None = None) -> list[tuple[str, Any]]:
        group = f"User_{user_id}"
        return [
            (name, data)
            for target, name, data in self.sent
            if target == group and (event is None or name == event)
        ]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def assert_envelope(body: dict[str, Any], success: bool = True) -> None:
    assert set(body) == {"success", "message", "data", "errors"}
    assert body["success"] is success
    if success:
        assert body["errors"] is None
    else:
        assert body["data"] is None
        assert body["errors"]


class _BorrowedSession:
    """The test session, lent to code that closes its sessions when done.

    ``close`` and ``rollback`` are left to the ``db_session`` fixture, which
    owns the surrounding transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def __getattr__(self, name: str) -> Any:
        return getattr(self._session, name)

    def close(self) -> None:
        pass

    def rollback(self) -> None:
        pass


def shared_session_factory(session: Session) -> Callable[[], Session]:
    return lambda: cast(Session, _BorrowedSession(session))
