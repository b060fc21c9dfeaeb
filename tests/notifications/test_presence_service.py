from datetime import timedelta

from conectado.core.datetime_utils import utcnow
from conectado.notifications.models.online_status import UserOnlineStatus
from conectado.notifications.services.presence_service import PresenceService


class TestPresence:
    def test_should_report_never_connected(self, db_session, test_user):
        status = PresenceService(db_session).get_status(test_user.id)

        assert status.is_online is False
        assert status.last_seen is None
        assert status.last_seen_text == "Nunca conectado"

    def test_should_upsert_single_row(self, db_session, test_user):
        service = PresenceService(db_session)

        service.set_online(test_user.id, True, connection_id="abc")
        service.set_online(test_user.id, False)

        rows = db_session.query(UserOnlineStatus).filter_by(user_id=test_user.id).all()
        assert len(rows) == 1
        assert rows[0].is_online is False
        assert rows[0].connection_id is None
        assert service.is_online(test_user.id) is False

    def test_should_move_last_seen_on_every_change(self, db_session, test_user):
        service = PresenceService(db_session)
        row = service.set_online(test_user.id, True)
        row.last_seen = utcnow() - timedelta(hours=3)
        db_session.flush()

        assert service.get_status(test_user.id).last_seen_text == "hace 3 horas"

        service.set_online(test_user.id, False)

        status = service.get_status(test_user.id)
        assert status.is_online is False
        assert status.last_seen_text == "ahora"

    def test_should_list_only_online_users(self, db_session, test_user, other_user):
        service = PresenceService(db_session)
        service.set_online(test_user.id, True)
        service.set_online(other_user.id, False)

        online = service.list_online_users()

        assert [s.user_id for s in online] == [test_user.id]
        assert online[0].last_seen_text == "En línea"
