from datetime import UTC, datetime, timedelta

from jose import jwt

from conectado.core.config import settings
from conectado.core.security import (
    create_access_token,
    get_password_hash,
    user_id_from_token,
    verify_password,
)


class TestPasswords:
    def test_should_verify_hashed_password(self):
        hashed = get_password_hash("secreto123")

        assert hashed != "secreto123"
        assert verify_password("secreto123", hashed) is True
        assert verify_password("otra", hashed) is False


class TestAccessTokens:
    def test_should_round_trip_user_id(self):
        token = create_access_token({"sub": "42"})

        assert user_id_from_token(token) == 42

    def test_should_reject_garbage(self):
        assert user_id_from_token("not-a-jwt") is None

    def test_should_reject_expired_token(self):
        token = jwt.encode(
            {"sub": "42", "type": "access", "exp": datetime.now(UTC) - timedelta(minutes=1)},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )

        assert user_id_from_token(token) is None

    def test_should_reject_non_access_token(self):
        token = jwt.encode(
            {"sub": "42", "type": "refresh"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM
        )

        assert user_id_from_token(token) is None

    def test_should_reject_non_numeric_subject(self):
        assert user_id_from_token(create_access_token({"sub": "ana"})) is None
