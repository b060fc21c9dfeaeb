from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env.test"
load_dotenv(env_file)

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from conectado.core import redis as redis_module  # noqa: E402
from conectado.core.rate_limit import limiter  # noqa: E402
from conectado.core.security import create_access_token  # noqa: E402
from conectado.core.storage import LocalStorage  # noqa: E402
from conectado.db.base import Base  # noqa: E402
from conectado.db.session import get_db  # noqa: E402
from conectado.main import app  # noqa: E402
from conectado.notifications.services.notification_service import (  # noqa: E402
    NotificationService,
)
from conectado.realtime.gateway import get_gateway  # noqa: E402
from tests.utils.factories import create_user_factory  # noqa: E402
from tests.utils.helpers import RecordingGateway  # noqa: E402


@pytest.fixture(scope="session")
def test_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="session")
def test_session_local(test_engine):
    return sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(test_session_local):
    session = test_session_local()

    session.commit = session.flush

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path))


@pytest.fixture
def notification_service(db_session, gateway):
    return NotificationService(db_session, gateway)


@pytest.fixture
async def test_app(db_session, gateway):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway

    redis_module.redis_client = None
    limiter.enabled = False

    yield app

    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
async def test_client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


@pytest.fixture
def test_user(db_session):
    return create_user_factory(
        db_session, email="ana@example.com", first_name="Ana", last_name="Pérez"
    )


@pytest.fixture
def other_user(db_session):
    return create_user_factory(
        db_session, email="luis@example.com", first_name="Luis", last_name="Gómez"
    )


@pytest.fixture
def test_organization(db_session):
    return create_user_factory(
        db_session, email="org@example.com", first_name="Cruz Roja", role="organization"
    )


@pytest.fixture
def test_admin(db_session):
    return create_user_factory(
        db_session, email="admin@example.com", password="adminpass123", role="admin"
    )


def _token_for(user) -> str:
    return create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})


@pytest.fixture
def test_user_token(test_user):
    return _token_for(test_user)


@pytest.fixture
def other_user_token(other_user):
    return _token_for(other_user)


@pytest.fixture
def test_admin_token(test_admin):
    return _token_for(test_admin)


@pytest.fixture
def test_organization_token(test_organization):
    return _token_for(test_organization)
