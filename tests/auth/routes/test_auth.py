from conectado.auth.models.user import User
from conectado.notifications.models.notification import Notification, NotificationType
from tests.utils.factories import create_user_factory
from tests.utils.helpers import assert_envelope, auth_headers


class TestRegisterEndpoint:
    async def test_should_create_volunteer_and_send_welcome(
        self, test_client, db_session, gateway
    ):
        payload = {
            "email": "maria@example.com",
            "password": "segura1234",
            "first_name": "María",
            "last_name": "Santos",
        }

        response = await test_client.post("/api/auth/register", json=payload)

        assert response.status_code == 201
        body = response.json()
        assert_envelope(body)
        assert body["data"]["token_type"] == "bearer"
        assert body["data"]["user"]["role"] == "volunteer"
        assert body["data"]["user"]["full_name"] == "María Santos"

        user = db_session.query(User).filter(User.email == "maria@example.com").one()
        welcome = db_session.query(Notification).filter(Notification.recipient_id == user.id).one()
        assert welcome.type == NotificationType.WELCOME
        assert gateway.events_for(user.id, "ReceiveNotification")

    async def test_should_allow_organization_sign_up(self, test_client):
        payload = {
            "email": "fundacion@example.com",
            "password": "segura1234",
            "first_name": "Fundación Esperanza",
            "role": "organization",
        }

        response = await test_client.post("/api/auth/register", json=payload)

        assert response.status_code == 201
        assert response.json()["data"]["user"]["role"] == "organization"

    async def test_should_reject_admin_sign_up(self, test_client):
        payload = {
            "email": "root@example.com",
            "password": "segura1234",
            "first_name": "Root",
            "role": "admin",
        }

        response = await test_client.post("/api/auth/register", json=payload)

        assert response.status_code == 400

    async def test_should_return_409_for_taken_email(self, test_client, test_user):
        payload = {"email": test_user.email, "password": "segura1234", "first_name": "Otra"}

        response = await test_client.post("/api/auth/register", json=payload)

        assert response.status_code == 409
        assert_envelope(response.json(), success=False)


class TestLoginEndpoint:
    async def test_should_return_token_when_valid_credentials(self, test_client, test_user):
        payload = {"email": test_user.email, "password": "testpass123"}

        response = await test_client.post("/api/auth/login", json=payload)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["access_token"]
        assert data["user"]["id"] == test_user.id

        me = await test_client.get("/api/auth/me", headers=auth_headers(data["access_token"]))
        assert me.json()["data"]["email"] == test_user.email

    async def test_should_return_401_when_password_wrong(self, test_client, test_user):
        payload = {"email": test_user.email, "password": "incorrecta"}

        response = await test_client.post("/api/auth/login", json=payload)

        assert response.status_code == 401
        assert response.json()["message"] == "Email o contraseña incorrectos"

    async def test_should_return_401_when_email_not_found(self, test_client):
        payload = {"email": "nadie@example.com", "password": "testpass123"}

        response = await test_client.post("/api/auth/login", json=payload)

        assert response.status_code == 401

    async def test_should_return_403_when_account_inactive(self, test_client, db_session):
        inactive = create_user_factory(db_session, email="baja@example.com", is_active=False)

        response = await test_client.post(
            "/api/auth/login", json={"email": inactive.email, "password": "testpass123"}
        )

        assert response.status_code == 403


class TestMeEndpoint:
    async def test_should_return_current_user(self, test_client, test_user, test_user_token):
        response = await test_client.get("/api/auth/me", headers=auth_headers(test_user_token))

        assert response.status_code == 200
        assert response.json()["data"]["full_name"] == "Ana Pérez"

    async def test_should_return_401_for_invalid_token(self, test_client):
        response = await test_client.get("/api/auth/me", headers=auth_headers("invalid"))

        assert response.status_code == 401

    async def test_should_return_403_for_deactivated_user(
        self, test_client, test_user, test_user_token, db_session
    ):
        test_user.is_active = False
        db_session.flush()

        response = await test_client.get("/api/auth/me", headers=auth_headers(test_user_token))

        assert response.status_code == 403
