from tests.utils.helpers import assert_envelope, auth_headers


class TestErrorEnvelope:
    async def test_should_wrap_unknown_route(self, test_client):
        response = await test_client.get("/api/nothing-here")

        assert response.status_code == 404
        assert_envelope(response.json(), success=False)

    async def test_should_wrap_missing_credentials(self, test_client):
        response = await test_client.get("/api/notification")

        assert response.status_code == 401
        body = response.json()
        assert_envelope(body, success=False)
        assert body["message"] == "Autenticación requerida"

    async def test_should_report_validation_errors_as_400(self, test_client, test_user_token):
        response = await test_client.post(
            "/api/message/conversation/start",
            json={"recipient_id": "abc"},
            headers=auth_headers(test_user_token),
        )

        assert response.status_code == 400
        body = response.json()
        assert_envelope(body, success=False)
        assert all(error["code"] == "VALIDATION_ERROR" for error in body["errors"])


class TestServiceEndpoints:
    async def test_root(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    async def test_health_reports_redis_unknown_without_client(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["redis"] == "unknown"
        assert response.json()["status"] == "degraded"


class TestRequestId:
    async def test_should_echo_incoming_request_id(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"

    async def test_should_generate_request_id_when_missing(self, test_client):
        response = await test_client.get("/")

        assert len(response.headers["X-Request-ID"]) == 32
