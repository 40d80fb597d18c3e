"""Integration tests for the rate limited login/signup endpoints."""

from __future__ import annotations

from unittest.mock import patch

from fastapi.testclient import TestClient

from app.core.rate_limit import LOGIN_LIMITER

LOGIN = "/api/user-auth/login"
SIGNUP = "/api/user-auth/signup"

ALICE = {"x-forwarded-for": "203.0.113.7"}
BOB = {"x-forwarded-for": "198.51.100.2"}


def _signup(client: TestClient, mobile: str = "9876543210", headers: dict | None = None):
    return client.post(
        SIGNUP,
        json={"fullName": "Asha Rao", "mobileNumber": mobile},
        headers=headers or ALICE,
    )


class TestSignup:
    def test_signup_creates_user(self, client: TestClient) -> None:
        response = _signup(client)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Signup successful!"
        assert body["userId"]

    def test_duplicate_mobile_number_returns_409(self, client: TestClient) -> None:
        _signup(client)
        response = _signup(client)

        assert response.status_code == 409
        assert response.json()["error"]["message"] == (
            "Account with this mobile number already exists."
        )

    def test_invalid_fields_return_400_with_field_errors(self, client: TestClient) -> None:
        response = client.post(
            SIGNUP,
            json={"fullName": "A", "mobileNumber": "12345"},
            headers=ALICE,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_input"
        assert error["message"] == "Invalid input."
        assert error["details"]["fields"]["mobileNumber"] == [
            "Mobile number must be a 10-digit number."
        ]
        assert error["details"]["fields"]["fullName"] == [
            "Full name must be at least 2 characters long."
        ]

    def test_invalid_json_returns_400(self, client: TestClient) -> None:
        response = client.post(
            SIGNUP,
            content=b"{not json",
            headers={**ALICE, "content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid JSON in request body."

    def test_fourth_signup_in_window_is_throttled(self, client: TestClient, clock) -> None:
        for i in range(3):
            assert _signup(client, mobile=f"900000000{i}").status_code == 200

        clock.advance(1_000)
        response = _signup(client, mobile="9000000009")

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "rate_limited"
        assert error["message"] == "Too many requests. Please try again later."
        assert error["retryAfter"] == 10 * 60 * 1000 - 1_000
        assert response.headers["Retry-After"] == str(10 * 60 - 1)
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert "X-RateLimit-Reset" in response.headers

    def test_signup_window_rolls_over(self, client: TestClient, clock) -> None:
        for i in range(4):
            _signup(client, mobile=f"900000000{i}")

        clock.advance(10 * 60 * 1000)

        assert _signup(client, mobile="9000000009").status_code == 200


class TestLogin:
    def test_login_returns_user(self, client: TestClient) -> None:
        user_id = _signup(client).json()["userId"]

        response = client.post(LOGIN, json={"mobileNumber": "9876543210"}, headers=ALICE)

        assert response.status_code == 200
        assert response.json() == {
            "message": "Login successful!",
            "userId": user_id,
            "fullName": "Asha Rao",
            "mobileNumber": "9876543210",
        }

    def test_unknown_user_returns_404(self, client: TestClient) -> None:
        response = client.post(LOGIN, json={"mobileNumber": "1111111111"}, headers=ALICE)

        assert response.status_code == 404
        assert response.json()["error"]["message"] == (
            "No account found with this mobile number. Please sign up."
        )

    def test_missing_field_returns_400(self, client: TestClient) -> None:
        response = client.post(LOGIN, json={}, headers=ALICE)

        assert response.status_code == 400
        assert response.json()["error"]["details"]["fields"]["mobileNumber"] == ["Required"]

    def test_failed_attempts_count_towards_limit(self, client: TestClient) -> None:
        for _ in range(5):
            response = client.post(LOGIN, json={"mobileNumber": "1111111111"}, headers=ALICE)
            assert response.status_code == 404

        response = client.post(LOGIN, json={"mobileNumber": "1111111111"}, headers=ALICE)
        assert response.status_code == 429

    def test_rate_limit_runs_before_body_parsing(self, client: TestClient) -> None:
        for _ in range(5):
            client.post(LOGIN, content=b"garbage", headers=ALICE)

        response = client.post(LOGIN, content=b"garbage", headers=ALICE)
        assert response.status_code == 429

    def test_clients_are_limited_independently(self, client: TestClient) -> None:
        for _ in range(6):
            client.post(LOGIN, json={"mobileNumber": "1111111111"}, headers=ALICE)

        response = client.post(LOGIN, json={"mobileNumber": "1111111111"}, headers=BOB)
        assert response.status_code == 404

    def test_login_and_signup_quotas_are_independent(self, client: TestClient) -> None:
        for i in range(3):
            _signup(client, mobile=f"900000000{i}")
        assert _signup(client, mobile="9000000008").status_code == 429

        response = client.post(LOGIN, json={"mobileNumber": "9000000000"}, headers=ALICE)
        assert response.status_code == 200

    def test_requests_without_address_headers_share_one_bucket(
        self, client: TestClient, limiters: dict
    ) -> None:
        for _ in range(5):
            client.post(LOGIN, json={"mobileNumber": "1111111111"})

        assert client.post(LOGIN, json={"mobileNumber": "1111111111"}).status_code == 429
        assert limiters[LOGIN_LIMITER].peek("127.0.0.1").count == 6

    def test_disabled_rate_limit_never_throttles(self, client: TestClient) -> None:
        with patch("app.core.rate_limit.settings") as mock_settings:
            mock_settings.app.rate_limit_enabled = False
            for _ in range(10):
                response = client.post(LOGIN, json={"mobileNumber": "1111111111"}, headers=ALICE)
                assert response.status_code == 404


def test_health_reports_limiters(client: TestClient) -> None:
    client.post(LOGIN, json={"mobileNumber": "1111111111"}, headers=ALICE)

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["rate_limiters"]["login"] == {
        "limit": 5,
        "window_ms": 5 * 60 * 1000,
        "tracked_clients": 1,
    }
    assert body["rate_limiters"]["signup"]["tracked_clients"] == 0


def test_openapi_documents_throttling(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    throttled = schema["paths"][LOGIN]["post"]["responses"]["429"]
    assert "Retry-After" in throttled["headers"]
    assert "RateLimitExceeded" in schema["components"]["schemas"]
    assert {t["name"] for t in schema["tags"]} >= {"Auth", "Health"}
