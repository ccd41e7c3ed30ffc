"""
tests/test_auth_routes.py -- Integration tests for /api/auth/*.

These tests exercise the full stack: FastAPI routing -> accounts -> UserStore
-> TokenIssuer -> cookie handling in the TestClient jar.

Coverage:
  - register: first call 201 with admin profile and cookie; any later call 400
    "Admin already exists", even with an empty or invalid body
  - register: missing fields 400 before the first admin exists
  - login: invalid email / invalid password are both 401 with distinct messages;
    success sets the cookie and never returns the password hash
  - logout: idempotent, works without a session, and ends the session
  - me: profile for the session owner, 401 without a cookie
  - register/login rate limit returns 429 with Retry-After
"""

from __future__ import annotations

import pytest
from conftest import ADMIN
from fastapi.testclient import TestClient

from api.limiter import limiter
from auth.tokens import COOKIE_NAME


class TestRegister:
    def test_first_registration_creates_admin(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json=ADMIN)
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "success"
        assert body["data"]["isAdmin"] is True
        assert body["data"]["email"] == "a@x.com"
        assert "password" not in body["data"]
        assert "hashed_password" not in body["data"]
        assert COOKIE_NAME in resp.cookies
        assert resp.headers["cache-control"] == "no-store"

    def test_email_is_normalized(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={**ADMIN, "email": "  A@X.com "})
        assert resp.status_code == 201
        assert resp.json()["data"]["email"] == "a@x.com"

    def test_second_registration_conflicts(self, admin_client: TestClient) -> None:
        resp = admin_client.post(
            "/api/auth/register",
            json={"name": "B", "email": "b@x.com", "phone": "2", "password": "q"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Admin already exists"
        assert resp.json()["code"] == "conflict"

    @pytest.mark.parametrize("body", [{}, {"name": "only"}, ADMIN])
    def test_conflict_regardless_of_body(self, admin_client: TestClient, body: dict) -> None:
        resp = admin_client.post("/api/auth/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Admin already exists"

    def test_conflict_without_body(self, admin_client: TestClient) -> None:
        resp = admin_client.post("/api/auth/register")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Admin already exists"

    @pytest.mark.parametrize(
        "body",
        [{"password": "x" * 100}, {"name": 5}, {"email": ["a@x.com"]}, ["not", "an", "object"], "text"],
    )
    def test_conflict_for_any_json_shape(self, admin_client: TestClient, body) -> None:
        resp = admin_client.post("/api/auth/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Admin already exists"

    def test_conflict_for_malformed_json(self, admin_client: TestClient) -> None:
        resp = admin_client.post(
            "/api/auth/register",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Admin already exists"

    def test_non_string_field_rejected(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={**ADMIN, "phone": 12345})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Please provide all required fields"
        assert not client.app.state.user_store.has_users()

    def test_multibyte_password_over_72_bytes_rejected(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={**ADMIN, "password": "é" * 40})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"
        assert not client.app.state.user_store.has_users()

    def test_password_kept_as_typed(self, client: TestClient) -> None:
        assert client.post("/api/auth/register", json={**ADMIN, "password": "  secret  "}).status_code == 201
        client.cookies.clear()
        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid password"
        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "  secret  "})
        assert resp.status_code == 200

    @pytest.mark.parametrize("missing", ["name", "email", "phone", "password"])
    def test_missing_field_rejected(self, client: TestClient, missing: str) -> None:
        body = {k: v for k, v in ADMIN.items() if k != missing}
        resp = client.post("/api/auth/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Please provide all required fields"
        assert not client.app.state.user_store.has_users()

    def test_blank_field_rejected(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={**ADMIN, "name": "   "})
        assert resp.status_code == 400

    def test_password_is_hashed_at_rest(self, admin_client: TestClient) -> None:
        stored = admin_client.app.state.user_store.get_by_email("a@x.com")
        assert stored.hashed_password != ADMIN["password"]
        assert stored.hashed_password.startswith("$2")


class TestLogin:
    def test_wrong_email(self, admin_client: TestClient) -> None:
        admin_client.cookies.clear()
        resp = admin_client.post("/api/auth/login", json={"email": "nobody@x.com", "password": "p"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email"
        assert resp.json()["code"] == "invalid_email"
        assert COOKIE_NAME not in resp.cookies

    def test_wrong_password(self, admin_client: TestClient) -> None:
        admin_client.cookies.clear()
        resp = admin_client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid password"
        assert resp.json()["code"] == "invalid_password"

    def test_success_sets_cookie(self, admin_client: TestClient) -> None:
        admin_client.cookies.clear()
        resp = admin_client.post("/api/auth/login", json={"email": "A@x.com", "password": "p"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "success"
        assert body["data"]["email"] == "a@x.com"
        assert "password" not in body["data"]
        assert "hashed_password" not in body["data"]
        assert COOKIE_NAME in resp.cookies

    @pytest.mark.parametrize("body", [{}, {"email": "a@x.com"}, {"password": "p"}, {"email": "", "password": ""}])
    def test_missing_credentials(self, admin_client: TestClient, body: dict) -> None:
        resp = admin_client.post("/api/auth/login", json=body)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Both email and password are required"


class TestLogoutAndMe:
    def test_me_returns_session_owner(self, admin_client: TestClient) -> None:
        resp = admin_client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "a@x.com"
        assert resp.json()["data"]["isAdmin"] is True

    def test_me_without_cookie(self, client: TestClient) -> None:
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, no token"

    def test_logout_twice_is_idempotent(self, admin_client: TestClient) -> None:
        first = admin_client.get("/api/auth/logout")
        second = admin_client.post("/api/auth/logout")
        for resp in (first, second):
            assert resp.status_code == 200
            assert resp.json() == {"status": "success", "message": "Logged out successfully"}
        assert admin_client.get("/api/auth/me").status_code == 401

    def test_logout_expires_cookie(self, admin_client: TestClient) -> None:
        resp = admin_client.get("/api/auth/logout")
        cookie = resp.headers["set-cookie"]
        assert cookie.startswith(f'{COOKIE_NAME}=""') or cookie.startswith(f"{COOKIE_NAME}=;")
        assert "Max-Age=0" in cookie
        assert "HttpOnly" in cookie

    def test_logout_without_session(self, client: TestClient) -> None:
        assert client.get("/api/auth/logout").status_code == 200


class TestEndToEnd:
    def test_bootstrap_flow(self, client: TestClient) -> None:
        resp = client.post(
            "/api/auth/register",
            json={"name": "A", "email": "a@x.com", "phone": "1", "password": "p"},
        )
        assert resp.status_code == 201
        assert COOKIE_NAME in resp.cookies
        assert resp.json()["data"]["isAdmin"] is True

        resp = client.post("/api/auth/register", json={"anything": True})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Admin already exists"

        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid password"

        client.cookies.clear()
        resp = client.delete("/api/product/1")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, no token"


class TestRateLimit:
    def test_login_rate_limited(self, admin_client: TestClient) -> None:
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [
                admin_client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"}).status_code
                for _ in range(11)
            ]
            assert statuses[:10] == [401] * 10
            assert statuses[10] == 429
            resp = admin_client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
            assert resp.json()["code"] == "rate_limited"
            assert "retry-after" in resp.headers
        finally:
            limiter.enabled = False
            limiter.reset()

    def test_register_rate_limited(self, client: TestClient) -> None:
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [client.post("/api/auth/register", json=ADMIN).status_code for _ in range(11)]
            assert statuses[0] == 201
            assert statuses[1:10] == [400] * 9
            assert statuses[10] == 429
        finally:
            limiter.enabled = False
            limiter.reset()
