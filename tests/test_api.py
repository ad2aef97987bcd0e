"""HTTP-level tests for the auth and user blueprints."""

import logging
from datetime import timedelta

import pytest

from api import create_app
from api.config import DEV_JWT_SECRET, DevelopmentConfig, ProductionConfig
from services.errors import NotFoundError, ValidationFailedError

ALICE = {"email": "alice@example.com", "password": "password123"}


def refresh_cookie(response):
    """Value of the refreshToken cookie set by a response, or None."""
    for header in response.headers.getlist("Set-Cookie"):
        name, _, rest = header.partition("=")
        if name == "refreshToken":
            return rest.split(";", 1)[0]
    return None


def cookie_header(token):
    return {"Cookie": f"refreshToken={token}"}


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def bare_client(app):
    """Client without a cookie jar, so every cookie is sent explicitly."""
    return app.test_client(use_cookies=False)


@pytest.fixture
def logged_in(bare_client):
    bare_client.post("/auth/register", json=ALICE)
    resp = bare_client.post("/auth/login", json=ALICE)
    assert resp.status_code == 200
    return resp.get_json()


class TestRegister:
    def test_created(self, client):
        resp = client.post("/auth/register", json=ALICE)

        assert resp.status_code == 201
        assert resp.get_json() == {"message": "User created"}

    def test_duplicate(self, client):
        client.post("/auth/register", json=ALICE)

        resp = client.post("/auth/register", json={**ALICE, "password": "different-pass"})

        assert resp.status_code == 409
        assert resp.get_json()["error"] == "User exists"
        assert resp.get_json()["code"] == "conflict"

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"email": "not-an-email", "password": "password123"},
            {"email": "alice@example.com", "password": "short"},
            {"email": "alice@example.com"},
        ],
    )
    def test_shape_validation(self, client, body):
        resp = client.post("/auth/register", json=body)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Validation failed"
        assert resp.get_json()["details"]

    def test_non_json_body(self, client):
        resp = client.post("/auth/register", data="email=alice", content_type="text/plain")

        assert resp.status_code == 400


class TestLogin:
    def test_returns_tokens_and_cookie(self, client):
        client.post("/auth/register", json=ALICE)

        resp = client.post("/auth/login", json=ALICE)

        body = resp.get_json()
        assert resp.status_code == 200
        assert body["accessToken"].count(".") == 2
        assert body["refreshToken"]
        assert refresh_cookie(resp) == body["refreshToken"]
        set_cookie = resp.headers["Set-Cookie"]
        assert "HttpOnly" in set_cookie
        assert "SameSite=Strict" in set_cookie
        assert "Max-Age=604800" in set_cookie
        assert "Secure" not in set_cookie

    @pytest.mark.parametrize(
        "body",
        [
            {"email": "alice@example.com", "password": "wrong-password"},
            {"email": "nobody@example.com", "password": "password123"},
        ],
    )
    def test_invalid_credentials(self, client, body):
        client.post("/auth/register", json=ALICE)

        resp = client.post("/auth/login", json=body)

        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"
        assert refresh_cookie(resp) is None


class TestProfile:
    def test_profile(self, bare_client, logged_in):
        resp = bare_client.get("/user/profile", headers=bearer(logged_in["accessToken"]))

        assert resp.status_code == 200
        assert resp.get_json() == {"email": "alice@example.com"}

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Basic abc"}, {"Authorization": "Bearer "}])
    def test_missing_token(self, client, headers):
        resp = client.get("/user/profile", headers=headers)

        assert resp.status_code == 401
        assert resp.get_json()["error"] == "No token"

    def test_tampered_token(self, bare_client, logged_in):
        token = logged_in["accessToken"]
        tampered = token[:-1] + ("A" if token[-1] != "A" else "B")

        resp = bare_client.get("/user/profile", headers=bearer(tampered))

        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid token"

    def test_expired_token(self, bare_client, logged_in, clock):
        clock.advance(timedelta(minutes=16))

        resp = bare_client.get("/user/profile", headers=bearer(logged_in["accessToken"]))

        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Token expired"


class TestRefresh:
    def test_cookie_jar_flow(self, client):
        client.post("/auth/register", json=ALICE)
        login = client.post("/auth/login", json=ALICE)

        resp = client.post("/auth/refresh")

        assert resp.status_code == 200
        assert resp.get_json()["accessToken"]
        new_token = refresh_cookie(resp)
        assert new_token and new_token != login.get_json()["refreshToken"]

    def test_old_token_rejected_after_rotation(self, bare_client, logged_in):
        old = logged_in["refreshToken"]
        first = bare_client.post("/auth/refresh", headers=cookie_header(old))
        assert first.status_code == 200

        replay = bare_client.post("/auth/refresh", headers=cookie_header(old))

        assert replay.status_code == 401
        assert replay.get_json()["error"] == "Invalid refresh token"

    def test_new_token_keeps_rotating(self, bare_client, logged_in):
        token = logged_in["refreshToken"]
        for _ in range(3):
            resp = bare_client.post("/auth/refresh", headers=cookie_header(token))
            assert resp.status_code == 200
            token = refresh_cookie(resp)

    def test_body_fallback(self, bare_client, logged_in):
        resp = bare_client.post("/auth/refresh", json={"refreshToken": logged_in["refreshToken"]})

        assert resp.status_code == 200

    def test_missing_cookie(self, bare_client):
        resp = bare_client.post("/auth/refresh")

        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid refresh token"

    def test_expired_refresh_token(self, bare_client, logged_in, clock):
        clock.advance(timedelta(days=7, seconds=1))

        resp = bare_client.post("/auth/refresh", headers=cookie_header(logged_in["refreshToken"]))

        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Refresh token expired"


class TestLogout:
    def test_logout_revokes_and_clears_cookie(self, bare_client, logged_in):
        token = logged_in["refreshToken"]

        resp = bare_client.post("/auth/logout", headers=cookie_header(token))

        assert resp.status_code == 204
        assert refresh_cookie(resp) == ""
        after = bare_client.post("/auth/refresh", headers=cookie_header(token))
        assert after.status_code == 401

    def test_logout_all(self, bare_client, logged_in):
        second = bare_client.post("/auth/login", json=ALICE).get_json()["refreshToken"]

        resp = bare_client.post("/auth/logout?all=true", headers=cookie_header(logged_in["refreshToken"]))

        assert resp.status_code == 204
        assert bare_client.post("/auth/refresh", headers=cookie_header(second)).status_code == 401

    def test_logout_without_token(self, bare_client):
        assert bare_client.post("/auth/logout").status_code == 204


class TestForgotPassword:
    def test_same_answer_for_known_and_unknown(self, client):
        client.post("/auth/register", json=ALICE)

        known = client.post("/auth/forgot-password", json={"email": "alice@example.com"})
        unknown = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.get_json() == unknown.get_json() == {"message": "If user exists, email sent"}

    def test_shape_validation(self, client):
        resp = client.post("/auth/forgot-password", json={"email": "nope"})

        assert resp.status_code == 400


class TestErrorsAndMeta:
    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"

    def test_root(self, client):
        assert client.get("/").get_json()["docs"] == "/apidocs/"

    def test_unknown_route(self, client):
        resp = client.get("/nope")

        assert resp.status_code == 404
        assert resp.get_json()["code"] == "not_found"

    def test_unexpected_error_does_not_leak(self, app, caplog):
        @app.route("/boom")
        def boom():
            raise RuntimeError("database password is hunter2")

        resp = app.test_client().get("/boom")

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error", "code": "server_error", "status": 500}
        assert "GET /boom" in caplog.text

    def test_unknown_route_envelope(self, client):
        resp = client.get("/nope")

        assert resp.get_json()["status"] == 404
        assert resp.get_json()["error"]

    def test_raised_validation_error_matches_schema_errors(self, app):
        @app.route("/strict")
        def strict():
            raise ValidationFailedError("Validation failed", detail={"email": ["Missing data for required field."]})

        resp = app.test_client().get("/strict")

        assert resp.status_code == 400
        assert resp.get_json() == {
            "error": "Validation failed",
            "code": "validation_error",
            "status": 400,
            "details": {"email": ["Missing data for required field."]},
        }

    def test_raised_not_found_error(self, app):
        @app.route("/gone")
        def gone():
            raise NotFoundError("User not found")

        resp = app.test_client().get("/gone")

        assert resp.get_json() == {"error": "User not found", "code": "not_found", "status": 404}

    def test_wrong_method_keeps_http_status(self, client):
        resp = client.get("/auth/login")

        assert resp.status_code == 405
        assert resp.get_json()["code"] == "method_not_allowed"

    def test_creating_apps_leaves_root_logger_alone(self, auth_service, monkeypatch):
        root = logging.getLogger()
        monkeypatch.setattr(root, "level", logging.ERROR)
        monkeypatch.setattr(DevelopmentConfig, "LOG_LEVEL", "DEBUG")

        create_app("development", auth_service=auth_service)
        create_app("testing", auth_service=auth_service)

        assert root.level == logging.ERROR

    def test_production_requires_secret(self, auth_service, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "JWT_SECRET", DEV_JWT_SECRET)

        with pytest.raises(RuntimeError):
            create_app("production", auth_service=auth_service)

    def test_production_cookie_is_secure(self, auth_service, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "JWT_SECRET", "a-real-production-secret-value")
        monkeypatch.setattr(ProductionConfig, "COOKIE_SECURE", True)
        client = create_app("production", auth_service=auth_service).test_client()
        client.post("/auth/register", json=ALICE)

        resp = client.post("/auth/login", json=ALICE)

        assert "Secure" in resp.headers["Set-Cookie"]


def test_end_to_end_scenario(bare_client, clock):
    """register -> login -> profile -> refresh -> old refresh dead -> expired access token."""
    assert bare_client.post("/auth/register", json=ALICE).status_code == 201

    login = bare_client.post("/auth/login", json=ALICE)
    assert login.status_code == 200
    access, refresh = login.get_json()["accessToken"], login.get_json()["refreshToken"]
    assert access and refresh

    profile = bare_client.get("/user/profile", headers=bearer(access))
    assert profile.status_code == 200
    assert profile.get_json() == {"email": "alice@example.com"}

    refreshed = bare_client.post("/auth/refresh", headers=cookie_header(refresh))
    assert refreshed.status_code == 200
    assert refreshed.get_json()["accessToken"]
    assert bare_client.post("/auth/refresh", headers=cookie_header(refresh)).status_code == 401

    clock.advance(timedelta(minutes=15, seconds=1))
    expired = bare_client.get("/user/profile", headers=bearer(access))
    assert expired.status_code == 401
    assert expired.get_json()["error"] == "Token expired"
