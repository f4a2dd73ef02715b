"""
tests/test_api_routes.py -- Integration tests for the /api/v1 auth and session routes.

These tests run through the real ASGI stack with isolated components wired in
by the api_client fixture. Cookie headers are passed explicitly: the session
cookie is Secure and the client talks plain http, so the cookie jar never
replays it on its own.

Coverage:
  - POST /auth/token: only a session bound to a principal gets a token; claims are
    server-derived ("sub"), never taken from the request body; no-store caching
  - Anonymous, principal-less, unknown and destroyed sessions -> 401
  - GET /auth/me: valid bearer (scheme case-insensitive) -> claims;
    missing/tampered/foreign -> identical 401
  - GET /session creates a session and Set-Cookie; replaying the cookie resumes it
  - PUT /session/{key} stores data but refuses the principal key;
    DELETE /session expires the cookie and drops data
  - Malformed Cookie headers produce a fresh session, not a 4xx/5xx
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth.sessions import PRINCIPAL_KEY
from auth.tokens import TokenCodec


def _session_cookie(resp) -> str:
    """Return "whsessionid=<value>" from the response's Set-Cookie header."""
    set_cookie = resp.headers["set-cookie"]
    assert set_cookie.startswith("whsessionid=")
    return set_cookie.split(";", 1)[0]


def _login(client: TestClient, principal: str = "user-1") -> str:
    """Start a session and bind it to principal the way a server-side login flow would."""
    cookie = _session_cookie(client.get("/api/v1/session"))
    session_id = cookie.split("=", 1)[1]
    client.app.state.session_manager.store.read(session_id).set(PRINCIPAL_KEY, principal)
    return cookie


def _issue(client: TestClient, principal: str = "user-1") -> str:
    resp = client.post("/api/v1/auth/token", headers={"Cookie": _login(client, principal)})
    assert resp.status_code == 200
    return resp.json()["access_token"]


class TestTokenRoutes:
    def test_issue_and_read_back(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/token", headers={"Cookie": _login(api_client)})
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 3600
        assert resp.headers["cache-control"] == "no-store"

        me = api_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        claims = me.json()["claims"]
        assert claims["sub"] == "user-1"
        assert claims["iss"] == "whendy-tests"
        assert claims["aud"] == "api"
        assert claims["exp"] - claims["iat"] == 3600

    def test_anonymous_request_is_401(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/token", json={"claims": {"role": "admin", "userId": 0}})
        assert resp.status_code == 401
        assert resp.json() == {"error": {"code": "unauthorized", "message": "Authentication required."}}
        assert "set-cookie" not in resp.headers
        assert len(api_client.app.state.session_manager.store) == 0

    def test_session_without_principal_is_401(self, api_client: TestClient) -> None:
        cookie = _session_cookie(api_client.get("/api/v1/session"))
        resp = api_client.post("/api/v1/auth/token", headers={"Cookie": cookie})
        assert resp.status_code == 401

    def test_unknown_session_cookie_is_401_and_not_adopted(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/auth/token", headers={"Cookie": "whsessionid=made-up"})
        assert resp.status_code == 401
        assert "made-up" not in api_client.app.state.session_manager.store

    def test_request_body_claims_are_not_signed(self, api_client: TestClient) -> None:
        resp = api_client.post(
            "/api/v1/auth/token",
            json={"claims": {"role": "admin", "sub": "someone-else", "iss": "forged"}},
            headers={"Cookie": _login(api_client)},
        )
        token = resp.json()["access_token"]
        claims = api_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}).json()["claims"]
        assert "role" not in claims
        assert claims["sub"] == "user-1"
        assert claims["iss"] == "whendy-tests"

    def test_client_cannot_write_principal(self, api_client: TestClient) -> None:
        cookie = _session_cookie(api_client.get("/api/v1/session"))
        put = api_client.put(f"/api/v1/session/{PRINCIPAL_KEY}", json={"value": "admin"}, headers={"Cookie": cookie})
        assert put.status_code == 403
        assert put.json()["error"]["code"] == "reserved_key"

        resp = api_client.post("/api/v1/auth/token", headers={"Cookie": cookie})
        assert resp.status_code == 401

    def test_destroyed_session_cannot_get_tokens(self, api_client: TestClient) -> None:
        cookie = _login(api_client)
        api_client.delete("/api/v1/session", headers={"Cookie": cookie})
        resp = api_client.post("/api/v1/auth/token", headers={"Cookie": cookie})
        assert resp.status_code == 401

    def test_missing_token_is_401(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"error": {"code": "unauthorized", "message": "Authentication required."}}
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_tampered_and_foreign_tokens_get_identical_401(self, api_client: TestClient) -> None:
        token = _issue(api_client)
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{'A' if signature[0] != 'A' else 'B'}{signature[1:]}"
        foreign = TokenCodec("f" * 48, issuer="whendy-tests", audience="api").generate({"sub": "user-1"})

        bodies = []
        for candidate in (tampered, foreign, "not-a-token"):
            resp = api_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {candidate}"})
            assert resp.status_code == 401
            bodies.append(resp.json())
        assert bodies[0] == bodies[1] == bodies[2]

    def test_non_bearer_scheme_ignored(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/me", headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert resp.status_code == 401

    @pytest.mark.parametrize("scheme", ["bearer", "BEARER", "Bearer"])
    def test_bearer_scheme_is_case_insensitive(self, api_client: TestClient, scheme: str) -> None:
        token = _issue(api_client)
        resp = api_client.get("/api/v1/auth/me", headers={"Authorization": f"{scheme} {token}"})
        assert resp.status_code == 200
        assert resp.json()["claims"]["sub"] == "user-1"

    def test_scheme_without_credentials_is_401(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/auth/me", headers={"Authorization": "Bearer"})
        assert resp.status_code == 401


class TestSessionRoutes:
    def test_new_session_sets_cookie(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/session")
        assert resp.status_code == 200
        set_cookie = resp.headers["set-cookie"]
        assert "HttpOnly" in set_cookie
        assert "Secure" in set_cookie
        assert "SameSite=Strict" in set_cookie
        assert "Max-Age=600" in set_cookie
        assert resp.json()["data"] == {}

    def test_cookie_resumes_session(self, api_client: TestClient) -> None:
        first = api_client.get("/api/v1/session")
        cookie = _session_cookie(first)

        put = api_client.put("/api/v1/session/theme", json={"value": "dark"}, headers={"Cookie": cookie})
        assert put.status_code == 200
        assert "set-cookie" not in put.headers

        again = api_client.get("/api/v1/session", headers={"Cookie": cookie})
        assert again.json()["data"] == {"theme": "dark"}
        assert again.json()["session_id_prefix"] == first.json()["session_id_prefix"]

    def test_full_session_id_not_in_body(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/session")
        session_id = _session_cookie(resp).split("=", 1)[1]
        assert session_id not in resp.text
        assert resp.json()["session_id_prefix"] == session_id[:8]

    def test_malformed_cookie_gets_fresh_session(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/session", headers={"Cookie": "=broken; whsessionid=abc"})
        assert resp.status_code == 200
        assert "set-cookie" in resp.headers
        assert resp.json()["data"] == {}

    def test_delete_expires_cookie_and_drops_data(self, api_client: TestClient) -> None:
        cookie = _session_cookie(api_client.get("/api/v1/session"))
        api_client.put("/api/v1/session/user", json={"value": 42}, headers={"Cookie": cookie})

        resp = api_client.delete("/api/v1/session", headers={"Cookie": cookie})
        assert resp.status_code == 204
        removal = resp.headers["set-cookie"]
        assert removal.startswith("whsessionid=;")
        assert "Max-Age=0" in removal
        assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in removal

        after = api_client.get("/api/v1/session", headers={"Cookie": cookie})
        assert after.json()["data"] == {}

    def test_invalid_json_body_is_422(self, api_client: TestClient) -> None:
        cookie = _session_cookie(api_client.get("/api/v1/session"))
        resp = api_client.put(
            "/api/v1/session/theme",
            content="{not json",
            headers={"Cookie": cookie, "Content-Type": "application/json"},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
