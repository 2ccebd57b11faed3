"""Integration tests for api/oauth.py -- POST/DELETE /oauth/token, GET /oauth/me.

Covers:
- password grant (JSON and form bodies) and the response shape
- identical 400 invalid_grant for bad password, unknown and inactive users
- refresh grant rotation
- revocation via DELETE with the bearer token, and the cascade it triggers
- request validation and unsupported grant types
- database failures render a generic 500 without internal detail
- PUT /oauth/me restricted self-update
"""

from conftest import PASSWORD, FakeClock, bearer
from models.base_model import Base, utc_now

TOKEN_URL = "/api/v1/oauth/token"
ME_URL = "/api/v1/oauth/me"


def test_password_grant_json(client, seed_user):
    user = seed_user("alice", scope="first:regular")

    resp = client.post(TOKEN_URL, json={"grant_type": "password", "username": "alice", "password": PASSWORD})

    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store"
    body = resp.get_json()
    assert body["token_type"] == "bearer"
    assert body["scope"] == "first:regular"
    assert body["user_id"] == user.id
    assert 86390 <= body["expires_in"] <= 86400
    assert len(body["access_token"]) == 64
    assert len(body["refresh_token"]) == 64


def test_password_grant_form_encoded(client, seed_user):
    seed_user("alice")
    resp = client.post(TOKEN_URL, data={"grant_type": "password", "username": "alice", "password": PASSWORD})
    assert resp.status_code == 200
    assert "access_token" in resp.get_json()


def test_authentication_failures_look_identical(client, seed_user):
    seed_user("alice")
    seed_user("bob", active=False)

    bodies = []
    for username, password in (("alice", "wrong-password"), ("nobody", PASSWORD), ("bob", PASSWORD)):
        resp = client.post(TOKEN_URL, json={"grant_type": "password", "username": username, "password": password})
        assert resp.status_code == 400
        bodies.append(resp.get_json())

    assert bodies[0] == bodies[1] == bodies[2]
    assert bodies[0]["error"] == "invalid_grant"
    assert bodies[0]["message"] == "Invalid username or password"


def test_missing_fields_is_invalid_request(client):
    resp = client.post(TOKEN_URL, json={"grant_type": "password", "username": "alice"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_request"


def test_unsupported_grant_type(client):
    for body in ({"grant_type": "client_credentials"}, {}):
        resp = client.post(TOKEN_URL, json=body)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "unsupported_grant_type"


def test_invalid_scope_request(client, seed_user):
    seed_user("alice", scope="first:regular")
    resp = client.post(
        TOKEN_URL,
        json={"grant_type": "password", "username": "alice", "password": PASSWORD, "scope": "first:admin"},
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_scope"


def test_refresh_grant_rotates(client, seed_user, login):
    seed_user("alice")
    first = login("alice")

    resp = client.post(TOKEN_URL, json={"grant_type": "refresh_token", "refresh_token": first["refresh_token"]})
    assert resp.status_code == 200
    second = resp.get_json()
    assert second["access_token"] != first["access_token"]

    assert client.get(ME_URL, headers=bearer(second["access_token"])).status_code == 200
    assert client.get(ME_URL, headers=bearer(first["access_token"])).status_code == 401

    reused = client.post(TOKEN_URL, json={"grant_type": "refresh_token", "refresh_token": first["refresh_token"]})
    assert reused.status_code == 401
    assert reused.get_json()["error"] == "invalid_token"
    assert reused.headers["WWW-Authenticate"].startswith("Bearer")


def test_refresh_grant_with_unknown_token(client):
    resp = client.post(TOKEN_URL, json={"grant_type": "refresh_token", "refresh_token": "nope"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Missing or invalid token"


def test_revoke_and_cascade(client, seed_user, login):
    seed_user("alice")
    tokens = login("alice")

    resp = client.delete(TOKEN_URL, headers=bearer(tokens["access_token"]))
    assert resp.status_code == 204

    # the access token no longer authenticates
    assert client.delete(TOKEN_URL, headers=bearer(tokens["access_token"])).status_code == 401
    # and its refresh token was revoked with it
    resp = client.post(TOKEN_URL, json={"grant_type": "refresh_token", "refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401


def test_revoke_requires_bearer(client):
    resp = client.delete(TOKEN_URL)
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthorized"


def test_me_returns_account_without_hash(client, seed_user, login):
    user = seed_user("alice", scope="first:regular")
    tokens = login("alice")

    resp = client.get(ME_URL, headers=bearer(tokens["access_token"]))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["id"] == user.id
    assert data["username"] == "alice"
    assert data["scope"] == "first:regular"
    assert "password" not in data
    assert "password_hash" not in data


def test_server_error_is_generic(client, oauth, seed_user):
    seed_user("alice")
    Base.metadata.drop_all(oauth.storage.engine)

    resp = client.post(TOKEN_URL, json={"grant_type": "password", "username": "alice", "password": PASSWORD})
    assert resp.status_code == 500
    body = resp.get_json()
    assert body == {"error": "server_error", "message": "An unexpected error occurred", "status": 500}


def test_health_reports_database(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json()["database"] == "ok"


def test_oauth_routes_are_mounted_under_oauth(app):
    rules = {(rule.rule, method) for rule in app.url_map.iter_rules() for method in rule.methods}
    for expected in (
        (TOKEN_URL, "POST"),
        (TOKEN_URL, "DELETE"),
        (ME_URL, "GET"),
        (ME_URL, "PUT"),
    ):
        assert expected in rules
    assert not any(rule.rule in ("/api/v1/token", "/api/v1/me") for rule in app.url_map.iter_rules())


def test_update_me_changes_own_profile(client, seed_user, login):
    seed_user("alice", scope="first:regular")
    tokens = login("alice")

    resp = client.put(
        ME_URL,
        json={"f_name": "Alice", "l_name": "Liddell", "password": "through-the-glass"},
        headers=bearer(tokens["access_token"]),
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert (data["f_name"], data["l_name"]) == ("Alice", "Liddell")
    assert "password" not in data

    old = client.post(TOKEN_URL, json={"grant_type": "password", "username": "alice", "password": PASSWORD})
    new = client.post(
        TOKEN_URL,
        json={"grant_type": "password", "username": "alice", "password": "through-the-glass"},
    )
    assert old.status_code == 400
    assert new.status_code == 200


def test_update_me_ignores_restricted_fields(client, seed_user, login):
    seed_user("alice", scope="first:regular")
    tokens = login("alice")

    resp = client.put(
        ME_URL,
        json={"username": "mallory", "scope": "superuser", "active": False, "f_name": "A"},
        headers=bearer(tokens["access_token"]),
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["username"] == "alice"
    assert data["scope"] == "first:regular"
    assert data["active"] is True
    assert data["f_name"] == "A"


def test_update_me_rejects_short_password(client, seed_user, login):
    seed_user("alice")
    tokens = login("alice")
    resp = client.put(ME_URL, json={"password": "short"}, headers=bearer(tokens["access_token"]))
    assert resp.status_code == 422
    assert "password" in resp.get_json()["details"]


def test_update_me_requires_bearer(client):
    assert client.put(ME_URL, json={"f_name": "A"}).status_code == 401


def test_expired_access_token_cannot_revoke_but_can_refresh(client, oauth, seed_user, login, monkeypatch):
    seed_user("alice")
    tokens = login("alice")
    clock = FakeClock(utc_now())
    clock.advance(24 * 60 * 60)
    monkeypatch.setattr(oauth.orchestrator, "_clock", clock)

    assert client.delete(TOKEN_URL, headers=bearer(tokens["access_token"])).status_code == 401

    resp = client.post(TOKEN_URL, json={"grant_type": "refresh_token", "refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    fresh = resp.get_json()
    assert client.delete(TOKEN_URL, headers=bearer(fresh["access_token"])).status_code == 204
