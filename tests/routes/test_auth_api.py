from models import AuditLog, User


def _register(client, **overrides):
    payload = {"email": "New@Example.com", "username": "NewUser", "password": "password123"}
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_creates_user(client):
    resp = _register(client)
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert (data["email"], data["username"]) == ("new@example.com", "newuser")
    assert User.query.count() == 1
    assert AuditLog.query.filter_by(action="user_registered").count() == 1


def test_register_validation(client):
    assert _register(client, password="short").status_code == 400
    assert _register(client, email="not-an-email").status_code == 400
    assert _register(client).status_code == 201

    resp = _register(client, username="someoneelse")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "validation_error", "detail": "That email is already registered."}


def test_login_logout_cycle(client, create_user):
    create_user(email="player@example.com", username="player")

    bad = client.post("/api/auth/login", json={"identifier": "player", "password": "nope"})
    assert bad.status_code == 401
    assert bad.get_json()["error"] == "invalid_credentials"

    assert client.get("/api/me").status_code == 401

    ok = client.post("/api/auth/login", json={"identifier": "PLAYER", "password": "password123"})
    assert ok.status_code == 200
    assert client.get("/api/me").get_json()["data"]["email"] == "player@example.com"

    assert client.post("/api/auth/logout").status_code == 200
    resp = client.get("/api/me")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "authentication_required"


def test_api_token_issue_and_revoke(app, client, create_user):
    create_user(email="player@example.com", username="player")
    client.post("/api/auth/login", json={"email": "player@example.com", "password": "password123"})

    resp = client.post("/api/auth/token", json={})
    assert resp.status_code == 201
    token = resp.get_json()["data"]["token"]
    assert resp.get_json()["data"]["hint"] == token[-8:]

    bearer = app.test_client()
    headers = {"Authorization": f"Bearer {token}"}
    assert bearer.get("/api/me", headers=headers).status_code == 200

    assert client.post("/api/auth/token", json={"revoke": True}).get_json()["data"] == {"revoked": True}
    assert bearer.get("/api/me", headers=headers).status_code == 401


def test_query_string_tokens_are_rejected(client, auth_headers):
    _, headers = auth_headers()
    resp = client.get("/api/me?api_token=abc", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "api_token_query_not_supported"


def test_request_id_is_echoed(client, auth_headers):
    _, headers = auth_headers()
    resp = client.get("/api/me", headers={**headers, "X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_cookie_sessions_need_csrf_but_bearer_does_not(app, client, create_user, auth_headers, monkeypatch):
    monkeypatch.setitem(app.config, "WTF_CSRF_ENABLED", True)
    create_user(email="player@example.com", username="player")
    assert client.post("/api/auth/login", json={"identifier": "player", "password": "password123"}).status_code == 200

    blocked = client.post("/api/decks", json={"name": "No token"})
    assert blocked.status_code == 400
    assert blocked.get_json()["error"] == "csrf_failed"

    token = client.get("/api/auth/csrf").get_json()["data"]["csrf_token"]
    allowed = client.post("/api/decks", json={"name": "With token"}, headers={"X-CSRFToken": token})
    assert allowed.status_code == 201

    _, headers = auth_headers(email="bot@example.com", username="bot")
    bearer = app.test_client()
    assert bearer.post("/api/decks", json={"name": "Bot deck"}, headers=headers).status_code == 201


def test_api_token_is_stored_as_digest(create_user):
    user, _ = create_user()
    token = user.issue_api_token()

    assert user.api_token_hash != token and len(user.api_token_hash) == 64
    assert user.api_token_hint == token[-8:]
    assert User.verify_api_token(token) is user
    user.clear_api_token()
    assert User.verify_api_token(token) is None
