from __future__ import annotations

from jose import jwt

from conftest import PASSWORD, TEST_SECRET


def _register(client, **overrides):
    body = {"name": "Alice", "email": "alice@example.com", "password": PASSWORD, "role": "user"}
    body.update(overrides)
    return client.post("/users/register", json=body)


def test_register_returns_user_without_password(client):
    r = _register(client)
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "alice@example.com"
    assert body["role"] == "user"
    assert isinstance(body["id"], int)
    assert "password" not in body
    assert "hashed_password" not in body


def test_register_lowercases_email(client):
    r = _register(client, email="Alice@Example.COM")
    assert r.status_code == 200
    assert r.json()["email"] == "alice@example.com"


def test_duplicate_email_is_conflict(client):
    assert _register(client).status_code == 200
    r = _register(client, name="Someone Else", email="ALICE@example.com")
    assert r.status_code == 409
    assert r.json()["error"] == "Email already registered"


def test_register_rejects_malformed_input(client):
    assert _register(client, email="not-an-email").status_code == 400
    assert _register(client, name="").status_code == 400
    assert _register(client, password="123").status_code == 400
    assert _register(client, role="superuser").status_code == 400


def test_register_defaults_role_to_user(client):
    r = client.post(
        "/users/register",
        json={"name": "Dana", "email": "dana@example.com", "password": PASSWORD},
    )
    assert r.status_code == 200
    assert r.json()["role"] == "user"


def test_login_token_embeds_stored_role(client):
    _register(client, email="root@example.com", role="admin")
    r = client.post("/users/login", json={"email": "root@example.com", "password": PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] > 0

    claims = jwt.decode(body["token"], TEST_SECRET, algorithms=["HS256"])
    assert claims["role"] == "admin"
    assert claims["sub"] == str(claims["user_id"])


def test_login_with_wrong_password_is_unauthorized(client):
    _register(client)
    r = client.post("/users/login", json={"email": "alice@example.com", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid email or password"


def test_login_with_unknown_email_is_unauthorized(client):
    r = client.post("/users/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert r.status_code == 401


def test_me_returns_caller_profile(client, user_headers):
    r = client.get("/users/me", headers=user_headers)
    assert r.status_code == 200
    assert r.json()["email"] == "alice@example.com"


def test_me_requires_token(client):
    assert client.get("/users/me").status_code == 401
