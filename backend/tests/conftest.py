from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure `backend/` is on sys.path so `import storefront.*` works in tests.
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))

from storefront.auth.security import PasswordHasher, TokenCodec  # noqa: E402
from storefront.db.session import Database  # noqa: E402
from storefront.main import create_app  # noqa: E402
from storefront.services import Services  # noqa: E402
from storefront.settings import Settings  # noqa: E402

TEST_SECRET = "test-secret"
PASSWORD = "s3cret-pass"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        # bcrypt is deliberately slow; tests only need a real hash.
        password_schemes="pbkdf2_sha256",
    )


@pytest.fixture
def db(settings):
    database = Database(settings.database_url)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def services(db, settings) -> Services:
    return Services.build(db, settings)


@pytest.fixture
def hasher(settings) -> PasswordHasher:
    return PasswordHasher.from_settings(settings)


@pytest.fixture
def tokens(settings) -> TokenCodec:
    return TokenCodec.from_settings(settings)


@pytest.fixture
def app(settings, db):
    return create_app(settings=settings, database=db)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def register(client: TestClient, *, email: str, role: str = "user", name: str = "Test User") -> dict:
    r = client.post(
        "/users/register",
        json={"name": name, "email": email, "password": PASSWORD, "role": role},
    )
    assert r.status_code == 200, r.text
    return r.json()


def login_headers(client: TestClient, *, email: str) -> dict[str, str]:
    r = client.post("/users/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def admin_headers(client) -> dict[str, str]:
    register(client, email="admin@example.com", role="admin", name="Admin")
    return login_headers(client, email="admin@example.com")


@pytest.fixture
def user_headers(client) -> dict[str, str]:
    register(client, email="alice@example.com", name="Alice")
    return login_headers(client, email="alice@example.com")


@pytest.fixture
def other_user_headers(client) -> dict[str, str]:
    register(client, email="bob@example.com", name="Bob")
    return login_headers(client, email="bob@example.com")


def create_product(client: TestClient, headers: dict[str, str], **fields) -> dict:
    body = {"name": "Widget", "description": "", "price": 10, "stock": 5}
    body.update(fields)
    r = client.post("/products", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def make_user(client):
    def _make(*, email: str, role: str = "user", name: str = "Test User") -> tuple[dict, dict[str, str]]:
        user = register(client, email=email, role=role, name=name)
        return user, login_headers(client, email=email)

    return _make


@pytest.fixture
def make_product(client, admin_headers):
    def _make(**fields) -> dict:
        return create_product(client, admin_headers, **fields)

    return _make
