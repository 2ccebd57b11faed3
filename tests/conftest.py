"""
tests/conftest.py -- Shared fixtures for the Library Catalog API tests.

- storage / verifier / orchestrator: the token core over an in-memory SQLite
  DBStorage, with a controllable clock and a cheap argon2 hasher
- app / client: a Flask app per test built with TestingConfig, so every test
  starts from an empty database
- make_user / make_library: insert rows directly, bypassing the HTTP layer
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta

# Before any api import so load_dotenv() cannot pick a non-test environment.
os.environ.setdefault("APP_ENV", "testing")

import pytest

from api import create_app
from models.db_storage import DBStorage
from models.directories import LibraryDirectory, UserDirectory
from models.library import Library
from models.token_store import TokenStore
from models.user import User
from utils.orchestrator import TokenOrchestrator
from utils.security import CredentialVerifier

PASSWORD = "correct horse battery"


class FakeClock:
    """Naive-UTC clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def cheap_verifier() -> CredentialVerifier:
    return CredentialVerifier(time_cost=1, memory_cost=8, parallelism=1)


def add_user(storage: DBStorage, verifier: CredentialVerifier, username: str,
             password: str = PASSWORD, scope: str = "", active: bool = True) -> User:
    user = User(
        username=username,
        password_hash=verifier.hash(password),
        scope=scope,
        active=active,
    )
    storage.new(user)
    storage.save()
    return user


def add_library(storage: DBStorage, name: str, scope: str, active: bool = True) -> Library:
    library = Library(name=name, scope=scope, active=active)
    storage.new(library)
    storage.save()
    return library


# ---------------------------------------------------------------------------
# Token core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage():
    s = DBStorage("sqlite://")
    s.reload()
    yield s
    s.dispose()


@pytest.fixture
def verifier() -> CredentialVerifier:
    return cheap_verifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(storage) -> TokenStore:
    return TokenStore(storage)


@pytest.fixture
def orchestrator(storage, store, verifier, clock) -> TokenOrchestrator:
    return TokenOrchestrator(
        store,
        UserDirectory(storage),
        verifier,
        access_token_lifetime=3600,
        refresh_token_lifetime=7200,
        clock=clock,
    )


@pytest.fixture
def make_user(storage, verifier):
    def _make(username: str, password: str = PASSWORD, scope: str = "", active: bool = True) -> User:
        return add_user(storage, verifier, username, password, scope, active)

    return _make


@pytest.fixture
def libraries(storage) -> LibraryDirectory:
    return LibraryDirectory(storage)


# ---------------------------------------------------------------------------
# Flask fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app():
    application = create_app("testing")
    yield application
    application.extensions["oauth"].storage.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def oauth(app):
    return app.extensions["oauth"]


@pytest.fixture
def seed_user(app, oauth):
    def _seed(username: str, password: str = PASSWORD, scope: str = "", active: bool = True) -> User:
        with app.app_context():
            return add_user(oauth.storage, oauth.verifier, username, password, scope, active)

    return _seed


@pytest.fixture
def seed_library(app, oauth):
    def _seed(name: str, scope: str, active: bool = True) -> Library:
        with app.app_context():
            return add_library(oauth.storage, name, scope, active)

    return _seed


@pytest.fixture
def login(client):
    """Return a function that performs a password grant and returns the JSON body."""

    def _login(username: str, password: str = PASSWORD, **extra) -> dict:
        body = {"grant_type": "password", "username": username, "password": password, **extra}
        resp = client.post("/api/v1/oauth/token", json=body)
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()

    return _login


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
