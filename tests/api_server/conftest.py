# tests/api_server/conftest.py
"""
Pytest configuration and fixtures for API server tests.

Apps are built with `create_app` and injected fakes: the fake provider, a
token verifier backed by a dict, and (where persistence matters) an
in-memory SQLite gateway. The gateway engine is created lazily, so it binds
to the TestClient's event loop on first use.
"""

from typing import Dict

import pytest
from fastapi.testclient import TestClient

from bosschat.api_server.auth import AuthenticatedUser
from bosschat.api_server.main import create_app
from bosschat.config import Settings
from bosschat.exceptions import AuthError

from ..fakes import make_sqlite_gateway

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"


class FakeVerifier:
    """Token verifier resolving a fixed token -> user id map."""

    def __init__(self, tokens: Dict[str, str]):
        self.tokens = tokens
        self.closed = False

    async def verify(self, token: str) -> AuthenticatedUser:
        if token not in self.tokens:
            raise AuthError("Invalid or expired token")
        return AuthenticatedUser(id=self.tokens[token])

    async def close(self) -> None:
        self.closed = True


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def chat_body(text: str = "Hello", **overrides):
    body = {
        "persona": "jia",
        "sessionId": "tab-1",
        "messages": [{"role": "user", "content": text}],
    }
    body.update(overrides)
    return body


@pytest.fixture
def settings() -> Settings:
    return Settings(sweep_interval=3600)


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier({ALICE_TOKEN: "alice", BOB_TOKEN: "bob"})


@pytest.fixture
def api_client(settings, fake_provider):
    """Anonymous-only app: no store, no identity provider."""
    app = create_app(settings=settings, provider=fake_provider)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def persistent_client(settings, fake_provider, verifier):
    """App with an identity provider and a conversation store."""
    app = create_app(settings=settings, provider=fake_provider, gateway=make_sqlite_gateway(), verifier=verifier)
    with TestClient(app) as client:
        yield client
