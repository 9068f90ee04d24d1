import base64
import json

import pytest

from gatekeeper.db import ExecutionFailed
from gatekeeper.gateway import create_app
from gatekeeper.tokens import RowMode, TokenVerifier

SECRET = "test-secret-please-change"


def b64url(obj):
    raw = json.dumps(obj).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def unsigned_token(claims):
    return f"{b64url({'alg': 'none', 'typ': 'JWT'})}.{b64url(claims)}."


class FakeDatabase:
    """Stands in for the shared connection and records every statement it runs."""

    def __init__(self, columns=("id", "name"), rows=((1, "a"), (2, "b")), error=None):
        self.columns = list(columns)
        self.rows = [tuple(r) for r in rows]
        self.error = error
        self.calls = []

    def execute(self, sql, params, mode):
        self.calls.append((sql, tuple(params), mode))
        if self.error is not None:
            raise ExecutionFailed(self.error)
        if mode is RowMode.ARRAY:
            return [list(r) for r in self.rows]
        return [dict(zip(self.columns, r)) for r in self.rows]


@pytest.fixture
def secret():
    return SECRET


@pytest.fixture
def verifier():
    return TokenVerifier(SECRET)


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def app(db, verifier):
    app = create_app(db, verifier)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
