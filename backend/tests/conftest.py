"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database and fake LINE services for isolation.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from auth import AuthError, IdToken, LineOAuthService
from bot import LineApiError, LineClient


class FakeLineClient(LineClient):
    """Records replies and pushes instead of calling the Messaging API."""

    def __init__(self, secret="test-secret"):
        super().__init__(secret, "test-token", http=object())
        self.replies = []
        self.pushes = []
        self.fail_for = set()

    def reply_message(self, reply_token, text):
        self.replies.append((reply_token, text))

    def push_message(self, user_id, text):
        if user_id in self.fail_for:
            raise LineApiError("500: push failed")
        self.pushes.append((user_id, text))


class FakeOAuthService(LineOAuthService):
    """Deterministic state, canned token exchange and profile."""

    def __init__(self):
        super().__init__("client-id", "client-secret", "http://testserver/auth", http=object())
        self.signed_out = []
        self.fail_signout = False

    def generate_state(self):
        return "state-123"

    def exchange_code(self, code):
        if code == "bad":
            raise AuthError("invalid_grant")
        if code == "no-access":
            return {"id_token": "id-token"}
        return {"access_token": "access-abc", "id_token": "id-token"}

    def extract_id_token(self, token):
        return IdToken(sub="U123", name="Choo", picture="http://example.com/p.png")

    def signout(self, access_token):
        if self.fail_signout:
            raise AuthError('{"error":"invalid_request"}')
        self.signed_out.append(access_token)


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE todo (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            task TEXT NOT NULL,
            done INTEGER NOT NULL DEFAULT 0,
            pin INTEGER NOT NULL DEFAULT 0,
            due TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def line_client():
    return FakeLineClient()


@pytest.fixture
def oauth_service():
    return FakeOAuthService()


@pytest.fixture
def app_client(test_db, line_client, oauth_service):
    """
    Create a test client for the FastAPI app with LINE services replaced.
    init_db is already stubbed by test_db.
    """
    from fastapi.testclient import TestClient
    import main

    main.app.dependency_overrides[main.get_line_client] = lambda: line_client
    main.app.dependency_overrides[main.get_oauth_service] = lambda: oauth_service
    main.app.dependency_overrides[main.get_edit_url] = lambda: "https://todo.example.com/"

    with TestClient(main.app) as client:
        yield client

    main.app.dependency_overrides.clear()


@pytest.fixture
def logged_in_client(app_client):
    """Client whose session went through /login and /auth as user U123."""
    app_client.get("/login", follow_redirects=False)
    response = app_client.get("/auth?state=state-123&code=good", follow_redirects=False)
    assert response.status_code == 307
    return app_client
