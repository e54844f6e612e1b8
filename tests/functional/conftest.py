"""Functional test bootstrap for the HTTP contract tests.

Each test gets its own in-memory SQLite database (StaticPool, so every
connection sees the same data) and an app built around it with an in-memory
audit sink. The client sends the CSRF header and a user id by default.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.config import AppConfig, AuditConfig, AuthConfig, DatabaseConfig
from app.db.base import create_schema, new_engine
from app.logic.audit import BufferedAuditSink
from app.logic.repository_boards import SqlBoardBlockStore
from app.main import create_app

SQLITE_MEMORY_URL = "sqlite+pysqlite:///:memory:"
SINGLE_USER_TOKEN = "local-single-user-token"
DEFAULT_HEADERS = {"X-Requested-With": "XMLHttpRequest", "X-User-Id": "user-1"}


@pytest.fixture
def engine():
    eng = new_engine(SQLITE_MEMORY_URL)
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine) -> SqlBoardBlockStore:
    return SqlBoardBlockStore(engine)


@pytest.fixture
def functional_audit_sink() -> BufferedAuditSink:
    return BufferedAuditSink()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(dsn=SQLITE_MEMORY_URL),
        auth=AuthConfig(single_user_token=SINGLE_USER_TOKEN, csrf_check=True),
        audit=AuditConfig(enabled=False),
    )


@pytest.fixture
def client(app_config, store, functional_audit_sink):
    app = create_app(config=app_config, store=store, audit_sink=functional_audit_sink)
    with TestClient(app, headers=DEFAULT_HEADERS) as c:
        yield c


@pytest.fixture
def created_bundle(client) -> dict:
    """One open board with a card, a text under the card and a view."""
    body = {
        "boards": [{"id": "board-A", "teamId": "team-1", "type": "O", "title": "Roadmap"}],
        "blocks": [
            {"id": "card-1", "boardId": "board-A", "parentId": "board-A", "type": "card",
             "createAt": 1, "updateAt": 1, "fields": {"contentOrder": ["text-1"]}},
            {"id": "text-1", "boardId": "board-A", "parentId": "card-1", "type": "text",
             "createAt": 1, "updateAt": 1},
            {"id": "view-1", "boardId": "board-A", "parentId": "board-A", "type": "view",
             "createAt": 1, "updateAt": 1, "fields": {"cardOrder": ["card-1"]}},
        ],
    }
    resp = client.post("/api/v1/boards-and-blocks", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()
