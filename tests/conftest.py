"""Shared test fixtures."""

import json

import httpx
import pytest
from sqlalchemy import BigInteger, Integer, create_engine, event
from sqlalchemy.pool import StaticPool

import signal_desk.db.tables  # noqa: F401
from signal_desk.db import Base, Database
from signal_desk.messaging import BotApiClient
from signal_desk.models import Identity


@pytest.fixture
def db():
    """In-memory SQLite Database with every table created.

    Strips schemas and patches BigInteger→Integer for SQLite.
    StaticPool keeps one connection so TestClient's worker thread sees the
    same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    # SQLite doesn't support schemas or BigInteger autoincrement
    for table in Base.metadata.tables.values():
        table.schema = None
        for col in table.columns:
            if isinstance(col.type, BigInteger):
                col.type = Integer()

    Base.metadata.create_all(engine)

    database = Database.from_engine(engine)
    yield database
    database.dispose()


@pytest.fixture
def owner():
    return Identity(user_id="U1", display_name="alice", avatar_url="https://cdn/a.png", access_token="tok-1")


@pytest.fixture
def stranger():
    return Identity(user_id="U2", display_name="bob", access_token="tok-2")


class RecordingObserver:
    """Sync observer that keeps every callback for assertions."""

    def __init__(self):
        self.attempts = []
        self.successes = []
        self.failures = []

    def on_attempt(self, operation, thread_id):
        self.attempts.append((operation, thread_id))

    def on_success(self, operation, thread_id):
        self.successes.append((operation, thread_id))

    def on_failure(self, failure):
        self.failures.append(failure)


@pytest.fixture
def observer():
    return RecordingObserver()


class FakeBotApi:
    """In-process stand-in for the bot's HTTP API, served through MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.fail_paths: dict[str, int] = {}
        self.next_thread_id = "T1"
        self.thread_tags = {"T1": ["tag-a"]}
        self.channel_tags = [{"id": "tag-a", "name": "BTC"}, {"id": "tag-b", "name": "Scalp"}]

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content or b"{}")

    def paths(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for prefix, status in self.fail_paths.items():
            if path.startswith(prefix):
                return httpx.Response(status, json={"error": "boom"})
        if request.method == "POST" and path == "/api/send-forum-message":
            return httpx.Response(200, json={"threadId": self.next_thread_id})
        if request.method == "GET" and path.startswith("/api/threads/"):
            thread_id = path.split("/")[3]
            return httpx.Response(200, json={"appliedTags": self.thread_tags.get(thread_id, [])})
        if request.method == "GET" and path.startswith("/api/channels/"):
            return httpx.Response(200, json={"tags": self.channel_tags})
        if request.method in ("PATCH", "DELETE"):
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def fake_bot():
    return FakeBotApi()


@pytest.fixture
def bot_api(fake_bot):
    return BotApiClient("http://bot.test", transport=httpx.MockTransport(fake_bot.handler))
