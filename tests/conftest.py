"""Master test fixtures.

Environment variables are set BEFORE any application imports so that
``pastebin.config.Settings`` initialises with in-memory storage, test-mode
clock headers and no background purge task.
"""

import os
from datetime import datetime, timezone

os.environ.update({
    "STORAGE_BACKEND": "memory",
    "TEST_MODE": "1",
    "DEBUG": "0",
    "PURGE_INTERVAL_SECONDS": "0",
    "APP_DOMAIN": "http://test.example.com",
})

import pytest
import fakeredis

from fastapi.testclient import TestClient

# Now safe to import application code
from pastebin.database import InMemoryStore, PasteDatabase, RedisStore
from pastebin.models import PasteRecord
from pastebin.service import PasteService

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_record(key: str = "abc12345", **overrides) -> PasteRecord:
    fields = {
        "key": key,
        "content": "hello",
        "syntax": "plaintext",
        "burn_after_reading": False,
        "expire_at": None,
        "created_at": NOW,
    }
    fields.update(overrides)
    return PasteRecord(**fields)


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore(shard_count=4)


@pytest.fixture
def fake_redis():
    """A fresh fakeredis server per test."""
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def redis_store(fake_redis) -> RedisStore:
    return RedisStore(fake_redis)


@pytest.fixture(params=["memory", "redis"])
def store(request):
    """Run a test against both storage backends."""
    if request.param == "memory":
        return InMemoryStore(shard_count=4)
    server = fakeredis.FakeServer()
    return RedisStore(fakeredis.FakeRedis(server=server, decode_responses=True))


@pytest.fixture
def database(memory_store) -> PasteDatabase:
    return PasteDatabase(store=memory_store)


@pytest.fixture
def service(database) -> PasteService:
    return PasteService(database)


@pytest.fixture
def client(service):
    """TestClient wired to the FastAPI app with a fresh in-memory service."""
    from pastebin.main import app
    from pastebin.routes.pastes import get_paste_service

    app.dependency_overrides[get_paste_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def now_header(when: datetime) -> dict:
    """``x-test-now-ms`` header pinning the request clock."""
    return {"x-test-now-ms": str(int(when.timestamp() * 1000))}
