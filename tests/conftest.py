import os
from collections.abc import Iterator

import fakeredis
import pytest
from fastapi.testclient import TestClient

from order_tracker.database import get_store
from order_tracker.main import app
from order_tracker.memory_store import MemoryStore
from order_tracker.redis_store import RedisStore


@pytest.fixture(scope="session", autouse=True)
def test_env_vars():
    os.environ.pop("REDIS_URL", None)
    os.environ.setdefault("ACTIVITY_LOG_LIMIT", "50")


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def redis_store() -> Iterator[RedisStore]:
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield RedisStore(client)
    client.close()


@pytest.fixture(params=["memory_store", "redis_store"])
def store(request):
    """Runs a test once per backend."""
    return request.getfixturevalue(request.param)


@pytest.fixture
def client(memory_store) -> Iterator[TestClient]:
    app.dependency_overrides[get_store] = lambda: memory_store
    yield TestClient(app)
    app.dependency_overrides.pop(get_store, None)
