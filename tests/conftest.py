"""Shared fixtures: an in-memory MongoDB, a fake Redis and an app wired to both."""

import os

# config.py validates the environment at import time
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017/coursehub_test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("JWT_SECRET", "test-secret-that-is-long-enough-for-hs256")

import fakeredis
import mongomock
import pytest
from fastapi.testclient import TestClient

from deps import get_db, get_redis, get_storage
from main import app, ensure_indexes
from repos import users
from factories import PASSWORD, login
from services.storage import LocalFileStorage

@pytest.fixture
def db():
    database = mongomock.MongoClient().coursehub_test
    ensure_indexes(database)
    return database


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(redis_server):
    """Synchronous view of the same fake server the app writes to."""
    return fakeredis.FakeRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "media"))


@pytest.fixture
def client(db, redis_server, storage):
    async def fake_redis():
        return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_redis] = fake_redis
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def learner(db):
    return users.create_user(db, "learner@example.com", PASSWORD, "Lee Learner")


@pytest.fixture
def admin(db):
    return users.create_user(db, "admin@example.com", PASSWORD, "Ada Admin", role="admin")


@pytest.fixture
def learner_headers(client, learner):
    return login(client, learner["email"])


@pytest.fixture
def admin_headers(client, admin):
    return login(client, admin["email"])
