"""Health endpoint."""

from pymongo.errors import ServerSelectionTimeoutError

from deps import get_db
from main import app


class PingableDB:
    def __init__(self, error=None):
        self.error = error

    def command(self, name):
        if self.error:
            raise self.error
        return {"ok": 1.0}


def test_healthy_when_both_backends_answer(client):
    app.dependency_overrides[get_db] = lambda: PingableDB()

    res = client.get("/api/v1/health")

    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


def test_degraded_when_mongo_is_down(client):
    app.dependency_overrides[get_db] = lambda: PingableDB(ServerSelectionTimeoutError("no servers"))

    body = client.get("/api/v1/health").json()

    assert body["status"] == "degraded"
    assert body["services"]["mongodb"] == {"status": "disconnected", "error": "Connection failed"}
    assert body["services"]["redis"]["status"] == "connected"
