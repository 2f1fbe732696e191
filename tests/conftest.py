import datetime as dt
import typing as t
from unittest.mock import MagicMock

import pytest
from znsocket import MemoryStorage

from focushive.config import FocusHiveConfig
from focushive.models import Identity, utcnow
from focushive.services import InMemoryPresenceTracker, RoomLifecycleManager, RoomRegistry


class FakeClock:
    """Mutable UTC clock for timer tests."""

    def __init__(self, start: dt.datetime | None = None):
        self.now = start or utcnow()

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += dt.timedelta(seconds=seconds)


@pytest.fixture
def config():
    """Configuration for unit tests (no Redis, no dedup suppression)."""
    return FocusHiveConfig(
        redis_url=None,
        secret_key="test-secret-key",
        relay_secret="test-relay-secret",
        dedup_window_seconds=0.0,
        sweep_grace_seconds=60.0,
    )


@pytest.fixture
def redis_client():
    """In-memory store with the Redis interface."""
    return MemoryStorage()


@pytest.fixture
def registry(redis_client):
    return RoomRegistry(redis_client)


@pytest.fixture
def presence():
    return InMemoryPresenceTracker()


@pytest.fixture
def gateway():
    """Broadcast gateway double recording every publication."""
    return MagicMock()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lifecycle(registry, presence, gateway, config, clock):
    return RoomLifecycleManager(registry, presence, gateway, config, clock=clock)


@pytest.fixture
def alice():
    return Identity(userId="user-alice", displayName="Alice")


@pytest.fixture
def bob():
    return Identity(userId="user-bob", displayName="Bob")


def published(gateway: MagicMock, event: str) -> list[t.Any]:
    """Calls of ``gateway.publish`` for ``event``."""
    return [c for c in gateway.publish.call_args_list if c.args[0] == event]


@pytest.fixture
def app(config):
    """Create a Flask app for unit testing."""
    from focushive.server import create_app

    test_app = create_app(config)
    test_app.config["TESTING"] = True

    yield test_app

    test_app.extensions["broadcast"].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    """Log in a display name and return ``(token, user_id)``."""

    def _login(user_name: str) -> tuple[str, str]:
        response = client.post("/api/login", json={"userName": user_name})
        assert response.status_code == 200
        data = response.get_json()
        client.delete_cookie("token")
        return data["token"], data["userId"]

    return _login


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def socket_client(app):
    """Factory for authenticated Socket.IO test clients."""
    from focushive.server import socketio

    clients = []

    def _connect(token: str | None = None, **kwargs):
        auth = {"token": token} if token is not None else None
        sio = socketio.test_client(app, auth=auth, **kwargs)
        clients.append(sio)
        return sio

    yield _connect

    for sio in clients:
        if sio.is_connected():
            sio.disconnect()


def received(sio, event: str) -> list[t.Any]:
    """Payloads of ``event`` received by a Socket.IO test client."""
    return [msg["args"][0] for msg in sio.get_received() if msg["name"] == event]
