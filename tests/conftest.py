"""Shared fixtures for the notification service tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ.setdefault("SECRET_KEY", "test-secret")

from heritage_realtime.application.use_cases.notifications import (  # noqa: E402
    NotificationService,
    NotificationStore,
)
from heritage_realtime.domain.entities import Principal  # noqa: E402
from heritage_realtime.infrastructure import database  # noqa: E402
from heritage_realtime.infrastructure.notifications import (  # noqa: E402
    Connection,
    ConnectionRegistry,
    DeliveryDispatcher,
)
from heritage_realtime.infrastructure.repositories import PrincipalRepository  # noqa: E402
from heritage_realtime.infrastructure.security import create_access_token  # noqa: E402


class FakeWebSocket:
    """Minimal stand-in for a websocket that records what is sent to it."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict[str, Any]] = []
        self.closed_with: tuple[int, str | None] | None = None

    async def send_json(self, message: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = (code, reason)

    def events(self) -> list[str]:
        return [message["event"] for message in self.sent]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_database():
    """Recreate every table so each test starts from an empty store."""

    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.initialize_database()
    yield
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def store(registry: ConnectionRegistry) -> NotificationStore:
    return NotificationStore(database.SessionLocal, live_members=registry.principals_in)


@pytest.fixture
def dispatcher(registry: ConnectionRegistry, store: NotificationStore) -> DeliveryDispatcher:
    return DeliveryDispatcher(registry, store.unread_count)


@pytest.fixture
def service(store: NotificationStore, dispatcher: DeliveryDispatcher) -> NotificationService:
    return NotificationService(store, dispatcher)


@pytest.fixture
def connect(registry: ConnectionRegistry):
    """Register a started connection backed by a :class:`FakeWebSocket`."""

    def _connect(
        principal: Principal,
        *,
        fail: bool = False,
        send_buffer: int = 100,
        start: bool = True,
    ) -> tuple[Connection, FakeWebSocket]:
        websocket = FakeWebSocket(fail=fail)
        connection = Connection(websocket, send_buffer=send_buffer)
        registry.register(principal, connection)
        if start:
            connection.start()
        return connection, websocket

    return _connect


@pytest.fixture
def directory():
    """Add principals to the directory."""

    def _add(*principals: Principal, active: bool = True) -> None:
        session = database.SessionLocal()
        try:
            repository = PrincipalRepository(session)
            for principal in principals:
                repository.upsert(principal, is_active=active)
        finally:
            session.close()

    return _add


def bearer(principal: Principal) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(principal)}"}


@pytest.fixture
def auth_headers():
    return bearer
