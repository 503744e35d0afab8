"""Live websocket session wrapper with a bounded outbound buffer."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from enum import Enum
from typing import Any, Callable

from fastapi import WebSocket

from heritage_realtime.domain.entities import Principal
from heritage_realtime.utils import utcnow

logger = logging.getLogger(__name__)

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_POLICY_VIOLATION = 1008
CLOSE_INTERNAL_ERROR = 1011
CLOSE_TRY_AGAIN_LATER = 1013


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    ACTIVE = "active"
    CLOSED = "closed"


_ALLOWED_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.AUTHENTICATED, ConnectionState.CLOSED}
    ),
    ConnectionState.AUTHENTICATED: frozenset(
        {ConnectionState.ACTIVE, ConnectionState.CLOSED}
    ),
    ConnectionState.ACTIVE: frozenset({ConnectionState.CLOSED}),
    ConnectionState.CLOSED: frozenset(),
}


class Connection:
    """One live transport session belonging to a single principal.

    Outbound messages go through a FIFO queue drained by a writer task, so the
    order of pushes to this connection is preserved while callers never wait
    on the network. A full queue closes the connection instead of blocking.
    """

    def __init__(
        self,
        websocket: WebSocket,
        *,
        send_buffer: int = 100,
        connection_id: str | None = None,
    ) -> None:
        self.id = connection_id or uuid.uuid4().hex
        self.websocket = websocket
        self.created_at = utcnow()
        self.principal: Principal | None = None
        self.state = ConnectionState.CONNECTING
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self._last_seen = time.monotonic()
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=send_buffer)
        self._writer: asyncio.Task[None] | None = None
        self._closing: asyncio.Task[None] | None = None
        self._close_callbacks: list[Callable[["Connection"], None]] = []

    def __repr__(self) -> str:
        principal_id = self.principal.id if self.principal else None
        return f"Connection(id={self.id!r}, principal={principal_id!r}, state={self.state.value})"

    @property
    def is_active(self) -> bool:
        return self.state is ConnectionState.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    def transition(self, state: ConnectionState) -> None:
        if state not in _ALLOWED_TRANSITIONS[self.state]:
            msg = f"Invalid connection transition {self.state.value} -> {state.value}"
            raise ValueError(msg)
        self.state = state

    def authenticate(self, principal: Principal) -> None:
        self.transition(ConnectionState.AUTHENTICATED)
        self.principal = principal

    def on_close(self, callback: Callable[["Connection"], None]) -> None:
        self._close_callbacks.append(callback)

    def touch(self) -> None:
        """Record inbound activity from the client."""

        self._last_seen = time.monotonic()

    def idle_seconds(self, now: float | None = None) -> float:
        return (now if now is not None else time.monotonic()) - self._last_seen

    def start(self) -> None:
        """Start the writer task that drains the outbound buffer."""

        if self._writer is None:
            self._writer = asyncio.get_running_loop().create_task(
                self._pump(), name=f"ws-writer-{self.id}"
            )

    def send(self, message: dict[str, Any]) -> bool:
        """Queue ``message`` without blocking; return ``False`` if it was not accepted."""

        if self.state is ConnectionState.CLOSED:
            return False
        try:
            self._outbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                "Send buffer overflow on connection %s; closing", self.id
            )
            self._schedule_close(CLOSE_TRY_AGAIN_LATER, "send buffer overflow")
            return False
        return True

    async def drain(self, timeout: float = 1.0) -> None:
        """Wait until every queued message has been handed to the transport."""

        if self.state is ConnectionState.CLOSED:
            return
        await asyncio.wait_for(self._outbox.join(), timeout)

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the transport and mark the connection as closed."""

        if self.state is ConnectionState.CLOSED:
            return
        self._mark_closed(code, reason)
        writer = self._writer
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
        await self._close_transport(code, reason)

    async def _close_transport(self, code: int, reason: str) -> None:
        try:
            await self.websocket.close(code=code, reason=reason or None)
        except Exception as exc:  # pragma: no cover - transport already gone
            logger.debug("Websocket %s already closed: %s", self.id, exc)

    async def _pump(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self.websocket.send_json(message)
            except Exception as exc:
                logger.warning(
                    "TRANSPORT_FAULT on connection %s (%s): %s",
                    self.id,
                    message.get("event"),
                    exc,
                )
                self._outbox.task_done()
                self._mark_closed(CLOSE_INTERNAL_ERROR, "transport fault")
                await self._close_transport(CLOSE_INTERNAL_ERROR, "transport fault")
                return
            self._outbox.task_done()

    def _schedule_close(self, code: int, reason: str) -> None:
        if self._closing is not None or self.state is ConnectionState.CLOSED:
            return
        self._closing = asyncio.get_running_loop().create_task(self.close(code, reason))

    def _mark_closed(self, code: int, reason: str) -> None:
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        self.close_code = code
        self.close_reason = reason
        while not self._outbox.empty():
            self._outbox.get_nowait()
            self._outbox.task_done()
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Close callback failed for connection %s", self.id)


__all__ = [
    "CLOSE_GOING_AWAY",
    "CLOSE_INTERNAL_ERROR",
    "CLOSE_NORMAL",
    "CLOSE_POLICY_VIOLATION",
    "CLOSE_TRY_AGAIN_LATER",
    "Connection",
    "ConnectionState",
]
