"""Registry of live connections grouped by principal."""

from __future__ import annotations

import logging
from typing import Any

from heritage_realtime.domain.entities import Principal, Room

from .connection import CLOSE_GOING_AWAY, Connection, ConnectionState
from .rooms import RoomMembership, auto_rooms_for

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Track active connections per principal and their room memberships.

    A principal may own several concurrent connections (tabs, devices). The
    registry is the only component that creates or removes entries and the
    only one that manages the identity-scoped rooms.
    """

    def __init__(self, rooms: RoomMembership | None = None) -> None:
        self.rooms = rooms or RoomMembership()
        self._connections: dict[str, set[Connection]] = {}

    def register(self, principal: Principal, connection: Connection) -> None:
        """Activate ``connection`` for ``principal`` and join its auto rooms."""

        if connection.state is ConnectionState.CONNECTING:
            connection.authenticate(principal)
        connection.transition(ConnectionState.ACTIVE)

        self._connections.setdefault(principal.id, set()).add(connection)
        for room in auto_rooms_for(principal):
            self.rooms.join(connection, room)
        connection.on_close(self.unregister)
        logger.info(
            "Connection %s registered for %s (%s); %d live connection(s)",
            connection.id,
            principal.id,
            principal.role,
            len(self._connections[principal.id]),
        )

    def unregister(self, connection: Connection) -> None:
        """Forget ``connection`` and every room membership it held."""

        self.rooms.drop(connection)
        principal = connection.principal
        if principal is None:
            return
        connections = self._connections.get(principal.id)
        if connections is None or connection not in connections:
            return
        connections.discard(connection)
        if not connections:
            self._connections.pop(principal.id, None)
        logger.info("Connection %s unregistered for %s", connection.id, principal.id)

    def connections_for(self, principal_id: str) -> frozenset[Connection]:
        return frozenset(self._connections.get(principal_id, ()))

    def is_online(self, principal_id: str) -> bool:
        return bool(self._connections.get(principal_id))

    def online_count(self) -> int:
        """Return the number of principals with at least one live connection."""

        return len(self._connections)

    def connection_count(self, principal_id: str) -> int:
        return len(self._connections.get(principal_id, ()))

    def total_connections(self) -> int:
        return sum(len(connections) for connections in self._connections.values())

    def all_connections(self) -> list[Connection]:
        return [
            connection
            for connections in self._connections.values()
            for connection in connections
        ]

    def principals_in(self, room: Room) -> set[str]:
        """Return the ids of principals with a live connection in ``room``."""

        return {
            connection.principal.id
            for connection in self.rooms.members_of(room)
            if connection.principal is not None
        }

    def stats(self) -> dict[str, Any]:
        return {
            "online_principals": self.online_count(),
            "total_connections": self.total_connections(),
            "principal_connections": {
                principal_id: len(connections)
                for principal_id, connections in self._connections.items()
            },
            "rooms": self.rooms.room_sizes(),
        }

    async def close_all(self, *, code: int = CLOSE_GOING_AWAY, reason: str = "server shutdown") -> None:
        """Close every live connection and drop all routing state."""

        for connection in self.all_connections():
            await connection.close(code=code, reason=reason)
        self.clear()

    def clear(self) -> None:
        self._connections.clear()
        self.rooms.clear()


__all__ = ["ConnectionRegistry"]
