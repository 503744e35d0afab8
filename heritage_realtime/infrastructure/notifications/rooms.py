"""Room membership bookkeeping for live connections."""

from __future__ import annotations

from typing import TYPE_CHECKING

from heritage_realtime.domain.entities import (
    Principal,
    Room,
    RoleRoom,
    TenantRoom,
    UserRoom,
)

if TYPE_CHECKING:
    from .connection import Connection


def auto_rooms_for(principal: Principal) -> list[Room]:
    """Return the identity-scoped rooms every connection of ``principal`` joins."""

    rooms: list[Room] = [UserRoom(principal.id), RoleRoom(principal.role)]
    if principal.tenant_id:
        rooms.append(TenantRoom(principal.tenant_id))
    return rooms


class RoomMembership:
    """Many-to-many mapping between connections and rooms.

    Every method runs to completion without awaiting, so callers on the event
    loop never observe a half-applied join or leave.
    """

    def __init__(self) -> None:
        self._members: dict[Room, set["Connection"]] = {}
        self._rooms: dict["Connection", set[Room]] = {}

    def join(self, connection: "Connection", room: Room) -> bool:
        """Add ``connection`` to ``room``; return ``False`` if it already was a member."""

        members = self._members.setdefault(room, set())
        if connection in members:
            return False
        members.add(connection)
        self._rooms.setdefault(connection, set()).add(room)
        return True

    def leave(self, connection: "Connection", room: Room) -> bool:
        """Remove ``connection`` from ``room``; return ``False`` if it was not a member."""

        members = self._members.get(room)
        if not members or connection not in members:
            return False
        members.discard(connection)
        if not members:
            self._members.pop(room, None)
        rooms = self._rooms.get(connection)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                self._rooms.pop(connection, None)
        return True

    def drop(self, connection: "Connection") -> frozenset[Room]:
        """Remove ``connection`` from every room it belongs to."""

        rooms = self._rooms.pop(connection, set())
        for room in rooms:
            members = self._members.get(room)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                self._members.pop(room, None)
        return frozenset(rooms)

    def members_of(self, room: Room) -> frozenset["Connection"]:
        return frozenset(self._members.get(room, ()))

    def rooms_of(self, connection: "Connection") -> frozenset[Room]:
        return frozenset(self._rooms.get(connection, ()))

    def room_sizes(self) -> dict[str, int]:
        return {room.name: len(members) for room, members in self._members.items()}

    def clear(self) -> None:
        self._members.clear()
        self._rooms.clear()


__all__ = ["RoomMembership", "auto_rooms_for"]
