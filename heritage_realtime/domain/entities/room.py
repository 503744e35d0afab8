"""Broadcast room variants.

Rooms form a closed set of four kinds. The first three are joined
automatically for every connection of a principal; topic rooms are the only
kind a client may join or leave on its own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final, Union

_TOPIC_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_.:-]{1,128}$")


@dataclass(frozen=True)
class UserRoom:
    principal_id: str

    @property
    def name(self) -> str:
        return f"user:{self.principal_id}"


@dataclass(frozen=True)
class RoleRoom:
    role: str

    @property
    def name(self) -> str:
        return f"role:{self.role}"


@dataclass(frozen=True)
class TenantRoom:
    tenant_id: str

    @property
    def name(self) -> str:
        return f"tenant:{self.tenant_id}"


@dataclass(frozen=True)
class TopicRoom:
    topic: str

    def __post_init__(self) -> None:
        if not _TOPIC_NAME_PATTERN.match(self.topic):
            raise ValueError(f"Invalid topic name: {self.topic!r}")

    @property
    def name(self) -> str:
        return f"topic:{self.topic}"


Room = Union[UserRoom, RoleRoom, TenantRoom, TopicRoom]

AUTO_MEMBERSHIP_ROOMS: Final = (UserRoom, RoleRoom, TenantRoom)


def is_auto_membership(room: Room) -> bool:
    """Return ``True`` when ``room`` is managed by the connection registry."""

    return isinstance(room, AUTO_MEMBERSHIP_ROOMS)


def parse_room(value: str) -> Room:
    """Parse a canonical room name such as ``topic:tours-list``.

    Raises ``ValueError`` for unknown prefixes or empty identifiers.
    """

    if not isinstance(value, str):
        raise ValueError("Room name must be a string")
    kind, separator, identifier = value.strip().partition(":")
    if not separator or not identifier:
        raise ValueError(f"Invalid room name: {value!r}")

    if kind == "user":
        return UserRoom(identifier)
    if kind == "role":
        return RoleRoom(identifier)
    if kind == "tenant":
        return TenantRoom(identifier)
    if kind == "topic":
        return TopicRoom(identifier)
    raise ValueError(f"Unknown room kind: {kind!r}")


__all__ = [
    "AUTO_MEMBERSHIP_ROOMS",
    "Room",
    "RoleRoom",
    "TenantRoom",
    "TopicRoom",
    "UserRoom",
    "is_auto_membership",
    "parse_room",
]
