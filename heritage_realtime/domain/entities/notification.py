"""Domain entities describing persisted notifications and their targeting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from .room import Room, RoleRoom, TenantRoom, TopicRoom

PRIORITY_LOW = "low"
PRIORITY_MEDIUM = "medium"
PRIORITY_HIGH = "high"
PRIORITY_URGENT = "urgent"

PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH, PRIORITY_URGENT)


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(value for value in values if value))


@dataclass(frozen=True)
class TargetSpec:
    """Rule used to resolve the recipients of a notification.

    Explicit principal ids are combined with the principals behind every named
    role, tenant and topic room.
    """

    principal_ids: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    tenant_ids: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        *,
        principal_ids: Iterable[str] = (),
        roles: Iterable[str] = (),
        tenant_ids: Iterable[str] = (),
        topics: Iterable[str] = (),
    ) -> "TargetSpec":
        return cls(
            principal_ids=_unique(principal_ids),
            roles=_unique(role.strip().lower() for role in roles),
            tenant_ids=_unique(tenant_ids),
            topics=_unique(topics),
        )

    def rooms(self) -> list[Room]:
        """Return the room variants named by this targeting rule."""

        rooms: list[Room] = [RoleRoom(role) for role in self.roles]
        rooms.extend(TenantRoom(tenant_id) for tenant_id in self.tenant_ids)
        rooms.extend(TopicRoom(topic) for topic in self.topics)
        return rooms

    def is_empty(self) -> bool:
        return not (self.principal_ids or self.roles or self.tenant_ids or self.topics)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "principal_ids": list(self.principal_ids),
            "roles": list(self.roles),
            "tenant_ids": list(self.tenant_ids),
            "topics": list(self.topics),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TargetSpec":
        data = data or {}
        return cls.build(
            principal_ids=data.get("principal_ids") or (),
            roles=data.get("roles") or (),
            tenant_ids=data.get("tenant_ids") or (),
            topics=data.get("topics") or (),
        )


@dataclass(frozen=True)
class NotificationAction:
    """Client-side navigation hint attached to a notification."""

    url: str
    label: str


@dataclass
class RecipientState:
    """Consumption state of a notification for one recipient."""

    principal_id: str
    read_at: datetime | None = None
    dismissed_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    @property
    def is_dismissed(self) -> bool:
        return self.dismissed_at is not None


@dataclass
class Notification:
    """Durable message addressed to a set of principals resolved at creation."""

    id: str | None
    title: str
    message: str
    notification_type: str
    target: TargetSpec
    priority: str = PRIORITY_MEDIUM
    action: NotificationAction | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    created_by: str | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None
    recipients: dict[str, RecipientState] = field(default_factory=dict)

    @property
    def recipient_ids(self) -> frozenset[str]:
        return frozenset(self.recipients)

    def is_expired(self, now: datetime) -> bool:
        """Return ``True`` when the notification expired at or before ``now``."""

        return self.expires_at is not None and self.expires_at <= now


@dataclass
class InboxEntry:
    """A notification as seen by one of its recipients."""

    notification: Notification
    state: RecipientState


@dataclass
class NotificationPage:
    """Newest-first slice of a principal's notifications."""

    items: list[InboxEntry]
    total: int
    page: int
    page_size: int


__all__ = [
    "InboxEntry",
    "Notification",
    "NotificationAction",
    "NotificationPage",
    "PRIORITIES",
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_MEDIUM",
    "PRIORITY_URGENT",
    "RecipientState",
    "TargetSpec",
]
