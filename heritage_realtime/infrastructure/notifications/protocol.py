"""Event names and payload builders for the realtime wire protocol.

Every frame, in either direction, is a JSON object with the shape
``{"event": str, "payload": dict, "timestamp": str}``. Payload keys use
camelCase because the browser client consumes them directly.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from heritage_realtime.domain.entities import Notification, Principal
from heritage_realtime.utils import isoformat_or_none, utcnow

# Server to client
EVENT_CONNECTED = "connected"
EVENT_NEW_NOTIFICATION = "new-notification"
EVENT_NOTIFICATION_READ = "notification-read"
EVENT_NOTIFICATION_DISMISSED = "notification-dismissed"
EVENT_UNREAD_COUNT = "unread-count"
EVENT_SYSTEM_NOTIFICATION = "system-notification"
EVENT_ROOM_JOINED = "room-joined"
EVENT_ROOM_LEFT = "room-left"
EVENT_ERROR = "error"

# Both directions
EVENT_PING = "ping"
EVENT_PONG = "pong"

# Client to server
EVENT_MARK_READ = "mark-read"
EVENT_DISMISS = "dismiss"
EVENT_MARK_ALL_READ = "mark-all-read"
EVENT_GET_UNREAD_COUNT = "get-unread-count"
EVENT_JOIN_ROOM = "join-room"
EVENT_LEAVE_ROOM = "leave-room"

def build_envelope(
    event: str, payload: dict[str, Any] | None = None, *, timestamp: datetime | None = None
) -> dict[str, Any]:
    """Wrap ``payload`` in the protocol envelope."""

    return {
        "event": event,
        "payload": payload or {},
        "timestamp": (timestamp or utcnow()).isoformat(),
    }


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the client representation of ``notification`` without recipient state."""

    action = None
    if notification.action is not None:
        action = {"url": notification.action.url, "label": notification.action.label}
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.notification_type,
        "priority": notification.priority,
        "action": action,
        "payload": dict(notification.payload or {}),
        "createdBy": notification.created_by,
        "createdAt": isoformat_or_none(notification.created_at),
        "expiresAt": isoformat_or_none(notification.expires_at),
    }


def connected_message(connection_id: str, principal: Principal, rooms: list[str]) -> dict[str, Any]:
    return build_envelope(
        EVENT_CONNECTED,
        {
            "connectionId": connection_id,
            "principalId": principal.id,
            "role": principal.role,
            "tenantId": principal.tenant_id,
            "rooms": sorted(rooms),
        },
    )


def new_notification_message(notification: Notification) -> dict[str, Any]:
    now = utcnow()
    return build_envelope(
        EVENT_NEW_NOTIFICATION,
        {"notification": serialize_notification(notification), "timestamp": now.isoformat()},
        timestamp=now,
    )


def system_notification_message(notification: dict[str, Any]) -> dict[str, Any]:
    now = utcnow()
    return build_envelope(
        EVENT_SYSTEM_NOTIFICATION,
        {"notification": notification, "timestamp": now.isoformat()},
        timestamp=now,
    )


def state_change_message(event: str, notification_id: str, principal_id: str, at: datetime | None) -> dict[str, Any]:
    """Build a ``notification-read`` or ``notification-dismissed`` frame."""

    if event not in (EVENT_NOTIFICATION_READ, EVENT_NOTIFICATION_DISMISSED):
        raise ValueError(f"Unsupported state change event: {event}")
    stamp = at or utcnow()
    return build_envelope(
        event,
        {
            "notificationId": notification_id,
            "principalId": principal_id,
            "timestamp": stamp.isoformat(),
        },
    )


def unread_count_message(count: int) -> dict[str, Any]:
    return build_envelope(EVENT_UNREAD_COUNT, {"count": count})


def room_message(event: str, room_name: str) -> dict[str, Any]:
    return build_envelope(event, {"room": room_name})


def error_message(code: str, message: str, *, event: str | None = None) -> dict[str, Any]:
    return build_envelope(EVENT_ERROR, {"code": code, "message": message, "event": event})


__all__ = [
    "EVENT_CONNECTED",
    "EVENT_DISMISS",
    "EVENT_ERROR",
    "EVENT_GET_UNREAD_COUNT",
    "EVENT_JOIN_ROOM",
    "EVENT_LEAVE_ROOM",
    "EVENT_MARK_ALL_READ",
    "EVENT_MARK_READ",
    "EVENT_NEW_NOTIFICATION",
    "EVENT_NOTIFICATION_DISMISSED",
    "EVENT_NOTIFICATION_READ",
    "EVENT_PING",
    "EVENT_PONG",
    "EVENT_ROOM_JOINED",
    "EVENT_ROOM_LEFT",
    "EVENT_SYSTEM_NOTIFICATION",
    "EVENT_UNREAD_COUNT",
    "build_envelope",
    "connected_message",
    "error_message",
    "new_notification_message",
    "room_message",
    "serialize_notification",
    "state_change_message",
    "system_notification_message",
    "unread_count_message",
]
