"""Pydantic models for realtime administration and websocket frames."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class RealtimeStatsRead(BaseModel):
    online_principals: int
    total_connections: int
    principal_connections: dict[str, int] = Field(default_factory=dict)
    rooms: dict[str, int] = Field(default_factory=dict)


class PresenceRead(BaseModel):
    principal_id: str
    online: bool
    connections: int


class SystemNotificationCreate(BaseModel):
    """Transient announcement pushed to every live connection."""

    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    level: Literal["info", "warning", "critical"] = "info"


class ClientFrame(BaseModel):
    """Envelope of a message sent by a websocket client."""

    event: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: str | None = None


class NotificationIdPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_id: str = Field(..., alias="notificationId", min_length=1)


class RoomPayload(BaseModel):
    room: str = Field(..., min_length=1)


__all__ = [
    "ClientFrame",
    "NotificationIdPayload",
    "PresenceRead",
    "RealtimeStatsRead",
    "RoomPayload",
    "SystemNotificationCreate",
]
