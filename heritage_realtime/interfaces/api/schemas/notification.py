"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from heritage_realtime.domain.entities import (
    DeliveryReport,
    InboxEntry,
    Notification,
    NotificationAction,
    NotificationPage,
    TargetSpec,
    TopicRoom,
)

Priority = Literal["low", "medium", "high", "urgent"]


class TargetSpecSchema(BaseModel):
    """Targeting rule combining explicit principals and broadcast rooms."""

    principal_ids: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    tenant_ids: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)

    @field_validator("topics")
    @classmethod
    def _validate_topics(cls, value: list[str]) -> list[str]:
        for topic in value:
            TopicRoom(topic)
        return value

    def to_entity(self) -> TargetSpec:
        return TargetSpec.build(
            principal_ids=self.principal_ids,
            roles=self.roles,
            tenant_ids=self.tenant_ids,
            topics=self.topics,
        )


class NotificationActionSchema(BaseModel):
    url: str = Field(..., min_length=1, max_length=500)
    label: str = Field(..., min_length=1, max_length=100)


class NotificationCreate(BaseModel):
    """Payload used by administrators to create a targeted notification."""

    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    notification_type: str = Field(default="info", min_length=1, max_length=50)
    priority: Priority = "medium"
    target: TargetSpecSchema
    action: NotificationActionSchema | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime | None = None

    def action_entity(self) -> NotificationAction | None:
        if self.action is None:
            return None
        return NotificationAction(url=self.action.url, label=self.action.label)


class NotificationRead(BaseModel):
    """Representation of a notification delivered to one of its recipients."""

    id: str
    title: str
    message: str
    notification_type: str
    priority: str
    action: NotificationActionSchema | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_by: str | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None
    read_at: datetime | None = None
    dismissed_at: datetime | None = None
    is_read: bool = False
    is_dismissed: bool = False

    @classmethod
    def from_entry(cls, entry: InboxEntry) -> "NotificationRead":
        notification = entry.notification
        return cls(
            **_base_fields(notification),
            read_at=entry.state.read_at,
            dismissed_at=entry.state.dismissed_at,
            is_read=entry.state.is_read,
            is_dismissed=entry.state.is_dismissed,
        )


class NotificationDetailRead(BaseModel):
    """Creator-facing view including the targeting rule and recipient count."""

    id: str
    title: str
    message: str
    notification_type: str
    priority: str
    action: NotificationActionSchema | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_by: str | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None
    target: TargetSpecSchema
    recipient_count: int

    @classmethod
    def from_entity(cls, notification: Notification) -> "NotificationDetailRead":
        return cls(
            **_base_fields(notification),
            target=TargetSpecSchema(**notification.target.to_dict()),
            recipient_count=len(notification.recipients),
        )


class NotificationPageRead(BaseModel):
    items: list[NotificationRead]
    total: int
    page: int
    page_size: int

    @classmethod
    def from_page(cls, page: NotificationPage) -> "NotificationPageRead":
        return cls(
            items=[NotificationRead.from_entry(entry) for entry in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )


class UnreadCountRead(BaseModel):
    count: int


class DeliveryFaultRead(BaseModel):
    principal_id: str | None = None
    connection_id: str
    reason: str


class DeliveryReportRead(BaseModel):
    """Per-connection outcome of a realtime push."""

    notification_id: str | None = None
    delivered: dict[str, list[str]] = Field(default_factory=dict)
    deferred: list[str] = Field(default_factory=list)
    faults: list[DeliveryFaultRead] = Field(default_factory=list)
    expired: bool = False
    delivered_connections: int = 0

    @classmethod
    def from_report(cls, report: DeliveryReport) -> "DeliveryReportRead":
        return cls(
            notification_id=report.notification_id,
            delivered={key: list(value) for key, value in report.delivered.items()},
            deferred=list(report.deferred),
            faults=[
                DeliveryFaultRead(
                    principal_id=fault.principal_id,
                    connection_id=fault.connection_id,
                    reason=fault.reason,
                )
                for fault in report.faults
            ],
            expired=report.expired,
            delivered_connections=report.delivered_connections,
        )


class NotificationCreateResponse(BaseModel):
    notification: NotificationDetailRead
    report: DeliveryReportRead


class MarkAllReadResponse(BaseModel):
    updated: list[str]
    unread_count: int


def _base_fields(notification: Notification) -> dict[str, Any]:
    action = None
    if notification.action is not None:
        action = NotificationActionSchema(
            url=notification.action.url, label=notification.action.label
        )
    return {
        "id": notification.id or "",
        "title": notification.title,
        "message": notification.message,
        "notification_type": notification.notification_type,
        "priority": notification.priority,
        "action": action,
        "payload": dict(notification.payload or {}),
        "created_by": notification.created_by,
        "created_at": notification.created_at,
        "expires_at": notification.expires_at,
    }


__all__ = [
    "DeliveryFaultRead",
    "DeliveryReportRead",
    "MarkAllReadResponse",
    "NotificationActionSchema",
    "NotificationCreate",
    "NotificationCreateResponse",
    "NotificationDetailRead",
    "NotificationPageRead",
    "NotificationRead",
    "TargetSpecSchema",
    "UnreadCountRead",
]
