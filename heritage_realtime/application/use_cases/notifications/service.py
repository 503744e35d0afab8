"""Orchestration of notification persistence and realtime delivery."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from heritage_realtime.domain.entities import (
    PRIORITY_MEDIUM,
    DeliveryReport,
    InboxEntry,
    Notification,
    NotificationAction,
    NotificationPage,
    TargetSpec,
)
from heritage_realtime.infrastructure.notifications import DeliveryDispatcher, protocol
from heritage_realtime.utils import utcnow

from .store import NotificationStore

logger = logging.getLogger(__name__)


@dataclass
class CreatedNotification:
    notification: Notification
    report: DeliveryReport


class NotificationService:
    """Entry point used by HTTP routes, websocket sessions and collaborators."""

    def __init__(self, store: NotificationStore, dispatcher: DeliveryDispatcher) -> None:
        self.store = store
        self.dispatcher = dispatcher

    async def create_notification(
        self,
        *,
        title: str,
        message: str,
        notification_type: str,
        target: TargetSpec,
        priority: str = PRIORITY_MEDIUM,
        action: NotificationAction | None = None,
        payload: dict[str, Any] | None = None,
        created_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> CreatedNotification:
        """Persist a notification and push it to every online recipient."""

        notification = self.store.create(
            title=title,
            message=message,
            notification_type=notification_type,
            target=target,
            priority=priority,
            action=action,
            payload=payload,
            created_by=created_by,
            expires_at=expires_at,
        )
        report = await self.dispatcher.dispatch(notification)
        return CreatedNotification(notification=notification, report=report)

    async def mark_read(self, notification_id: str, principal_id: str) -> InboxEntry:
        entry = self.store.mark_read(notification_id, principal_id)
        await self.dispatcher.push_state_change(
            protocol.EVENT_NOTIFICATION_READ,
            notification_id,
            principal_id,
            at=entry.state.read_at,
        )
        return entry

    async def dismiss(self, notification_id: str, principal_id: str) -> InboxEntry:
        entry = self.store.dismiss(notification_id, principal_id)
        await self.dispatcher.push_state_change(
            protocol.EVENT_NOTIFICATION_DISMISSED,
            notification_id,
            principal_id,
            at=entry.state.dismissed_at,
        )
        return entry

    async def mark_all_read(self, principal_id: str) -> list[str]:
        at = utcnow()
        changed = self.store.mark_all_read(principal_id, at=at)
        for notification_id in changed:
            await self.dispatcher.push_state_change(
                protocol.EVENT_NOTIFICATION_READ,
                notification_id,
                principal_id,
                at=at,
                with_unread_count=False,
            )
        await self.push_unread_count(principal_id)
        return changed

    def unread_count(self, principal_id: str) -> int:
        return self.store.unread_count(principal_id)

    async def push_unread_count(self, principal_id: str) -> DeliveryReport:
        return await self.dispatcher.push_unread_count(
            principal_id, self.store.unread_count(principal_id)
        )

    def list_for(self, principal_id: str, **filters: Any) -> NotificationPage:
        return self.store.list_for(principal_id, **filters)

    async def broadcast_system(
        self,
        *,
        title: str,
        message: str,
        level: str = "info",
        created_by: str | None = None,
    ) -> DeliveryReport:
        """Send a transient ``system-notification`` to every live connection.

        System notifications are not persisted and do not affect unread counts.
        """

        notification = {
            "id": uuid.uuid4().hex,
            "title": title,
            "message": message,
            "level": level,
            "createdBy": created_by,
        }
        report = await self.dispatcher.broadcast_all(
            protocol.EVENT_SYSTEM_NOTIFICATION,
            message=protocol.system_notification_message(notification),
        )
        logger.info("System notification %s broadcast by %s", notification["id"], created_by)
        return report


__all__ = ["CreatedNotification", "NotificationService"]
