"""Durable notification storage with targeting resolution."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from heritage_realtime.config import Settings, get_settings
from heritage_realtime.domain.entities import (
    PRIORITIES,
    PRIORITY_MEDIUM,
    InboxEntry,
    Notification,
    NotificationAction,
    NotificationPage,
    RoleRoom,
    Room,
    TargetSpec,
    TenantRoom,
    TopicRoom,
    UserRoom,
)
from heritage_realtime.domain.exceptions import (
    InvalidTargetError,
    NotificationNotFoundError,
    NotificationStoreError,
)
from heritage_realtime.infrastructure.repositories import (
    NotificationRepository,
    PrincipalRepository,
)
from heritage_realtime.utils import to_utc, utcnow

logger = logging.getLogger(__name__)

LiveMembers = Callable[[Room], set[str]]


class NotificationStore:
    """Persist notifications and the consumption state of their recipients.

    Targeting rules are resolved once, when the notification is created.
    ``live_members`` returns the principals currently connected to a room; it
    is how role and tenant rooms reach principals missing from the directory
    and the only source of recipients for topic rooms.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        live_members: LiveMembers | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._live_members = live_members or (lambda room: set())
        self._settings = settings or get_settings()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Notification store failure: %s", exc)
            raise NotificationStoreError(
                "Notification store is unavailable", details={"reason": exc.__class__.__name__}
            ) from exc
        finally:
            session.close()

    def create(
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
        now: datetime | None = None,
    ) -> Notification:
        """Resolve ``target`` and persist the notification for every recipient."""

        if priority not in PRIORITIES:
            raise ValueError(f"Unknown priority: {priority}")
        if target.is_empty():
            raise InvalidTargetError("Targeting rule names no recipients or rooms")
        with self._session() as session:
            recipients = self.resolve_recipients(session, target)
            if not recipients:
                raise InvalidTargetError(
                    "Targeting rule resolved to no recipients", details=target.to_dict()
                )
            notification = Notification(
                id=None,
                title=title,
                message=message,
                notification_type=notification_type,
                target=target,
                priority=priority,
                action=action,
                payload=dict(payload or {}),
                created_by=created_by,
                created_at=now or utcnow(),
                expires_at=to_utc(expires_at),
            )
            saved = NotificationRepository(session).create(notification, recipients)
        logger.info(
            "Notification %s (%s) created for %d recipient(s)",
            saved.id,
            saved.notification_type,
            len(saved.recipients),
        )
        return saved

    def resolve_recipients(self, session: Session, target: TargetSpec) -> set[str]:
        recipients = set(target.principal_ids)
        directory = PrincipalRepository(session)
        for room in target.rooms():
            recipients |= self._resolve_room(directory, room)
        return recipients

    def _resolve_room(self, directory: PrincipalRepository, room: Room) -> set[str]:
        if isinstance(room, UserRoom):
            return {room.principal_id}
        if isinstance(room, RoleRoom):
            return directory.list_active_ids_by_role(room.role) | self._live_members(room)
        if isinstance(room, TenantRoom):
            return directory.list_active_ids_by_tenant(room.tenant_id) | self._live_members(room)
        if isinstance(room, TopicRoom):
            return set(self._live_members(room))
        raise TypeError(f"Unsupported room variant: {room!r}")

    def get(self, notification_id: str) -> Notification:
        with self._session() as session:
            notification = NotificationRepository(session).get(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    def mark_read(
        self, notification_id: str, principal_id: str, *, at: datetime | None = None
    ) -> InboxEntry:
        """Mark ``notification_id`` as read; the first read timestamp is kept."""

        with self._session() as session:
            entry = NotificationRepository(session).mark_read(
                notification_id, principal_id, at=at or utcnow()
            )
        if entry is None:
            raise NotificationNotFoundError(notification_id)
        return entry

    def dismiss(
        self, notification_id: str, principal_id: str, *, at: datetime | None = None
    ) -> InboxEntry:
        with self._session() as session:
            entry = NotificationRepository(session).dismiss(
                notification_id, principal_id, at=at or utcnow()
            )
        if entry is None:
            raise NotificationNotFoundError(notification_id)
        return entry

    def mark_all_read(self, principal_id: str, *, at: datetime | None = None) -> list[str]:
        with self._session() as session:
            return NotificationRepository(session).mark_all_read(
                principal_id, at=at or utcnow()
            )

    def unread_count(self, principal_id: str, *, now: datetime | None = None) -> int:
        with self._session() as session:
            return NotificationRepository(session).count_unread(
                principal_id, now=now or utcnow()
            )

    def list_for(
        self,
        principal_id: str,
        *,
        page: int = 1,
        page_size: int | None = None,
        include_expired: bool = False,
        include_dismissed: bool = False,
        unread_only: bool = False,
        now: datetime | None = None,
    ) -> NotificationPage:
        """Return one newest-first page of the principal's notifications."""

        page = max(page, 1)
        page_size = min(
            max(page_size or self._settings.default_page_size, 1),
            self._settings.max_page_size,
        )
        with self._session() as session:
            entries, total = NotificationRepository(session).list_for_principal(
                principal_id,
                now=now or utcnow(),
                offset=(page - 1) * page_size,
                limit=page_size,
                include_expired=include_expired,
                include_dismissed=include_dismissed,
                unread_only=unread_only,
            )
        return NotificationPage(items=list(entries), total=total, page=page, page_size=page_size)

    def sweep_expired(self, before: datetime) -> int:
        """Delete notifications that expired at or before ``before``."""

        with self._session() as session:
            return NotificationRepository(session).delete_expired(before=before)


__all__ = ["LiveMembers", "NotificationStore"]
