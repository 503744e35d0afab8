"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from heritage_realtime.domain.entities import (
    InboxEntry,
    Notification,
    NotificationAction,
    RecipientState,
    TargetSpec,
)
from heritage_realtime.infrastructure.models import (
    NotificationModel,
    NotificationRecipientModel,
)
from heritage_realtime.utils import (
    to_storage,
    to_utc,
    utcnow,
)


class NotificationRepository:
    """Provide CRUD and consumption-state operations for notifications."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, notification: Notification, recipient_ids: Iterable[str]) -> Notification:
        """Persist ``notification`` with an empty consumption entry per recipient."""

        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        model.recipients = [
            NotificationRecipientModel(principal_id=principal_id)
            for principal_id in sorted(set(recipient_ids))
        ]
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model, model.recipients)

    def get(self, notification_id: str) -> Notification | None:
        model = (
            self.session.query(NotificationModel)
            .options(selectinload(NotificationModel.recipients))
            .filter(NotificationModel.id == notification_id)
            .one_or_none()
        )
        return self._to_entity(model, model.recipients) if model else None

    def mark_read(
        self, notification_id: str, principal_id: str, *, at: datetime
    ) -> InboxEntry | None:
        """Record the first read of ``notification_id`` by ``principal_id``."""

        row = self._get_recipient_row(notification_id, principal_id)
        if row is None:
            return None
        recipient, model = row
        if recipient.read_at is None:
            recipient.read_at = to_storage(at)
            self.session.add(recipient)
            self.session.commit()
            self.session.refresh(recipient)
        return self._to_inbox_entry(model, recipient)

    def dismiss(
        self, notification_id: str, principal_id: str, *, at: datetime
    ) -> InboxEntry | None:
        """Record the dismissal of ``notification_id``; dismissal implies a read."""

        row = self._get_recipient_row(notification_id, principal_id)
        if row is None:
            return None
        recipient, model = row
        changed = False
        if recipient.read_at is None:
            recipient.read_at = to_storage(at)
            changed = True
        if recipient.dismissed_at is None:
            recipient.dismissed_at = to_storage(at)
            changed = True
        if changed:
            self.session.add(recipient)
            self.session.commit()
            self.session.refresh(recipient)
        return self._to_inbox_entry(model, recipient)

    def mark_all_read(self, principal_id: str, *, at: datetime) -> list[str]:
        """Mark every unread, unexpired notification as read and return their ids."""

        query = self._recipient_query(principal_id)
        query = self._exclude_expired(query, at)
        query = query.filter(NotificationRecipientModel.read_at.is_(None))
        stamp = to_storage(at)
        updated: list[str] = []
        for recipient, model in query.all():
            recipient.read_at = stamp
            self.session.add(recipient)
            updated.append(model.id)
        if updated:
            self.session.commit()
        return updated

    def count_unread(self, principal_id: str, *, now: datetime) -> int:
        query = (
            self.session.query(func.count(NotificationRecipientModel.id))
            .join(
                NotificationModel,
                NotificationRecipientModel.notification_id == NotificationModel.id,
            )
            .filter(NotificationRecipientModel.principal_id == principal_id)
            .filter(NotificationRecipientModel.read_at.is_(None))
        )
        query = self._exclude_expired(query, now)
        return int(query.scalar() or 0)

    def list_for_principal(
        self,
        principal_id: str,
        *,
        now: datetime,
        offset: int = 0,
        limit: int | None = 20,
        include_expired: bool = False,
        include_dismissed: bool = False,
        unread_only: bool = False,
    ) -> tuple[Sequence[InboxEntry], int]:
        query = self._recipient_query(principal_id)
        if not include_expired:
            query = self._exclude_expired(query, now)
        if not include_dismissed:
            query = query.filter(NotificationRecipientModel.dismissed_at.is_(None))
        if unread_only:
            query = query.filter(NotificationRecipientModel.read_at.is_(None))

        total = query.count()
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        ).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        entries = [self._to_inbox_entry(model, recipient) for recipient, model in query.all()]
        return entries, total

    def delete_expired(self, *, before: datetime) -> int:
        """Delete notifications whose expiry is older than ``before``."""

        cutoff = to_storage(before)
        expired_ids = [
            notification_id
            for (notification_id,) in self.session.query(NotificationModel.id)
            .filter(NotificationModel.expires_at.is_not(None))
            .filter(NotificationModel.expires_at <= cutoff)
            .all()
        ]
        if not expired_ids:
            return 0
        self.session.query(NotificationRecipientModel).filter(
            NotificationRecipientModel.notification_id.in_(expired_ids)
        ).delete(synchronize_session=False)
        self.session.query(NotificationModel).filter(
            NotificationModel.id.in_(expired_ids)
        ).delete(synchronize_session=False)
        self.session.commit()
        return len(expired_ids)

    def _recipient_query(self, principal_id: str) -> Query:
        return (
            self.session.query(NotificationRecipientModel, NotificationModel)
            .join(
                NotificationModel,
                NotificationRecipientModel.notification_id == NotificationModel.id,
            )
            .filter(NotificationRecipientModel.principal_id == principal_id)
        )

    def _get_recipient_row(
        self, notification_id: str, principal_id: str
    ) -> tuple[NotificationRecipientModel, NotificationModel] | None:
        return (
            self._recipient_query(principal_id)
            .filter(NotificationModel.id == notification_id)
            .one_or_none()
        )

    @staticmethod
    def _exclude_expired(query: Query, now: datetime) -> Query:
        cutoff = to_storage(now)
        return query.filter(
            or_(NotificationModel.expires_at.is_(None), NotificationModel.expires_at > cutoff)
        )

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        if notification.id:
            model.id = notification.id
        model.title = notification.title
        model.message = notification.message
        model.notification_type = notification.notification_type
        model.priority = notification.priority
        model.target = notification.target.to_dict()
        model.action_url = notification.action.url if notification.action else None
        model.action_label = notification.action.label if notification.action else None
        model.payload = notification.payload or {}
        model.created_by = notification.created_by
        model.created_at = to_storage(
            notification.created_at or utcnow()
        )
        model.expires_at = to_storage(notification.expires_at)

    @staticmethod
    def _to_state(recipient: NotificationRecipientModel) -> RecipientState:
        return RecipientState(
            principal_id=recipient.principal_id,
            read_at=to_utc(recipient.read_at),
            dismissed_at=to_utc(recipient.dismissed_at),
        )

    @classmethod
    def _to_entity(
        cls,
        model: NotificationModel,
        recipients: Iterable[NotificationRecipientModel],
    ) -> Notification:
        action = None
        if model.action_url:
            action = NotificationAction(url=model.action_url, label=model.action_label or "")
        return Notification(
            id=model.id,
            title=model.title,
            message=model.message,
            notification_type=model.notification_type,
            target=TargetSpec.from_dict(model.target),
            priority=model.priority,
            action=action,
            payload=dict(model.payload or {}),
            created_by=model.created_by,
            created_at=to_utc(model.created_at),
            expires_at=to_utc(model.expires_at),
            recipients={
                recipient.principal_id: cls._to_state(recipient) for recipient in recipients
            },
        )

    @classmethod
    def _to_inbox_entry(
        cls, model: NotificationModel, recipient: NotificationRecipientModel
    ) -> InboxEntry:
        # Only the requesting principal's state is loaded for inbox views.
        notification = cls._to_entity(model, [recipient])
        return InboxEntry(notification=notification, state=notification.recipients[recipient.principal_id])


__all__ = ["NotificationRepository"]
