"""Fan-out of notifications and events to live connections."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from heritage_realtime.domain.entities import DeliveryReport, Notification, Room
from heritage_realtime.domain.exceptions import NotificationError, TransportFaultError
from heritage_realtime.utils import utcnow

from . import protocol
from .connection import Connection
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)

UnreadCounter = Callable[[str], int]


class DeliveryDispatcher:
    """Push messages to every live connection of the targeted principals.

    Sends only enqueue into each connection's outbound buffer, so a slow or
    broken connection never delays the others. Every per-connection outcome is
    recorded in the returned :class:`DeliveryReport`.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        unread_counter: UnreadCounter | None = None,
    ) -> None:
        self._registry = registry
        self._unread_counter = unread_counter

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    def set_unread_counter(self, unread_counter: UnreadCounter) -> None:
        self._unread_counter = unread_counter

    async def dispatch(
        self, notification: Notification, *, now: datetime | None = None
    ) -> DeliveryReport:
        """Deliver ``new-notification`` to each recipient's live connections."""

        report = DeliveryReport(notification_id=notification.id)
        if notification.is_expired(now or utcnow()):
            report.expired = True
            logger.info("Notification %s already expired; not pushed", notification.id)
            return report

        message = protocol.new_notification_message(notification)
        reached: list[str] = []
        for principal_id in sorted(notification.recipient_ids):
            if self._send_to_principal(principal_id, message, report):
                reached.append(principal_id)
            else:
                report.deferred.append(principal_id)

        if reached:
            await self.push_unread_counts(reached)
        logger.debug(
            "Notification %s delivered to %d connection(s); %d deferred; %d fault(s)",
            notification.id,
            report.delivered_connections,
            len(report.deferred),
            len(report.faults),
        )
        return report

    async def push_unread_count(self, principal_id: str, count: int | None = None) -> DeliveryReport:
        """Send the current unread count to every live connection of ``principal_id``."""

        report = DeliveryReport()
        if not self._registry.is_online(principal_id):
            return report
        if count is None:
            if self._unread_counter is None:
                return report
            try:
                count = self._unread_counter(principal_id)
            except NotificationError as exc:
                logger.warning(
                    "Skipping unread count for %s: %s (%s)", principal_id, exc.message, exc.code
                )
                return report
        self._send_to_principal(principal_id, protocol.unread_count_message(count), report)
        return report

    async def push_unread_counts(self, principal_ids: Iterable[str]) -> DeliveryReport:
        report = DeliveryReport()
        for principal_id in dict.fromkeys(principal_ids):
            partial = await self.push_unread_count(principal_id)
            _merge(report, partial)
        return report

    async def push_state_change(
        self,
        event: str,
        notification_id: str,
        principal_id: str,
        *,
        at: datetime | None = None,
        with_unread_count: bool = True,
    ) -> DeliveryReport:
        """Sync a read or dismiss to all of the principal's connections.

        The state event is followed by the refreshed unread count on every
        connection, in that order.
        """

        message = protocol.state_change_message(event, notification_id, principal_id, at)
        report = DeliveryReport(notification_id=notification_id)
        if not self._send_to_principal(principal_id, message, report):
            report.deferred.append(principal_id)
            return report
        if with_unread_count:
            _merge(report, await self.push_unread_count(principal_id))
        return report

    async def push_to_principal(
        self, principal_id: str, event: str, payload: dict[str, Any] | None = None
    ) -> DeliveryReport:
        report = DeliveryReport()
        if not self._send_to_principal(principal_id, protocol.build_envelope(event, payload), report):
            report.deferred.append(principal_id)
        return report

    async def broadcast_to_rooms(
        self, rooms: Iterable[Room], event: str, payload: dict[str, Any] | None = None
    ) -> DeliveryReport:
        """Send one event to the members of ``rooms``, once per connection."""

        connections: dict[str, Connection] = {}
        for room in rooms:
            for connection in self._registry.rooms.members_of(room):
                connections.setdefault(connection.id, connection)
        report = DeliveryReport()
        message = protocol.build_envelope(event, payload)
        for connection in connections.values():
            self._send(connection, message, report)
        return report

    async def broadcast_all(
        self, event: str, payload: dict[str, Any] | None = None, *, message: dict[str, Any] | None = None
    ) -> DeliveryReport:
        report = DeliveryReport()
        frame = message or protocol.build_envelope(event, payload)
        for connection in self._registry.all_connections():
            self._send(connection, frame, report)
        logger.info(
            "Broadcast %s to %d connection(s)", event, report.delivered_connections
        )
        return report

    def _send_to_principal(
        self, principal_id: str, message: dict[str, Any], report: DeliveryReport
    ) -> bool:
        accepted = False
        for connection in self._registry.connections_for(principal_id):
            if self._send(connection, message, report):
                accepted = True
        return accepted

    @staticmethod
    def _send(connection: Connection, message: dict[str, Any], report: DeliveryReport) -> bool:
        principal_id = connection.principal.id if connection.principal else None
        if connection.is_closed:
            report.record_fault(principal_id, connection.id, "connection closed")
            return False
        try:
            accepted = connection.send(message)
        except Exception as exc:
            fault = TransportFaultError(
                str(exc) or exc.__class__.__name__, details={"connection_id": connection.id}
            )
            logger.warning(
                "%s sending %s to connection %s: %s",
                fault.code,
                message.get("event"),
                connection.id,
                fault.message,
            )
            report.record_fault(principal_id, connection.id, fault.message)
            return False
        if not accepted:
            report.record_fault(principal_id, connection.id, "send buffer overflow")
            return False
        if principal_id is not None:
            report.record_delivery(principal_id, connection.id)
        return True


def _merge(target: DeliveryReport, other: DeliveryReport) -> None:
    for principal_id, connection_ids in other.delivered.items():
        target.delivered.setdefault(principal_id, []).extend(connection_ids)
    target.deferred.extend(
        principal_id for principal_id in other.deferred if principal_id not in target.deferred
    )
    target.faults.extend(other.faults)


__all__ = ["DeliveryDispatcher", "UnreadCounter"]
