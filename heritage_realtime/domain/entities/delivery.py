"""Outcome records produced by realtime fan-out."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DeliveryFault:
    """A connection that could not accept a message."""

    principal_id: str | None
    connection_id: str
    reason: str


@dataclass
class DeliveryReport:
    """Per-connection result of pushing one message to its recipients.

    ``delivered`` maps principal ids to the connections whose outbound buffer
    accepted the message. ``deferred`` lists recipients without any accepting
    connection; they reconcile through the store on their next query.
    """

    notification_id: str | None = None
    delivered: dict[str, list[str]] = field(default_factory=dict)
    deferred: list[str] = field(default_factory=list)
    faults: list[DeliveryFault] = field(default_factory=list)
    expired: bool = False

    @property
    def delivered_connections(self) -> int:
        return sum(len(connection_ids) for connection_ids in self.delivered.values())

    def record_delivery(self, principal_id: str, connection_id: str) -> None:
        self.delivered.setdefault(principal_id, []).append(connection_id)

    def record_fault(self, principal_id: str | None, connection_id: str, reason: str) -> None:
        self.faults.append(
            DeliveryFault(principal_id=principal_id, connection_id=connection_id, reason=reason)
        )


__all__ = ["DeliveryFault", "DeliveryReport"]
