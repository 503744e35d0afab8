"""Error taxonomy shared by the realtime layer and the HTTP interface."""

from __future__ import annotations

from typing import Any


class NotificationError(Exception):
    """Base class for all notification service errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class AuthenticationError(NotificationError):
    """Raised when a connect-time or request credential cannot be verified."""

    code = "AUTH_FAILED"
    status_code = 401


class NotificationNotFoundError(NotificationError):
    """Raised when a notification is missing or the caller is not a recipient."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, notification_id: str) -> None:
        super().__init__(
            f"Notification {notification_id} not found",
            details={"notification_id": notification_id},
        )


class InvalidTargetError(NotificationError):
    """Raised when a targeting rule resolves to zero recipients."""

    code = "INVALID_TARGET"
    status_code = 422


class ForbiddenError(NotificationError):
    """Raised when the caller's role does not allow the requested operation."""

    code = "FORBIDDEN"
    status_code = 403


class ForbiddenRoomOperationError(NotificationError):
    """Raised when a client tries to join or leave an auto-membership room."""

    code = "FORBIDDEN_ROOM_OPERATION"
    status_code = 403

    def __init__(self, room: str, operation: str) -> None:
        super().__init__(
            f"Cannot {operation} room {room}",
            details={"room": room, "operation": operation},
        )


class TransportFaultError(NotificationError):
    """Raised when a single connection fails to accept an outbound message."""

    code = "TRANSPORT_FAULT"
    status_code = 502


class InvalidMessageError(NotificationError):
    """Raised when a client frame does not follow the event protocol."""

    code = "INVALID_MESSAGE"
    status_code = 400


class NotificationStoreError(NotificationError):
    """Raised when the notification store cannot complete a durable operation."""

    code = "STORE_UNAVAILABLE"
    status_code = 503


__all__ = [
    "AuthenticationError",
    "ForbiddenError",
    "ForbiddenRoomOperationError",
    "InvalidMessageError",
    "InvalidTargetError",
    "NotificationError",
    "NotificationNotFoundError",
    "NotificationStoreError",
    "TransportFaultError",
]
