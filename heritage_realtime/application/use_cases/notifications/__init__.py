"""Use cases for persisting and delivering notifications."""

from .events import (
    RENTAL_APPROVED,
    RENTAL_REJECTED,
    notify_content_approved,
    notify_rental_decision,
    notify_rental_requested,
    notify_security_alert,
)
from .service import CreatedNotification, NotificationService
from .store import NotificationStore

__all__ = [
    "CreatedNotification",
    "NotificationService",
    "NotificationStore",
    "RENTAL_APPROVED",
    "RENTAL_REJECTED",
    "notify_content_approved",
    "notify_rental_decision",
    "notify_rental_requested",
    "notify_security_alert",
]
