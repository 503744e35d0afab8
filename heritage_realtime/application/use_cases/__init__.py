"""Aggregate application use cases."""

from .notifications import NotificationService, NotificationStore

__all__ = [
    "NotificationService",
    "NotificationStore",
]
