"""Repository implementations for infrastructure layer."""

from .notification_repository import NotificationRepository
from .principal_repository import PrincipalRepository

__all__ = [
    "NotificationRepository",
    "PrincipalRepository",
]
