"""ORM models used by the application infrastructure."""

from .notification import NotificationModel, NotificationRecipientModel
from .principal import PrincipalModel

__all__ = [
    "NotificationModel",
    "NotificationRecipientModel",
    "PrincipalModel",
]
