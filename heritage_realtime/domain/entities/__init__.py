"""Domain entities exposed by the application."""

from .delivery import DeliveryFault, DeliveryReport
from .notification import (
    PRIORITIES,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    PRIORITY_URGENT,
    InboxEntry,
    Notification,
    NotificationAction,
    NotificationPage,
    RecipientState,
    TargetSpec,
)
from .principal import (
    ROLE_MUSEUM_ADMIN,
    ROLE_ORGANIZER,
    ROLE_SUPER_ADMIN,
    ROLE_VISITOR,
    DirectoryEntry,
    Principal,
)
from .room import (
    Room,
    RoleRoom,
    TenantRoom,
    TopicRoom,
    UserRoom,
    is_auto_membership,
    parse_room,
)

__all__ = [
    "DeliveryFault",
    "DeliveryReport",
    "DirectoryEntry",
    "InboxEntry",
    "Notification",
    "NotificationAction",
    "NotificationPage",
    "PRIORITIES",
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_MEDIUM",
    "PRIORITY_URGENT",
    "Principal",
    "ROLE_MUSEUM_ADMIN",
    "ROLE_ORGANIZER",
    "ROLE_SUPER_ADMIN",
    "ROLE_VISITOR",
    "RecipientState",
    "Room",
    "RoleRoom",
    "TargetSpec",
    "TenantRoom",
    "TopicRoom",
    "UserRoom",
    "is_auto_membership",
    "parse_room",
]
