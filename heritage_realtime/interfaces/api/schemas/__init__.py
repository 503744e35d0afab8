from .notification import (
    DeliveryFaultRead,
    DeliveryReportRead,
    MarkAllReadResponse,
    NotificationActionSchema,
    NotificationCreate,
    NotificationCreateResponse,
    NotificationDetailRead,
    NotificationPageRead,
    NotificationRead,
    TargetSpecSchema,
    UnreadCountRead,
)
from .realtime import (
    ClientFrame,
    NotificationIdPayload,
    PresenceRead,
    RealtimeStatsRead,
    RoomPayload,
    SystemNotificationCreate,
)

__all__ = [
    "ClientFrame",
    "DeliveryFaultRead",
    "DeliveryReportRead",
    "MarkAllReadResponse",
    "NotificationActionSchema",
    "NotificationCreate",
    "NotificationCreateResponse",
    "NotificationDetailRead",
    "NotificationIdPayload",
    "NotificationPageRead",
    "NotificationRead",
    "PresenceRead",
    "RealtimeStatsRead",
    "RoomPayload",
    "SystemNotificationCreate",
    "TargetSpecSchema",
    "UnreadCountRead",
]
