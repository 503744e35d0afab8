"""Realtime notification helpers for the infrastructure layer."""

from .connection import (
    CLOSE_GOING_AWAY,
    CLOSE_INTERNAL_ERROR,
    CLOSE_NORMAL,
    CLOSE_POLICY_VIOLATION,
    CLOSE_TRY_AGAIN_LATER,
    Connection,
    ConnectionState,
)
from .dispatcher import DeliveryDispatcher
from .housekeeping import ExpirySweeper, HeartbeatMonitor
from .hub import RealtimeHub
from .publisher import NotificationPublisher
from .registry import ConnectionRegistry
from .rooms import RoomMembership, auto_rooms_for
from .tours import TourEventPublisher

__all__ = [
    "CLOSE_GOING_AWAY",
    "CLOSE_INTERNAL_ERROR",
    "CLOSE_NORMAL",
    "CLOSE_POLICY_VIOLATION",
    "CLOSE_TRY_AGAIN_LATER",
    "Connection",
    "ConnectionRegistry",
    "ConnectionState",
    "DeliveryDispatcher",
    "ExpirySweeper",
    "HeartbeatMonitor",
    "NotificationPublisher",
    "RealtimeHub",
    "RoomMembership",
    "TourEventPublisher",
    "auto_rooms_for",
]
