"""Broadcast tour-list change events to subscribed connections."""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping

from heritage_realtime.domain.entities import DeliveryReport, Room, TopicRoom
from heritage_realtime.utils import utcnow

from .dispatcher import DeliveryDispatcher

logger = logging.getLogger(__name__)

TOPIC_TOURS_LIST = "tours-list"
TOPIC_TOURS_ORGANIZERS = "tours-organizers"

EVENT_TOUR_CREATED = "tour-created"
EVENT_TOUR_UPDATED = "tour-updated"
EVENT_TOUR_DELETED = "tour-deleted"
EVENT_TOUR_STATUS_CHANGED = "tour-status-changed"
EVENT_TOUR_BOOKING_UPDATE = "tour-booking-update"
EVENT_TOURS_REFRESH = "tours-refresh"

PUBLISHED_STATUS = "published"


def tour_topic(tour_id: str) -> str:
    return f"tour-{tour_id}"


def organizer_topic(organizer_id: str) -> str:
    return f"organizer-tours-{organizer_id}"


def _tour_id(tour: Mapping[str, Any]) -> str | None:
    value = tour.get("id") or tour.get("_id")
    return str(value) if value else None


def _organizer_id(tour: Mapping[str, Any]) -> str | None:
    value = tour.get("organizer") or tour.get("organizer_id") or tour.get("organizerId")
    return str(value) if value else None


class TourEventPublisher:
    """Translate tour lifecycle changes into topic room broadcasts.

    Clients subscribe with ``join-room`` to ``topic:tours-list`` for the public
    listing, ``topic:tour-{id}`` for a single tour, and
    ``topic:organizer-tours-{id}`` for everything owned by an organizer.
    """

    def __init__(self, dispatcher: DeliveryDispatcher) -> None:
        self._dispatcher = dispatcher

    async def tour_created(
        self, tour: Mapping[str, Any], *, created_by: str | None = None
    ) -> DeliveryReport:
        rooms = [TopicRoom(TOPIC_TOURS_LIST)]
        rooms.extend(self._organizer_rooms(tour))
        return await self._broadcast(
            rooms, EVENT_TOUR_CREATED, {"tour": copy.deepcopy(dict(tour)), "createdBy": created_by}
        )

    async def tour_updated(
        self, tour: Mapping[str, Any], *, updated_by: str | None = None
    ) -> DeliveryReport:
        rooms = self._tour_rooms(tour)
        rooms.append(TopicRoom(TOPIC_TOURS_LIST))
        rooms.extend(self._organizer_rooms(tour))
        return await self._broadcast(
            rooms, EVENT_TOUR_UPDATED, {"tour": copy.deepcopy(dict(tour)), "updatedBy": updated_by}
        )

    async def tour_deleted(
        self,
        tour_id: str,
        *,
        organizer_id: str | None = None,
        deleted_by: str | None = None,
    ) -> DeliveryReport:
        rooms: list[Room] = [TopicRoom(tour_topic(tour_id)), TopicRoom(TOPIC_TOURS_LIST)]
        if organizer_id:
            rooms.append(TopicRoom(organizer_topic(organizer_id)))
        return await self._broadcast(
            rooms, EVENT_TOUR_DELETED, {"tourId": tour_id, "deletedBy": deleted_by}
        )

    async def tour_status_changed(
        self, tour: Mapping[str, Any], old_status: str, new_status: str
    ) -> DeliveryReport:
        """Notify tour subscribers; the public listing only hears about publication changes."""

        rooms = self._tour_rooms(tour)
        if PUBLISHED_STATUS in (old_status, new_status):
            rooms.append(TopicRoom(TOPIC_TOURS_LIST))
        return await self._broadcast(
            rooms,
            EVENT_TOUR_STATUS_CHANGED,
            {
                "tour": copy.deepcopy(dict(tour)),
                "oldStatus": old_status,
                "newStatus": new_status,
            },
        )

    async def tour_booking_updated(
        self, booking: Mapping[str, Any], tour: Mapping[str, Any]
    ) -> DeliveryReport:
        rooms = self._tour_rooms(tour)
        rooms.extend(self._organizer_rooms(tour))
        return await self._broadcast(
            rooms,
            EVENT_TOUR_BOOKING_UPDATE,
            {"booking": copy.deepcopy(dict(booking)), "tour": copy.deepcopy(dict(tour))},
        )

    async def tours_refresh(self) -> DeliveryReport:
        return await self._broadcast(
            [TopicRoom(TOPIC_TOURS_LIST), TopicRoom(TOPIC_TOURS_ORGANIZERS)],
            EVENT_TOURS_REFRESH,
            {},
        )

    async def _broadcast(
        self, rooms: list[Room], event: str, payload: dict[str, Any]
    ) -> DeliveryReport:
        payload["timestamp"] = utcnow().isoformat()
        report = await self._dispatcher.broadcast_to_rooms(rooms, event, payload)
        logger.debug(
            "Tour event %s sent to %d connection(s) across %s",
            event,
            report.delivered_connections,
            ", ".join(room.name for room in rooms),
        )
        return report

    @staticmethod
    def _tour_rooms(tour: Mapping[str, Any]) -> list[Room]:
        tour_id = _tour_id(tour)
        return [TopicRoom(tour_topic(tour_id))] if tour_id else []

    @staticmethod
    def _organizer_rooms(tour: Mapping[str, Any]) -> list[Room]:
        organizer_id = _organizer_id(tour)
        return [TopicRoom(organizer_topic(organizer_id))] if organizer_id else []


__all__ = [
    "EVENT_TOURS_REFRESH",
    "EVENT_TOUR_BOOKING_UPDATE",
    "EVENT_TOUR_CREATED",
    "EVENT_TOUR_DELETED",
    "EVENT_TOUR_STATUS_CHANGED",
    "EVENT_TOUR_UPDATED",
    "TOPIC_TOURS_LIST",
    "TOPIC_TOURS_ORGANIZERS",
    "TourEventPublisher",
    "organizer_topic",
    "tour_topic",
]
