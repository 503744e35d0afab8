"""Tests for tour-list change broadcasts."""

import pytest

from heritage_realtime.domain.entities import Principal, TopicRoom
from heritage_realtime.infrastructure.notifications import TourEventPublisher

pytestmark = pytest.mark.anyio

TOUR = {"id": "t1", "title": "Lalibela at dawn", "organizer": "org-9", "status": "draft"}


@pytest.fixture
def tours(dispatcher):
    return TourEventPublisher(dispatcher)


@pytest.fixture
async def subscribers(registry, connect):
    """One connection per tour topic, keyed by topic name."""

    sockets = {}
    connections = []
    for index, topic in enumerate(["tours-list", "tour-t1", "organizer-tours-org-9"]):
        connection, websocket = connect(Principal(f"p{index}", "visitor"))
        registry.rooms.join(connection, TopicRoom(topic))
        sockets[topic] = websocket
        connections.append(connection)
    return sockets, connections


async def _drain(connections):
    for connection in connections:
        await connection.drain()


async def test_tour_created_reaches_list_and_organizer(tours, subscribers):
    sockets, connections = subscribers

    report = await tours.tour_created(TOUR, created_by="org-9")
    await _drain(connections)

    assert report.delivered_connections == 2
    assert sockets["tours-list"].events() == ["tour-created"]
    assert sockets["organizer-tours-org-9"].events() == ["tour-created"]
    assert sockets["tour-t1"].sent == []
    payload = sockets["tours-list"].sent[0]["payload"]
    assert payload["tour"]["id"] == "t1"
    assert payload["createdBy"] == "org-9"


async def test_tour_updated_reaches_every_related_topic(tours, subscribers):
    sockets, connections = subscribers

    await tours.tour_updated(TOUR)
    await _drain(connections)

    assert all(websocket.events() == ["tour-updated"] for websocket in sockets.values())


async def test_tour_deleted_uses_identifiers(tours, subscribers):
    sockets, connections = subscribers

    await tours.tour_deleted("t1", organizer_id="org-9", deleted_by="admin-1")
    await _drain(connections)

    assert sockets["tour-t1"].sent[0]["payload"]["tourId"] == "t1"
    assert all(websocket.events() == ["tour-deleted"] for websocket in sockets.values())


@pytest.mark.parametrize(
    ("old_status", "new_status", "list_notified"),
    [("draft", "published", True), ("published", "cancelled", True), ("draft", "review", False)],
)
async def test_status_change_reaches_list_only_for_publication(
    tours, subscribers, old_status, new_status, list_notified
):
    sockets, connections = subscribers

    await tours.tour_status_changed(TOUR, old_status, new_status)
    await _drain(connections)

    assert sockets["tour-t1"].events() == ["tour-status-changed"]
    assert (sockets["tours-list"].events() == ["tour-status-changed"]) is list_notified
    assert sockets["organizer-tours-org-9"].sent == []


async def test_booking_update_skips_public_list(tours, subscribers):
    sockets, connections = subscribers

    await tours.tour_booking_updated({"id": "b1", "seats": 2}, TOUR)
    await _drain(connections)

    assert sockets["tour-t1"].events() == ["tour-booking-update"]
    assert sockets["organizer-tours-org-9"].events() == ["tour-booking-update"]
    assert sockets["tours-list"].sent == []


async def test_tours_refresh_reaches_list_subscribers(tours, subscribers):
    sockets, connections = subscribers

    await tours.tours_refresh()
    await _drain(connections)

    assert sockets["tours-list"].events() == ["tours-refresh"]
    assert sockets["tour-t1"].sent == []
