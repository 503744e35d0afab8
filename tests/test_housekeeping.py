"""Tests for the heartbeat monitor, expiry sweeper, hub and publisher."""

import asyncio
import threading
import time
from datetime import timedelta

import pytest

from heritage_realtime.application.use_cases.notifications import (
    RENTAL_APPROVED,
    notify_content_approved,
    notify_rental_decision,
    notify_rental_requested,
    notify_security_alert,
)
from heritage_realtime.config import Settings
from heritage_realtime.domain.entities import Principal, TargetSpec
from heritage_realtime.infrastructure.notifications import (
    CLOSE_GOING_AWAY,
    ExpirySweeper,
    HeartbeatMonitor,
    NotificationPublisher,
    RealtimeHub,
)
from heritage_realtime.utils import utcnow

pytestmark = pytest.mark.anyio

VISITOR = Principal("visitor-1", "visitor")


async def test_heartbeat_pings_active_and_closes_idle_connections(registry, connect):
    fresh, fresh_socket = connect(VISITOR)
    stale, stale_socket = connect(Principal("visitor-2", "visitor"))
    monitor = HeartbeatMonitor(registry, interval=10, timeout=30)

    now = time.monotonic()
    stale._last_seen = now - 31
    fresh._last_seen = now - 5

    closed = await monitor.run_once(now=now)
    await fresh.drain()

    assert closed == 1
    assert stale.is_closed
    assert stale_socket.closed_with[0] == CLOSE_GOING_AWAY
    assert fresh_socket.events() == ["ping"]
    assert registry.connections_for("visitor-2") == frozenset()


async def test_expiry_sweeper_applies_grace_period(store):
    now = utcnow()
    target = TargetSpec.build(principal_ids=["visitor-1"])
    store.create(
        title="Old",
        message="gone",
        notification_type="info",
        target=target,
        expires_at=now - timedelta(days=3),
    )
    recent = store.create(
        title="Recent",
        message="kept",
        notification_type="info",
        target=target,
        expires_at=now - timedelta(hours=1),
    )
    sweeper = ExpirySweeper(store.sweep_expired, interval=60, grace=86400)

    removed = await sweeper.run_once(now=now)

    assert removed == 1
    assert store.get(recent.id).title == "Recent"


async def test_hub_stop_closes_connections_and_tasks():
    hub = RealtimeHub(Settings(heartbeat_interval_seconds=1, heartbeat_timeout_seconds=2))
    hub.attach_sweeper(lambda before: 0)

    await hub.start()
    assert hub.running

    await hub.stop()
    assert not hub.running
    assert hub.registry.online_count() == 0


async def test_publisher_schedules_on_the_running_loop(service, connect):
    connection, websocket = connect(VISITOR)
    publisher = NotificationPublisher(service.create_notification)

    task = publisher.publish(
        title="Hello",
        message="From a collaborator",
        notification_type="info",
        target=TargetSpec.build(principal_ids=["visitor-1"]),
    )
    created = await task
    await connection.drain()

    assert created.notification.title == "Hello"
    assert websocket.events() == ["new-notification", "unread-count"]


async def test_publisher_hops_onto_the_loop_from_a_plain_thread(service):
    publisher = NotificationPublisher(service.create_notification, asyncio.get_running_loop())
    results = []

    def worker():
        future = publisher.publish(
            title="Threaded",
            message="From a worker thread",
            notification_type="info",
            target=TargetSpec.build(principal_ids=["visitor-1"]),
        )
        results.append(future.result(timeout=5))

    thread = threading.Thread(target=worker)
    thread.start()
    while thread.is_alive():
        await asyncio.sleep(0.01)

    assert results[0].notification.title == "Threaded"
    assert service.unread_count("visitor-1") == 1


async def test_rental_helpers_target_museum_and_requester(service, directory):
    directory(Principal("admin-a", "museum_admin", "museum-1"))

    requested = await notify_rental_requested(
        service,
        rental_id="r1",
        museum_id="museum-1",
        artifact_title="Processional cross",
        requested_by="organizer-1",
    )
    decided = await notify_rental_decision(
        service,
        rental_id="r1",
        requester_id="organizer-1",
        artifact_title="Processional cross",
        decision=RENTAL_APPROVED,
        decided_by="admin-a",
    )

    assert requested.notification.recipient_ids == frozenset({"admin-a"})
    assert requested.notification.notification_type == "rental"
    assert requested.notification.action.url == "/museum/rentals/r1"
    assert decided.notification.recipient_ids == frozenset({"organizer-1"})
    assert decided.notification.title == "Rental approved"

    with pytest.raises(ValueError):
        await notify_rental_decision(
            service,
            rental_id="r1",
            requester_id="organizer-1",
            artifact_title="Processional cross",
            decision="maybe",
        )


async def test_content_and_security_helpers(service, directory):
    directory(Principal("root", "super_admin"), Principal("admin-a", "museum_admin", "museum-1"))

    approved = await notify_content_approved(
        service,
        author_id="curator-1",
        content_type="artifact",
        content_id="a1",
        content_title="Axum stele",
    )
    alert = await notify_security_alert(service, message="Repeated failed logins", museum_id="museum-1")

    assert approved.notification.priority == "high"
    assert approved.notification.recipient_ids == frozenset({"curator-1"})
    assert alert.notification.priority == "urgent"
    assert alert.notification.recipient_ids == frozenset({"root", "admin-a"})
