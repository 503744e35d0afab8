"""Integration tests for the notification HTTP endpoints and websocket."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import timedelta

import pytest

pytest.importorskip("fastapi")
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from heritage_realtime.domain.entities import Principal, TargetSpec
from heritage_realtime.domain.exceptions import NotificationStoreError
from heritage_realtime.infrastructure.security import create_access_token
from heritage_realtime.utils import utcnow

ADMIN = Principal("admin-1", "museum_admin", "museum-1")
SUPER = Principal("root", "super_admin")
VISITOR = Principal("visitor-1", "visitor")


@pytest.fixture()
def client():
    """Return a test client bound to a clean application instance."""

    from main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def _ws_url(principal: Principal) -> str:
    return f"/notifications/ws?token={create_access_token(principal)}"


@contextmanager
def _open(client: TestClient, principal: Principal):
    """Connect and consume the ``connected`` and initial ``unread-count`` frames."""

    with client.websocket_connect(_ws_url(principal)) as websocket:
        connected = websocket.receive_json()
        unread = websocket.receive_json()
        assert connected["event"] == "connected"
        assert unread["event"] == "unread-count"
        yield websocket, connected, unread


def _create(client, auth_headers, **overrides):
    body = {
        "title": "Exhibit opening",
        "message": "The new hall opens tomorrow",
        "notification_type": "announcement",
        "target": {"principal_ids": ["visitor-1"]},
    }
    body.update(overrides)
    return client.post("/notifications", json=body, headers=auth_headers(ADMIN))


def test_websocket_handshake_reports_identity_and_rooms(client):
    with _open(client, ADMIN) as (_, connected, unread):
        assert connected["payload"]["principalId"] == "admin-1"
        assert connected["payload"]["rooms"] == [
            "role:museum_admin",
            "tenant:museum-1",
            "user:admin-1",
        ]
        assert unread["payload"] == {"count": 0}
        assert "timestamp" in connected


def test_websocket_rejects_invalid_token(client):
    with client.websocket_connect("/notifications/ws?token=not-a-token") as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 1008
    assert exc_info.value.reason.startswith("AUTH_FAILED")


def test_websocket_accepts_authorization_header(client, auth_headers):
    with client.websocket_connect("/notifications/ws", headers=auth_headers(VISITOR)) as websocket:
        assert websocket.receive_json()["event"] == "connected"


def test_inactive_principal_cannot_connect(client, directory):
    directory(VISITOR, active=False)

    with client.websocket_connect(_ws_url(VISITOR)) as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 1008


def test_store_failure_during_setup_closes_with_internal_error(client, monkeypatch):
    store = client.app.state.notifications.store

    def unavailable(principal_id):
        raise NotificationStoreError("Notification store is unavailable")

    monkeypatch.setattr(store, "unread_count", unavailable)

    with client.websocket_connect(_ws_url(VISITOR)) as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 1011
    assert exc_info.value.reason.startswith("STORE_UNAVAILABLE")
    assert client.app.state.realtime.registry.online_count() == 0


def test_directory_failure_during_authentication_closes_with_internal_error(client, monkeypatch):
    from heritage_realtime.infrastructure.repositories import PrincipalRepository

    def broken_upsert(self, principal, **kwargs):
        raise OperationalError("UPDATE principals", {}, Exception("disk I/O error"))

    monkeypatch.setattr(PrincipalRepository, "upsert", broken_upsert)

    with client.websocket_connect(_ws_url(VISITOR)) as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 1011
    assert exc_info.value.reason.startswith("STORE_UNAVAILABLE")
    assert client.app.state.realtime.registry.online_count() == 0


def test_new_notification_and_dismiss_sync_across_tabs(client, auth_headers):
    with _open(client, VISITOR) as (tab_one, _, _), _open(client, VISITOR) as (tab_two, _, _):
        response = _create(client, auth_headers)
        assert response.status_code == 201
        body = response.json()
        notification_id = body["notification"]["id"]
        assert body["notification"]["recipient_count"] == 1
        assert len(body["report"]["delivered"]["visitor-1"]) == 2

        for tab in (tab_one, tab_two):
            pushed = tab.receive_json()
            assert pushed["event"] == "new-notification"
            assert pushed["payload"]["notification"]["id"] == notification_id
            assert tab.receive_json()["payload"] == {"count": 1}

        tab_one.send_json({"event": "dismiss", "payload": {"notificationId": notification_id}})

        for tab in (tab_one, tab_two):
            dismissed = tab.receive_json()
            assert dismissed["event"] == "notification-dismissed"
            assert dismissed["payload"]["notificationId"] == notification_id
            count = tab.receive_json()
            assert count["event"] == "unread-count"
            assert count["payload"] == {"count": 0}

    listing = client.get(
        "/notifications", params={"include_dismissed": True}, headers=auth_headers(VISITOR)
    )
    assert listing.status_code == 200
    item = listing.json()["items"][0]
    assert item["is_dismissed"] is True
    assert item["is_read"] is True


def test_role_fan_out_defers_offline_principals(client, auth_headers, directory):
    offline = Principal("admin-2", "museum_admin", "museum-2")
    directory(offline)

    with _open(client, ADMIN) as (websocket, _, _):
        response = _create(client, auth_headers, target={"roles": ["museum_admin"]})
        assert response.status_code == 201
        report = response.json()["report"]
        assert list(report["delivered"]) == ["admin-1"]
        assert report["deferred"] == ["admin-2"]
        assert websocket.receive_json()["event"] == "new-notification"

    count = client.get("/notifications/unread-count", headers=auth_headers(offline))
    assert count.json() == {"count": 1}


def test_mark_read_for_non_recipient_is_not_found(client, auth_headers):
    notification_id = _create(client, auth_headers).json()["notification"]["id"]
    outsider = Principal("visitor-2", "visitor")

    response = client.post(f"/notifications/{notification_id}/read", headers=auth_headers(outsider))
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"

    with _open(client, outsider) as (websocket, _, _):
        websocket.send_json({"event": "mark-read", "payload": {"notificationId": notification_id}})
        error = websocket.receive_json()

    assert error["event"] == "error"
    assert error["payload"]["code"] == "NOT_FOUND"
    assert error["payload"]["event"] == "mark-read"
    unread = client.get("/notifications/unread-count", headers=auth_headers(VISITOR))
    assert unread.json() == {"count": 1}


def test_mark_read_over_http_returns_the_callers_view(client, auth_headers):
    notification_id = _create(client, auth_headers).json()["notification"]["id"]

    response = client.post(f"/notifications/{notification_id}/read", headers=auth_headers(VISITOR))

    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["read_at"] is not None
    assert response.json()["is_dismissed"] is False


def test_leaving_an_auto_room_is_forbidden_but_topics_are_allowed(client):
    with _open(client, VISITOR) as (websocket, _, _):
        websocket.send_json({"event": "leave-room", "payload": {"room": "user:visitor-1"}})
        error = websocket.receive_json()
        assert error["event"] == "error"
        assert error["payload"]["code"] == "FORBIDDEN_ROOM_OPERATION"

        websocket.send_json({"event": "join-room", "payload": {"room": "topic:tours-list"}})
        joined = websocket.receive_json()
        assert joined["event"] == "room-joined"
        assert joined["payload"] == {"room": "topic:tours-list"}

        hub = client.app.state.realtime
        client.portal.call(hub.tours.tours_refresh)
        assert websocket.receive_json()["event"] == "tours-refresh"

        websocket.send_json({"event": "leave-room", "payload": {"room": "topic:tours-list"}})
        assert websocket.receive_json()["event"] == "room-left"


def test_malformed_frames_produce_errors_without_closing(client):
    with _open(client, VISITOR) as (websocket, _, _):
        websocket.send_text("not json")
        assert websocket.receive_json()["payload"]["code"] == "INVALID_MESSAGE"

        websocket.send_json({"event": "teleport"})
        assert websocket.receive_json()["payload"]["code"] == "INVALID_MESSAGE"

        websocket.send_json({"event": "mark-read", "payload": {}})
        assert websocket.receive_json()["payload"]["code"] == "INVALID_MESSAGE"

        websocket.send_json({"event": "join-room", "payload": {"room": "gallery"}})
        assert websocket.receive_json()["payload"]["code"] == "INVALID_MESSAGE"

        websocket.send_json({"event": "ping"})
        assert websocket.receive_json()["event"] == "pong"

        websocket.send_json({"event": "get-unread-count"})
        assert websocket.receive_json()["payload"] == {"count": 0}


def test_mark_all_read_over_http(client, auth_headers):
    _create(client, auth_headers)
    _create(client, auth_headers)

    response = client.post("/notifications/read-all", headers=auth_headers(VISITOR))

    assert response.status_code == 200
    assert len(response.json()["updated"]) == 2
    assert response.json()["unread_count"] == 0


def test_expired_notification_is_created_but_not_pushed(client, auth_headers):
    expires_at = (utcnow() - timedelta(minutes=5)).isoformat()

    response = _create(client, auth_headers, expires_at=expires_at)

    assert response.status_code == 201
    assert response.json()["report"]["expired"] is True
    listing = client.get("/notifications", headers=auth_headers(VISITOR)).json()
    assert listing["total"] == 0
    with_expired = client.get(
        "/notifications", params={"include_expired": True}, headers=auth_headers(VISITOR)
    ).json()
    assert with_expired["total"] == 1


def test_create_requires_admin_role_and_valid_target(client, auth_headers):
    forbidden = client.post(
        "/notifications",
        json={"title": "t", "message": "m", "target": {"principal_ids": ["x"]}},
        headers=auth_headers(VISITOR),
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "FORBIDDEN"
    assert forbidden.json()["details"] == {"required_roles": ["museum_admin", "super_admin"]}

    empty = _create(client, auth_headers, target={"roles": ["nobody"]})
    assert empty.status_code == 422
    assert empty.json()["code"] == "INVALID_TARGET"

    bad_topic = _create(client, auth_headers, target={"topics": ["Not A Topic"]})
    assert bad_topic.status_code == 422

    unauthenticated = client.get("/notifications")
    assert unauthenticated.status_code == 401
    assert unauthenticated.json()["code"] == "AUTH_FAILED"
    assert unauthenticated.headers["www-authenticate"] == "Bearer"


def test_mixed_case_role_claim_is_normalised(client, auth_headers):
    shouting = Principal("admin-3", "Museum_Admin", "museum-1")

    with client.websocket_connect(_ws_url(shouting)) as websocket:
        connected = websocket.receive_json()
        websocket.receive_json()
        assert "role:museum_admin" in connected["payload"]["rooms"]
        assert connected["payload"]["role"] == "museum_admin"

        response = client.post(
            "/notifications",
            json={"title": "t", "message": "m", "target": {"roles": ["MUSEUM_ADMIN"]}},
            headers=auth_headers(shouting),
        )
        assert response.status_code == 201
        assert list(response.json()["report"]["delivered"]) == ["admin-3"]
        assert websocket.receive_json()["event"] == "new-notification"


def test_realtime_admin_endpoints(client, auth_headers):
    with _open(client, VISITOR) as (websocket, _, _):
        stats = client.get("/realtime/stats", headers=auth_headers(SUPER))
        assert stats.status_code == 200
        assert stats.json()["principal_connections"] == {"visitor-1": 1}

        presence = client.get("/realtime/presence/visitor-1", headers=auth_headers(ADMIN))
        assert presence.json() == {"principal_id": "visitor-1", "online": True, "connections": 1}
        assert client.get("/realtime/stats", headers=auth_headers(ADMIN)).status_code == 403

        broadcast = client.post(
            "/realtime/system-notifications",
            json={"title": "Maintenance", "message": "Back at noon", "level": "warning"},
            headers=auth_headers(SUPER),
        )
        assert broadcast.status_code == 202
        pushed = websocket.receive_json()
        assert pushed["event"] == "system-notification"
        assert pushed["payload"]["notification"]["level"] == "warning"

    health = client.get("/health").json()
    assert health["status"] == "ok"


def test_publisher_creates_notifications_from_sync_code(client):
    publisher = client.app.state.notification_publisher

    future = publisher.publish(
        title="Backfill",
        message="Imported from the archive",
        notification_type="info",
        target=TargetSpec.build(principal_ids=["visitor-1"]),
    )
    created = future.result(timeout=5)

    assert created.notification.recipient_ids == frozenset({"visitor-1"})
