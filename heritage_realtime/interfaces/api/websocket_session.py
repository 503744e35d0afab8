"""Server side of one notification websocket."""

from __future__ import annotations

import logging

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from heritage_realtime.application.use_cases.notifications import NotificationService
from heritage_realtime.config import Settings
from heritage_realtime.domain.entities import Principal, is_auto_membership, parse_room
from heritage_realtime.domain.exceptions import (
    AuthenticationError,
    ForbiddenRoomOperationError,
    InvalidMessageError,
    NotificationError,
    NotificationStoreError,
)
from heritage_realtime.infrastructure.database import SessionLocal
from heritage_realtime.infrastructure.notifications import (
    CLOSE_INTERNAL_ERROR,
    CLOSE_POLICY_VIOLATION,
    Connection,
    ConnectionState,
    RealtimeHub,
    protocol,
)
from heritage_realtime.interfaces.api.dependencies import resolve_principal
from heritage_realtime.interfaces.api.schemas import (
    ClientFrame,
    NotificationIdPayload,
    RoomPayload,
)

logger = logging.getLogger(__name__)


def extract_token(websocket: WebSocket) -> str | None:
    """Return the bearer token from the query string or the Authorization header."""

    token = websocket.query_params.get("token")
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


class NotificationSocketSession:
    """Drive a websocket through authentication, registration and its event loop."""

    def __init__(
        self,
        websocket: WebSocket,
        *,
        hub: RealtimeHub,
        service: NotificationService,
        settings: Settings,
    ) -> None:
        self.websocket = websocket
        self.hub = hub
        self.service = service
        self.connection = Connection(websocket, send_buffer=settings.connection_send_buffer)
        self.principal: Principal | None = None

    async def run(self) -> None:
        await self.websocket.accept()
        try:
            principal = self._authenticate()
        except AuthenticationError as exc:
            await self._refuse(exc, CLOSE_POLICY_VIOLATION)
            return
        except NotificationError as exc:
            await self._refuse(exc, CLOSE_INTERNAL_ERROR)
            return

        self.principal = principal
        try:
            self.hub.registry.register(principal, self.connection)
            self.connection.start()
            unread = self.service.unread_count(principal.id)
            rooms = [room.name for room in self.hub.registry.rooms.rooms_of(self.connection)]
            self.connection.send(protocol.connected_message(self.connection.id, principal, rooms))
            self.connection.send(protocol.unread_count_message(unread))

            while self.connection.is_active:
                text = await self.websocket.receive_text()
                self.connection.touch()
                await self.handle_frame(text)
        except WebSocketDisconnect as exc:
            logger.info("Client closed connection %s (code %s)", self.connection.id, exc.code)
            await self.connection.close(code=exc.code, reason="client disconnected")
        except NotificationError as exc:
            logger.error("Websocket session %s aborted: %s", self.connection.id, exc.message)
            await self.connection.close(
                code=CLOSE_INTERNAL_ERROR, reason=f"{exc.code}: {exc.message}"
            )
        except Exception:
            logger.exception("Websocket session %s failed", self.connection.id)
            await self.connection.close(code=CLOSE_INTERNAL_ERROR, reason="internal error")
            raise
        finally:
            self.hub.registry.unregister(self.connection)

    def _authenticate(self) -> Principal:
        session = SessionLocal()
        try:
            return resolve_principal(extract_token(self.websocket), session, register=True)
        except SQLAlchemyError as exc:
            session.rollback()
            raise NotificationStoreError(
                "Principal directory is unavailable", details={"reason": exc.__class__.__name__}
            ) from exc
        finally:
            session.close()

    async def _refuse(self, error: NotificationError, code: int) -> None:
        reason = f"{error.code}: {error.message}"
        logger.info("Refused websocket connection (%s): %s", code, reason)
        self.connection.transition(ConnectionState.CLOSED)
        await self.websocket.close(code=code, reason=reason)

    async def handle_frame(self, text: str) -> None:
        """Process one client frame; protocol errors are reported, never raised."""

        event: str | None = None
        try:
            frame = ClientFrame.model_validate_json(text)
            event = frame.event
            await self._handle_event(frame)
        except ValidationError as exc:
            self._send_error(InvalidMessageError(_first_error(exc, "Malformed message")), event)
        except NotificationError as exc:
            self._send_error(exc, event)

    async def _handle_event(self, frame: ClientFrame) -> None:
        principal = self.principal
        event = frame.event

        if event == protocol.EVENT_MARK_READ:
            payload = _parse(NotificationIdPayload, frame)
            await self.service.mark_read(payload.notification_id, principal.id)
        elif event == protocol.EVENT_DISMISS:
            payload = _parse(NotificationIdPayload, frame)
            await self.service.dismiss(payload.notification_id, principal.id)
        elif event == protocol.EVENT_MARK_ALL_READ:
            await self.service.mark_all_read(principal.id)
        elif event == protocol.EVENT_GET_UNREAD_COUNT:
            self.connection.send(
                protocol.unread_count_message(self.service.unread_count(principal.id))
            )
        elif event in (protocol.EVENT_JOIN_ROOM, protocol.EVENT_LEAVE_ROOM):
            self._handle_room(event, _parse(RoomPayload, frame).room)
        elif event == protocol.EVENT_PING:
            self.connection.send(protocol.build_envelope(protocol.EVENT_PONG))
        elif event == protocol.EVENT_PONG:
            return
        else:
            raise InvalidMessageError(f"Unknown event: {event}", details={"event": event})

    def _handle_room(self, event: str, value: str) -> None:
        joining = event == protocol.EVENT_JOIN_ROOM
        operation = "join" if joining else "leave"
        try:
            room = parse_room(value)
        except ValueError as exc:
            raise InvalidMessageError(str(exc), details={"room": value}) from exc
        if is_auto_membership(room):
            raise ForbiddenRoomOperationError(room.name, operation)

        rooms = self.hub.registry.rooms
        if joining:
            rooms.join(self.connection, room)
            self.connection.send(protocol.room_message(protocol.EVENT_ROOM_JOINED, room.name))
        else:
            rooms.leave(self.connection, room)
            self.connection.send(protocol.room_message(protocol.EVENT_ROOM_LEFT, room.name))

    def _send_error(self, error: NotificationError, event: str | None) -> None:
        logger.debug("Protocol error on %s: %s %s", self.connection.id, error.code, error.message)
        self.connection.send(protocol.error_message(error.code, error.message, event=event))


def _first_error(exc: ValidationError, prefix: str) -> str:
    errors = exc.errors()
    if not errors:
        return prefix
    location = ".".join(str(part) for part in errors[0].get("loc", ()))
    detail = errors[0].get("msg", "")
    return f"{prefix}: {location} {detail}".strip() if location else f"{prefix}: {detail}"


def _parse(model: type[BaseModel], frame: ClientFrame):
    try:
        return model.model_validate(frame.payload)
    except ValidationError as exc:
        raise InvalidMessageError(
            _first_error(exc, f"Invalid payload for {frame.event}"),
            details={"event": frame.event},
        ) from exc


__all__ = ["NotificationSocketSession", "extract_token"]
