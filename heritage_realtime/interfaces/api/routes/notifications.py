"""Endpoints and websocket handler for realtime notifications."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, WebSocket, status

from heritage_realtime.application.use_cases.notifications import NotificationService
from heritage_realtime.config import get_settings
from heritage_realtime.domain.entities import ROLE_MUSEUM_ADMIN, ROLE_SUPER_ADMIN, Principal
from heritage_realtime.interfaces.api.dependencies import (
    get_current_principal,
    get_notification_service,
    require_roles,
)
from heritage_realtime.interfaces.api.schemas import (
    DeliveryReportRead,
    MarkAllReadResponse,
    NotificationCreate,
    NotificationCreateResponse,
    NotificationDetailRead,
    NotificationPageRead,
    NotificationRead,
    UnreadCountRead,
)
from heritage_realtime.interfaces.api.websocket_session import NotificationSocketSession

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationPageRead)
async def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    include_expired: bool = False,
    include_dismissed: bool = False,
    unread_only: bool = False,
    current: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPageRead:
    """Return the newest notifications addressed to the authenticated principal."""

    notifications = service.list_for(
        current.id,
        page=page,
        page_size=page_size,
        include_expired=include_expired,
        include_dismissed=include_dismissed,
        unread_only=unread_only,
    )
    return NotificationPageRead.from_page(notifications)


@router.get("/unread-count", response_model=UnreadCountRead)
async def get_unread_count(
    current: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountRead:
    return UnreadCountRead(count=service.unread_count(current.id))


@router.post(
    "",
    response_model=NotificationCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    payload: NotificationCreate,
    current: Principal = Depends(require_roles(ROLE_MUSEUM_ADMIN, ROLE_SUPER_ADMIN)),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationCreateResponse:
    """Persist a targeted notification and push it to online recipients."""

    created = await service.create_notification(
        title=payload.title,
        message=payload.message,
        notification_type=payload.notification_type,
        target=payload.target.to_entity(),
        priority=payload.priority,
        action=payload.action_entity(),
        payload=payload.payload,
        created_by=current.id,
        expires_at=payload.expires_at,
    )
    return NotificationCreateResponse(
        notification=NotificationDetailRead.from_entity(created.notification),
        report=DeliveryReportRead.from_report(created.report),
    )


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    current: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> MarkAllReadResponse:
    updated = await service.mark_all_read(current.id)
    return MarkAllReadResponse(updated=updated, unread_count=service.unread_count(current.id))


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: str,
    current: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    entry = await service.mark_read(notification_id, current.id)
    return NotificationRead.from_entry(entry)


@router.post("/{notification_id}/dismiss", response_model=NotificationRead)
async def dismiss_notification(
    notification_id: str,
    current: Principal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    entry = await service.dismiss(notification_id, current.id)
    return NotificationRead.from_entry(entry)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated principal."""

    session = NotificationSocketSession(
        websocket,
        hub=websocket.app.state.realtime,
        service=websocket.app.state.notifications,
        settings=get_settings(),
    )
    await session.run()
