"""Administrative endpoints exposing realtime presence and broadcasts."""

from fastapi import APIRouter, Depends, status

from heritage_realtime.application.use_cases.notifications import NotificationService
from heritage_realtime.domain.entities import ROLE_MUSEUM_ADMIN, ROLE_SUPER_ADMIN, Principal
from heritage_realtime.infrastructure.notifications import RealtimeHub
from heritage_realtime.interfaces.api.dependencies import (
    get_notification_service,
    get_realtime_hub,
    require_roles,
)
from heritage_realtime.interfaces.api.schemas import (
    DeliveryReportRead,
    PresenceRead,
    RealtimeStatsRead,
    SystemNotificationCreate,
)

router = APIRouter(prefix="/realtime", tags=["realtime"])


@router.get("/stats", response_model=RealtimeStatsRead)
async def get_realtime_stats(
    _: Principal = Depends(require_roles(ROLE_SUPER_ADMIN)),
    hub: RealtimeHub = Depends(get_realtime_hub),
) -> RealtimeStatsRead:
    return RealtimeStatsRead(**hub.registry.stats())


@router.get("/presence/{principal_id}", response_model=PresenceRead)
async def get_presence(
    principal_id: str,
    _: Principal = Depends(require_roles(ROLE_MUSEUM_ADMIN, ROLE_SUPER_ADMIN)),
    hub: RealtimeHub = Depends(get_realtime_hub),
) -> PresenceRead:
    registry = hub.registry
    return PresenceRead(
        principal_id=principal_id,
        online=registry.is_online(principal_id),
        connections=registry.connection_count(principal_id),
    )


@router.post(
    "/system-notifications",
    response_model=DeliveryReportRead,
    status_code=status.HTTP_202_ACCEPTED,
)
async def broadcast_system_notification(
    payload: SystemNotificationCreate,
    current: Principal = Depends(require_roles(ROLE_SUPER_ADMIN)),
    service: NotificationService = Depends(get_notification_service),
) -> DeliveryReportRead:
    """Push a transient announcement to every live connection."""

    report = await service.broadcast_system(
        title=payload.title,
        message=payload.message,
        level=payload.level,
        created_by=current.id,
    )
    return DeliveryReportRead.from_report(report)
