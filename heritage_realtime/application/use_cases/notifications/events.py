"""Utility helpers to generate and dispatch domain notifications."""

from __future__ import annotations

from datetime import datetime

from heritage_realtime.domain.entities import (
    PRIORITY_HIGH,
    PRIORITY_URGENT,
    ROLE_SUPER_ADMIN,
    NotificationAction,
    TargetSpec,
)

from .service import CreatedNotification, NotificationService

TYPE_RENTAL = "rental"
TYPE_APPROVAL = "approval"
TYPE_SECURITY = "security"

RENTAL_APPROVED = "approved"
RENTAL_REJECTED = "rejected"


async def notify_rental_requested(
    service: NotificationService,
    *,
    rental_id: str,
    museum_id: str,
    artifact_title: str,
    requested_by: str,
) -> CreatedNotification:
    """Tell the administrators of ``museum_id`` that a rental is waiting for review."""

    return await service.create_notification(
        title="New rental request",
        message=f"A rental of '{artifact_title}' is awaiting your review.",
        notification_type=TYPE_RENTAL,
        target=TargetSpec.build(tenant_ids=[museum_id]),
        priority=PRIORITY_HIGH,
        action=NotificationAction(url=f"/museum/rentals/{rental_id}", label="Review request"),
        payload={"rental_id": rental_id, "museum_id": museum_id},
        created_by=requested_by,
    )


async def notify_rental_decision(
    service: NotificationService,
    *,
    rental_id: str,
    requester_id: str,
    artifact_title: str,
    decision: str,
    decided_by: str | None = None,
    reason: str | None = None,
) -> CreatedNotification:
    """Inform the requester that their rental was approved or rejected."""

    if decision not in (RENTAL_APPROVED, RENTAL_REJECTED):
        raise ValueError(f"Unknown rental decision: {decision}")

    message = f"Your rental of '{artifact_title}' was {decision}."
    if reason:
        message = f"{message} {reason}"
    return await service.create_notification(
        title=f"Rental {decision}",
        message=message,
        notification_type=TYPE_RENTAL,
        target=TargetSpec.build(principal_ids=[requester_id]),
        priority=PRIORITY_HIGH,
        action=NotificationAction(url=f"/rentals/{rental_id}", label="View rental"),
        payload={"rental_id": rental_id, "decision": decision},
        created_by=decided_by,
    )


async def notify_content_approved(
    service: NotificationService,
    *,
    author_id: str,
    content_type: str,
    content_id: str,
    content_title: str,
    approved_by: str | None = None,
    expires_at: datetime | None = None,
) -> CreatedNotification:
    """Notify the author that a piece of content passed moderation."""

    return await service.create_notification(
        title="Content approved",
        message=f"Your {content_type} '{content_title}' has been approved.",
        notification_type=TYPE_APPROVAL,
        target=TargetSpec.build(principal_ids=[author_id]),
        priority=PRIORITY_HIGH,
        payload={"content_type": content_type, "content_id": content_id},
        created_by=approved_by,
        expires_at=expires_at,
    )


async def notify_security_alert(
    service: NotificationService,
    *,
    message: str,
    museum_id: str | None = None,
    details: dict | None = None,
) -> CreatedNotification:
    """Raise an urgent alert for platform admins and, if given, one museum's admins."""

    target = TargetSpec.build(
        roles=[ROLE_SUPER_ADMIN],
        tenant_ids=[museum_id] if museum_id else [],
    )
    return await service.create_notification(
        title="Security alert",
        message=message,
        notification_type=TYPE_SECURITY,
        target=target,
        priority=PRIORITY_URGENT,
        payload={"museum_id": museum_id, **(details or {})},
    )


__all__ = [
    "RENTAL_APPROVED",
    "RENTAL_REJECTED",
    "TYPE_APPROVAL",
    "TYPE_RENTAL",
    "TYPE_SECURITY",
    "notify_content_approved",
    "notify_rental_decision",
    "notify_rental_requested",
    "notify_security_alert",
]
