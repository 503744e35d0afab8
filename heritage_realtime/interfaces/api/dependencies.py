"""FastAPI dependency utilities."""

from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from heritage_realtime.application.use_cases.notifications import NotificationService
from heritage_realtime.domain.entities import Principal
from heritage_realtime.domain.exceptions import AuthenticationError, ForbiddenError
from heritage_realtime.infrastructure.database import get_db
from heritage_realtime.infrastructure.notifications import RealtimeHub
from heritage_realtime.infrastructure.repositories import PrincipalRepository
from heritage_realtime.infrastructure.security import (
    decode_access_token,
    principal_from_claims,
)

bearer_scheme = HTTPBearer(auto_error=False)


def resolve_principal(token: str | None, db: Session, *, register: bool = False) -> Principal:
    """Resolve the authenticated principal for the provided token.

    A principal known to the directory but deactivated is rejected. With
    ``register`` the directory entry is created or refreshed from the claims.
    """

    if not token:
        raise AuthenticationError("Missing bearer token")
    try:
        claims = decode_access_token(token)
        principal = principal_from_claims(claims)
    except ValueError as exc:
        raise AuthenticationError(str(exc)) from exc

    repository = PrincipalRepository(db)
    entry = repository.get(principal.id)
    if entry is not None and not entry.is_active:
        raise AuthenticationError("Principal is inactive", details={"principal_id": principal.id})
    if register:
        repository.upsert(principal)
    return principal


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """Return the principal behind the request's bearer token."""

    token = credentials.credentials if credentials else None
    return resolve_principal(token, db)


def require_roles(*roles: str) -> Callable[..., Principal]:
    """Build a dependency that only lets principals with one of ``roles`` through."""

    def dependency(current: Principal = Depends(get_current_principal)) -> Principal:
        if not any(current.has_role(role) for role in roles):
            raise ForbiddenError(
                "Not authorized", details={"required_roles": list(roles)}
            )
        return current

    return dependency


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notifications


def get_realtime_hub(request: Request) -> RealtimeHub:
    return request.app.state.realtime
