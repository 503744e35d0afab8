"""Helpers for issuing and verifying bearer credentials."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from heritage_realtime.config import get_settings
from heritage_realtime.domain.entities import Principal


def create_access_token(
    principal: Principal, expires_delta: timedelta | None = None
) -> str:
    """Return a signed token carrying the identity claims of ``principal``."""

    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, object] = {"sub": principal.id, "role": principal.role, "exp": expire}
    if principal.tenant_id:
        claims["tenant"] = principal.tenant_id
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def principal_from_claims(claims: dict) -> Principal:
    """Build a :class:`Principal` from decoded token claims."""

    principal_id = claims.get("sub")
    role = claims.get("role")
    if isinstance(role, str):
        role = role.strip().lower()
    if not isinstance(principal_id, str) or not principal_id:
        raise ValueError("Token is missing the subject claim")
    if not isinstance(role, str) or not role:
        raise ValueError("Token is missing the role claim")
    tenant = claims.get("tenant")
    if tenant is not None and not isinstance(tenant, str):
        tenant = str(tenant)
    return Principal(id=principal_id, role=role, tenant_id=tenant or None)
