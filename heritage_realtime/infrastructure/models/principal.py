"""SQLAlchemy model for the principal directory."""

from sqlalchemy import Boolean, Column, DateTime, String, func

from heritage_realtime.infrastructure.database import Base


class PrincipalModel(Base):
    """Known principal used to resolve role and tenant targets."""

    __tablename__ = "principal"

    id = Column(String(64), primary_key=True)
    role = Column(String(50), nullable=False, index=True)
    tenant_id = Column(String(64), nullable=True, index=True)
    display_name = Column(String(120), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    last_seen_at = Column(DateTime, nullable=True)


__all__ = ["PrincipalModel"]
