"""SQLAlchemy models for persisted notifications and their recipients."""

import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from heritage_realtime.infrastructure.database import Base
from heritage_realtime.utils import storage_now


class NotificationModel(Base):
    """Database representation of a notification."""

    __tablename__ = "notification"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    notification_type = Column(String(50), nullable=False, index=True)
    priority = Column(String(20), nullable=False, default="medium")
    target = Column(JSON, nullable=False, default=dict)
    action_url = Column(String(500), nullable=True)
    action_label = Column(String(120), nullable=True)
    payload = Column(JSON, nullable=False, default=dict)
    created_by = Column(String(64), nullable=True)
    created_at = Column(
        DateTime(), nullable=False, default=storage_now, index=True
    )
    expires_at = Column(DateTime(), nullable=True, index=True)

    recipients = relationship(
        "NotificationRecipientModel",
        back_populates="notification",
        cascade="all, delete-orphan",
    )


class NotificationRecipientModel(Base):
    """Consumption state of a notification for one principal."""

    __tablename__ = "notification_recipient"
    __table_args__ = (
        UniqueConstraint("notification_id", "principal_id", name="uq_notification_recipient"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    notification_id = Column(
        String(36),
        ForeignKey("notification.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    principal_id = Column(String(64), nullable=False, index=True)
    read_at = Column(DateTime(), nullable=True)
    dismissed_at = Column(DateTime(), nullable=True)

    notification = relationship("NotificationModel", back_populates="recipients")


__all__ = ["NotificationModel", "NotificationRecipientModel"]
