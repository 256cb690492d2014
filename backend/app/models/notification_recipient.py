"""Notification recipient: in-app visibility and read state, one row per (notification, user).

channel_in_app / channel_email: channels granted at emit time from the resolved preference.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.sql import func, false, true

from app.db.base import Base, new_id, utcnow


class NotificationRecipient(Base):
    __tablename__ = "notification_recipients"
    __table_args__ = (
        UniqueConstraint("notification_id", "user_id", name="uq_notification_recipients_notification_user"),
        Index("ix_notification_recipients_user_created", "user_id", "created_at"),
        Index("ix_notification_recipients_user_read_created", "user_id", "is_read", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    notification_id = Column(String(36), ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    channel_in_app = Column(Boolean, nullable=False, server_default=true())
    channel_email = Column(Boolean, nullable=False, server_default=false())
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
