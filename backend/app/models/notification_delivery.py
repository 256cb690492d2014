"""Notification delivery: out-of-band (email) send record and retry state.

status: pending → sending (claimed) → sent | pending (retry) | failed; digest_pending is never sent here.
next_attempt_at: NULL = eligible now; otherwise backoff deadline.
claimed_at: set when a processor claims the row; a stale claim is returned to pending.
payload: channel-specific data (email, userName, eventType).
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base, JSONType, new_id, utcnow


class NotificationDelivery(Base):
    __tablename__ = "notification_deliveries"
    __table_args__ = (
        UniqueConstraint(
            "notification_id", "user_id", "channel", name="uq_notification_deliveries_notification_user_channel"
        ),
        Index("ix_notification_deliveries_status_next_attempt", "status", "next_attempt_at"),
        Index("ix_notification_deliveries_user_status", "user_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    notification_id = Column(String(36), ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    channel = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, server_default="pending")
    attempts = Column(Integer, nullable=False, default=0, server_default="0")
    next_attempt_at = Column(DateTime(timezone=True), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(Text, nullable=True)
    payload = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )
