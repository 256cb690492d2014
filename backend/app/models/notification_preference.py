"""User notification preferences, scoped by (user, project or NULL, category or '*', event_type or '*').

A user may hold several overlapping rows; the most specific one wins at emit time.
frequency: 'immediate' | 'digest' | 'off'. min_priority: 'low' | 'normal' | 'high' | 'critical'.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.sql import func, false, true

from app.db.base import Base, new_id, utcnow


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"
    __table_args__ = (
        Index("ix_notification_preferences_user_project", "user_id", "project_id"),
        Index("ix_notification_preferences_user_category_event", "user_id", "category", "event_type"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    category = Column(String(64), nullable=False)
    event_type = Column(String(64), nullable=False, server_default="*")
    channel_in_app = Column(Boolean, nullable=False, server_default=true())
    channel_email = Column(Boolean, nullable=False, server_default=false())
    frequency = Column(String(16), nullable=False, server_default="immediate")
    min_priority = Column(String(16), nullable=False, server_default="normal")
    is_enabled = Column(Boolean, nullable=False, server_default=true())
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )
