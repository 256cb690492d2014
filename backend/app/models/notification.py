"""Notification: one row per domain event (immutable once created).

tenant_id: owning tenant, always the project's tenant when project_id is set.
dedupe_key: caller-supplied; same tenant + key within the dedupe window reuses this row.
metadata: JSONB for event-specific payload; may carry an 'actor' snapshot {id, name, profileImage}.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.sql import func

from app.db.base import Base, JSONType, new_id, utcnow


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_tenant_created", "tenant_id", "created_at"),
        Index("ix_notifications_project_created", "project_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    category = Column(String(64), nullable=False)
    event_type = Column(String(64), nullable=False)
    priority = Column(String(16), nullable=False, server_default="normal")
    title = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    payload = Column("metadata", JSONType, nullable=True)  # column name 'metadata' in DB
    dedupe_key = Column(String(256), nullable=True, index=True)
    triggered_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
