"""Dedupe claim: one row per (tenant_id, dedupe_key) pointing at the notification that owns the key.

Claimed with INSERT ... ON CONFLICT DO UPDATE WHERE claimed_at < cutoff, so concurrent emits
sharing a key converge on a single notification without check-then-insert.
"""
from sqlalchemy import Column, DateTime, String

from app.db.base import Base


class NotificationDedupeKey(Base):
    __tablename__ = "notification_dedupe_keys"

    tenant_id = Column(String(36), primary_key=True)
    dedupe_key = Column(String(256), primary_key=True)
    notification_id = Column(String(36), nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=False)
