"""Notifications foundation: notifications, in-app recipients, preferences, email deliveries, dedupe claims.

- notification_recipients: unique (notification_id, user_id); read state per user.
- notification_deliveries: unique (notification_id, user_id, channel); retry state, claimed_at for in-flight sends.
- notification_dedupe_keys: one claim per (tenant_id, dedupe_key) so racing emits converge on one notification.
Indexes support: "my recent notifications", "my unread count", "due deliveries".
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False, server_default="normal"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("metadata", JSONB, nullable=True),
        sa.Column("dedupe_key", sa.String(256), nullable=True),
        sa.Column("triggered_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notifications_tenant_created", "notifications", ["tenant_id", "created_at"], unique=False)
    op.create_index("ix_notifications_project_created", "notifications", ["project_id", "created_at"], unique=False)
    op.create_index("ix_notifications_dedupe_key", "notifications", ["dedupe_key"], unique=False)

    op.create_table(
        "notification_dedupe_keys",
        sa.Column("tenant_id", sa.String(36), primary_key=True),
        sa.Column("dedupe_key", sa.String(256), primary_key=True),
        sa.Column("notification_id", sa.String(36), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "notification_recipients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "notification_id", sa.String(36), sa.ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("channel_in_app", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("channel_email", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("notification_id", "user_id", name="uq_notification_recipients_notification_user"),
    )
    op.create_index(
        "ix_notification_recipients_user_created", "notification_recipients", ["user_id", "created_at"], unique=False
    )
    op.create_index(
        "ix_notification_recipients_user_read_created",
        "notification_recipients",
        ["user_id", "is_read", "created_at"],
        unique=False,
    )

    op.create_table(
        "notification_preferences",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False, server_default="*"),
        sa.Column("channel_in_app", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("channel_email", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("frequency", sa.String(16), nullable=False, server_default="immediate"),
        sa.Column("min_priority", sa.String(16), nullable=False, server_default="normal"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_notification_preferences_user_project", "notification_preferences", ["user_id", "project_id"], unique=False
    )
    op.create_index(
        "ix_notification_preferences_user_category_event",
        "notification_preferences",
        ["user_id", "category", "event_type"],
        unique=False,
    )

    op.create_table(
        "notification_deliveries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "notification_id", sa.String(36), sa.ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("channel", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("payload", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "notification_id", "user_id", "channel", name="uq_notification_deliveries_notification_user_channel"
        ),
    )
    op.create_index(
        "ix_notification_deliveries_status_next_attempt",
        "notification_deliveries",
        ["status", "next_attempt_at"],
        unique=False,
    )
    op.create_index(
        "ix_notification_deliveries_user_status", "notification_deliveries", ["user_id", "status"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_notification_deliveries_user_status", table_name="notification_deliveries")
    op.drop_index("ix_notification_deliveries_status_next_attempt", table_name="notification_deliveries")
    op.drop_table("notification_deliveries")
    op.drop_index("ix_notification_preferences_user_category_event", table_name="notification_preferences")
    op.drop_index("ix_notification_preferences_user_project", table_name="notification_preferences")
    op.drop_table("notification_preferences")
    op.drop_index("ix_notification_recipients_user_read_created", table_name="notification_recipients")
    op.drop_index("ix_notification_recipients_user_created", table_name="notification_recipients")
    op.drop_table("notification_recipients")
    op.drop_table("notification_dedupe_keys")
    op.drop_index("ix_notifications_dedupe_key", table_name="notifications")
    op.drop_index("ix_notifications_project_created", table_name="notifications")
    op.drop_index("ix_notifications_tenant_created", table_name="notifications")
    op.drop_table("notifications")
