"""
Digest preview: group a user's recent in-app notifications by (project or 'global', category, event_type).

Groups carry count, highest priority, first/last triggered_at (ISO strings) and up to three
distinct sample titles; sorted by count desc, then last_triggered_at desc. Preview only: no
digest email is ever sent.
"""
from datetime import timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.core.constants import (
    DIGEST_DEFAULT_LIMIT_GROUPS,
    DIGEST_DEFAULT_WINDOW_MINUTES,
    DIGEST_LIMIT_GROUPS_MAX,
    DIGEST_LIMIT_GROUPS_MIN,
    DIGEST_MAX_ROWS,
    DIGEST_SAMPLE_TITLES,
    DIGEST_WINDOW_MAX_MINUTES,
    DIGEST_WINDOW_MIN_MINUTES,
)
from app.core.timefmt import iso_utc
from app.db.base import utcnow
from app.models.notification import Notification
from app.models.notification_recipient import NotificationRecipient
from app.services.notifications.priority import max_priority, normalize_priority


def _clamp(value: int | None, default: int, low: int, high: int) -> int:
    return min(max(default if value is None else value, low), high)


def group_key(project_id: str | None, category: str, event_type: str) -> str:
    return f"{project_id or 'global'}::{category}::{event_type}"


def get_digest_preview(
    db: Session,
    user_id: str,
    tenant_id: str,
    *,
    project_id: str | None = None,
    window_minutes: int | None = None,
    unread_only: bool = False,
    limit_groups: int | None = None,
) -> dict[str, Any]:
    window_minutes = _clamp(window_minutes, DIGEST_DEFAULT_WINDOW_MINUTES, DIGEST_WINDOW_MIN_MINUTES, DIGEST_WINDOW_MAX_MINUTES)
    limit_groups = _clamp(limit_groups, DIGEST_DEFAULT_LIMIT_GROUPS, DIGEST_LIMIT_GROUPS_MIN, DIGEST_LIMIT_GROUPS_MAX)
    now = utcnow()
    since = now - timedelta(minutes=window_minutes)

    q = (
        db.query(
            Notification.project_id,
            Notification.category,
            Notification.event_type,
            Notification.priority,
            Notification.title,
            Notification.triggered_at,
        )
        .join(NotificationRecipient, NotificationRecipient.notification_id == Notification.id)
        .filter(
            NotificationRecipient.user_id == user_id,
            NotificationRecipient.channel_in_app.is_(True),
            Notification.tenant_id == tenant_id,
            Notification.created_at >= since,
        )
    )
    if unread_only:
        q = q.filter(NotificationRecipient.is_read.is_(False))
    if project_id:
        q = q.filter(Notification.project_id == project_id)
    rows = q.order_by(NotificationRecipient.created_at.desc()).limit(DIGEST_MAX_ROWS).all()

    groups: dict[str, dict[str, Any]] = {}
    for row in rows:
        key = group_key(row.project_id, row.category, row.event_type)
        priority = normalize_priority(row.priority)
        triggered = iso_utc(row.triggered_at)
        group = groups.get(key)
        if group is None:
            groups[key] = {
                "key": key,
                "project_id": row.project_id,
                "category": row.category,
                "event_type": row.event_type,
                "count": 1,
                "highest_priority": priority,
                "first_triggered_at": triggered,
                "last_triggered_at": triggered,
                "sample_titles": [row.title],
            }
            continue
        group["count"] += 1
        group["highest_priority"] = max_priority(group["highest_priority"], priority)
        if triggered < group["first_triggered_at"]:
            group["first_triggered_at"] = triggered
        if triggered > group["last_triggered_at"]:
            group["last_triggered_at"] = triggered
        if len(group["sample_titles"]) < DIGEST_SAMPLE_TITLES and row.title not in group["sample_titles"]:
            group["sample_titles"].append(row.title)

    # Two stable sorts: secondary key first, then primary
    ordered = sorted(groups.values(), key=lambda g: g["last_triggered_at"], reverse=True)
    ordered.sort(key=lambda g: g["count"], reverse=True)
    preview = ordered[:limit_groups]

    return {
        "window_minutes": window_minutes,
        "generated_at": iso_utc(now),
        "total_events": len(rows),
        "total_groups": len(preview),
        "grouped_events": sum(g["count"] for g in preview),
        "groups": preview,
    }
