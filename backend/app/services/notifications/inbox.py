"""
In-app inbox: list a user's notifications and track read state on their recipient rows.

Listing is gated per category: workforce, supplies/financial and planning rows need the
matching view/edit permission (global, or through the user's role on the row's project).
Principal access (admin role in the tenant, or projects_general.view/edit) bypasses the gates.
Removing only deletes the user's recipient row, never the shared notification.
"""
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.constants import CATEGORY_GATES, GENERAL_PROJECT_PERMISSIONS, LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT
from app.core.errors import NotificationNotFound
from app.core.timefmt import iso_utc
from app.db.base import utcnow
from app.models.notification import Notification
from app.models.notification_recipient import NotificationRecipient
from app.services.notifications import directory
from app.services.notifications.actor import decode_actor


def required_permissions(category: str, event_type: str) -> tuple[str, ...] | None:
    """Permission codes gating a row, or None when any recipient may see it."""
    for event_types, categories, codes in CATEGORY_GATES:
        if event_type in event_types or category in categories:
            return codes
    return None


def _row_to_dict(recipient: NotificationRecipient, notification: Notification) -> dict[str, Any]:
    actor = decode_actor(notification.payload)
    return {
        "id": notification.id,
        "recipient_id": recipient.id,
        "project_id": notification.project_id,
        "category": notification.category,
        "event_type": notification.event_type,
        "priority": notification.priority,
        "title": notification.title,
        "body": notification.body,
        "metadata": notification.payload or {},
        "actor": actor.to_metadata() if actor else None,
        "triggered_at": iso_utc(notification.triggered_at),
        "created_at": iso_utc(notification.created_at),
        "is_read": recipient.is_read,
        "read_at": iso_utc(recipient.read_at),
    }


def list_for_user(
    db: Session,
    user_id: str,
    tenant_id: str,
    *,
    project_id: str | None = None,
    unread_only: bool = False,
    limit: int = LIST_DEFAULT_LIMIT,
    permissions: Iterable[str] = (),
) -> list[dict[str, Any]]:
    """Newest first. `permissions` are the caller's global permission codes."""
    limit = min(max(limit, 1), LIST_MAX_LIMIT)
    q = (
        db.query(NotificationRecipient, Notification)
        .join(Notification, Notification.id == NotificationRecipient.notification_id)
        .filter(
            NotificationRecipient.user_id == user_id,
            NotificationRecipient.channel_in_app.is_(True),
            Notification.tenant_id == tenant_id,
        )
    )
    if unread_only:
        q = q.filter(NotificationRecipient.is_read.is_(False))
    if project_id:
        q = q.filter(Notification.project_id == project_id)
    rows = q.order_by(NotificationRecipient.created_at.desc()).limit(limit).all()

    global_permissions = set(permissions)
    principal = bool(global_permissions & set(GENERAL_PROJECT_PERMISSIONS)) or directory.has_admin_role(
        db, user_id, tenant_id
    )

    project_permissions: dict[str, set[str]] = {}
    if not principal:
        gated_projects = {
            n.project_id for _, n in rows if n.project_id and required_permissions(n.category, n.event_type)
        }
        project_permissions = directory.project_permission_codes(db, user_id, gated_projects)

    def visible(notification: Notification) -> bool:
        codes = required_permissions(notification.category, notification.event_type)
        if codes is None or principal:
            return True
        if global_permissions.intersection(codes):
            return True
        if not notification.project_id:
            return False
        return bool(project_permissions.get(notification.project_id, set()).intersection(codes))

    return [_row_to_dict(r, n) for r, n in rows if visible(n)]


def unread_count(db: Session, user_id: str, tenant_id: str, project_id: str | None = None) -> int:
    q = (
        db.query(NotificationRecipient)
        .join(Notification, Notification.id == NotificationRecipient.notification_id)
        .filter(
            NotificationRecipient.user_id == user_id,
            NotificationRecipient.channel_in_app.is_(True),
            NotificationRecipient.is_read.is_(False),
            Notification.tenant_id == tenant_id,
        )
    )
    if project_id:
        q = q.filter(Notification.project_id == project_id)
    return q.count()


def _recipient_row(db: Session, notification_id: str, user_id: str) -> NotificationRecipient:
    row = (
        db.query(NotificationRecipient)
        .filter(NotificationRecipient.notification_id == notification_id, NotificationRecipient.user_id == user_id)
        .first()
    )
    if row is None:
        raise NotificationNotFound(notification_id)
    return row


def mark_read(db: Session, notification_id: str, user_id: str) -> dict[str, Any]:
    row = _recipient_row(db, notification_id, user_id)
    row.is_read = True
    row.read_at = utcnow()
    db.commit()
    return {"updated": 1, "read_at": iso_utc(row.read_at)}


def mark_all_read(db: Session, user_id: str, project_id: str | None = None) -> dict[str, Any]:
    """Flip unread, in-app-visible rows only; scoped to one project when given."""
    q = db.query(NotificationRecipient).filter(
        NotificationRecipient.user_id == user_id,
        NotificationRecipient.is_read.is_(False),
        NotificationRecipient.channel_in_app.is_(True),
    )
    if project_id:
        q = q.filter(
            NotificationRecipient.notification_id.in_(
                select(Notification.id).where(Notification.project_id == project_id)
            )
        )
    updated = q.update(
        {NotificationRecipient.is_read: True, NotificationRecipient.read_at: utcnow()},
        synchronize_session=False,
    )
    db.commit()
    return {"updated": updated}


def remove_for_user(db: Session, notification_id: str, user_id: str) -> dict[str, Any]:
    row = _recipient_row(db, notification_id, user_id)
    db.delete(row)
    db.commit()
    return {"deleted": 1}
