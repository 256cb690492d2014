"""
Preference resolver plus list/upsert of preference rows.

Each matching row is scored by specificity and the highest score wins per user:
  project: +8 exact project, +2 global (NULL) row
  category: +4 exact, +1 '*'
  event_type: +2 exact, +1 '*'
Ties keep the first row seen (rows are read oldest first). Users with no matching row get
DEFAULT_PREFERENCE (in-app on, email off, immediate, min priority normal, enabled).
"""
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.constants import DEFAULT_PREFERENCE, WILDCARD
from app.models.notification_preference import NotificationPreference
from app.models.user import User
from app.services.notifications.priority import normalize_frequency, normalize_priority


@dataclass(frozen=True)
class ResolvedPreference:
    channel_in_app: bool
    channel_email: bool
    frequency: str
    min_priority: str
    is_enabled: bool


DEFAULT_RESOLVED = ResolvedPreference(**DEFAULT_PREFERENCE)


def preference_score(
    pref: Any,
    project_id: str | None,
    category: str,
    event_type: str,
) -> int:
    """Specificity of one preference row for the target (project, category, event_type)."""
    score = 0
    if pref.project_id and pref.project_id == project_id:
        score += 8
    elif pref.project_id is None:
        score += 2

    if pref.category == category:
        score += 4
    elif pref.category == WILDCARD:
        score += 1

    if pref.event_type == event_type:
        score += 2
    elif pref.event_type == WILDCARD:
        score += 1
    return score


def _resolved(pref: NotificationPreference) -> ResolvedPreference:
    return ResolvedPreference(
        channel_in_app=bool(pref.channel_in_app),
        channel_email=bool(pref.channel_email),
        frequency=normalize_frequency(pref.frequency),
        min_priority=normalize_priority(pref.min_priority),
        is_enabled=bool(pref.is_enabled),
    )


def resolve_preferences(
    db: Session,
    user_ids: Iterable[str],
    tenant_id: str,
    project_id: str | None,
    category: str,
    event_type: str,
) -> dict[str, ResolvedPreference]:
    user_ids = list(dict.fromkeys(user_ids))
    if not user_ids:
        return {}

    if project_id:
        project_filter = or_(NotificationPreference.project_id == project_id, NotificationPreference.project_id.is_(None))
    else:
        project_filter = NotificationPreference.project_id.is_(None)

    rows = (
        db.query(NotificationPreference)
        .join(User, User.id == NotificationPreference.user_id)
        .filter(
            NotificationPreference.user_id.in_(user_ids),
            User.tenant_id == tenant_id,
            NotificationPreference.category.in_([category, WILDCARD]),
            NotificationPreference.event_type.in_([event_type, WILDCARD]),
            project_filter,
        )
        .order_by(NotificationPreference.created_at.asc(), NotificationPreference.id.asc())
        .all()
    )

    best: dict[str, tuple[int, NotificationPreference]] = {}
    for pref in rows:
        score = preference_score(pref, project_id, category, event_type)
        current = best.get(pref.user_id)
        if current is None or score > current[0]:
            best[pref.user_id] = (score, pref)

    return {uid: _resolved(best[uid][1]) if uid in best else DEFAULT_RESOLVED for uid in user_ids}


def list_preferences(db: Session, user_id: str, tenant_id: str, project_id: str | None = None) -> list[NotificationPreference]:
    """User's rows in the tenant; with a project, that project's rows plus global rows."""
    q = (
        db.query(NotificationPreference)
        .join(User, User.id == NotificationPreference.user_id)
        .filter(NotificationPreference.user_id == user_id, User.tenant_id == tenant_id)
    )
    if project_id:
        q = q.filter(or_(NotificationPreference.project_id == project_id, NotificationPreference.project_id.is_(None)))
    return q.order_by(
        NotificationPreference.project_id.asc(),
        NotificationPreference.category.asc(),
        NotificationPreference.event_type.asc(),
    ).all()


def upsert_preference(
    db: Session,
    *,
    user_id: str,
    tenant_id: str,
    category: str,
    project_id: str | None = None,
    event_type: str | None = None,
    channel_in_app: bool | None = None,
    channel_email: bool | None = None,
    frequency: str | None = None,
    min_priority: str | None = None,
    is_enabled: bool | None = None,
) -> NotificationPreference:
    """
    Keyed by (user, project or NULL, category, event_type defaulting to '*').
    Existing row: only supplied fields change. New row: missing fields take the default preference.
    """
    event_type = event_type or WILDCARD
    project_filter = (
        NotificationPreference.project_id == project_id if project_id else NotificationPreference.project_id.is_(None)
    )
    row = (
        db.query(NotificationPreference)
        .join(User, User.id == NotificationPreference.user_id)
        .filter(
            NotificationPreference.user_id == user_id,
            User.tenant_id == tenant_id,
            project_filter,
            NotificationPreference.category == category,
            NotificationPreference.event_type == event_type,
        )
        .first()
    )

    if row is None:
        row = NotificationPreference(
            user_id=user_id,
            project_id=project_id or None,
            category=category,
            event_type=event_type,
            channel_in_app=DEFAULT_RESOLVED.channel_in_app if channel_in_app is None else channel_in_app,
            channel_email=DEFAULT_RESOLVED.channel_email if channel_email is None else channel_email,
            frequency=normalize_frequency(frequency),
            min_priority=normalize_priority(min_priority),
            is_enabled=True if is_enabled is None else is_enabled,
        )
        db.add(row)
    else:
        if channel_in_app is not None:
            row.channel_in_app = channel_in_app
        if channel_email is not None:
            row.channel_email = channel_email
        if frequency is not None:
            row.frequency = normalize_frequency(frequency)
        if min_priority is not None:
            row.min_priority = normalize_priority(min_priority)
        if is_enabled is not None:
            row.is_enabled = is_enabled
    db.commit()
    db.refresh(row)
    return row


def preference_to_dict(row: NotificationPreference) -> dict[str, Any]:
    return {
        "id": row.id,
        "project_id": row.project_id,
        "category": row.category,
        "event_type": row.event_type,
        "channel_in_app": row.channel_in_app,
        "channel_email": row.channel_email,
        "frequency": row.frequency,
        "min_priority": row.min_priority,
        "is_enabled": row.is_enabled,
    }
