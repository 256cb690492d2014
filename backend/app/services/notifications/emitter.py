"""
Notification emitter: the single ingress for business modules (expenses, work items, journal, ...).

emit(db, event) resolves the owning tenant, candidates and preferences, dedupes on
(tenant, dedupe_key) within DEDUPE_WINDOW_MINUTES, persists the notification and fans out
recipient/delivery rows with ON CONFLICT DO NOTHING. Everything is committed in one
transaction; pending email deliveries are then handed to the delivery outbox (best effort).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol

from sqlalchemy.orm import Session

from app.config import settings
from app.core.constants import (
    CHANNEL_EMAIL,
    DEDUPE_WINDOW_MINUTES,
    DELIVERY_DIGEST_PENDING,
    DELIVERY_PENDING,
)
from app.db.base import new_id, utcnow
from app.db.dialect import insert_for
from app.models.notification import Notification
from app.models.notification_dedupe_key import NotificationDedupeKey
from app.models.notification_delivery import NotificationDelivery
from app.models.notification_recipient import NotificationRecipient
from app.services.notifications import directory
from app.services.notifications.actor import with_actor
from app.services.notifications.candidates import resolve_candidates
from app.services.notifications.preferences import DEFAULT_RESOLVED, resolve_preferences
from app.services.notifications.priority import meets_min_priority, normalize_priority

logger = logging.getLogger(__name__)


class DeliveryTrigger(Protocol):
    def enqueue(self, limit: int) -> None: ...


@dataclass
class NotificationEvent:
    tenant_id: str
    category: str
    event_type: str
    title: str
    body: str
    project_id: str | None = None
    actor_user_id: str | None = None
    priority: str | None = None
    metadata: Any = None
    dedupe_key: str | None = None
    specific_user_ids: list[str] = field(default_factory=list)
    permission_codes: list[str] = field(default_factory=list)
    include_project_members: bool = False


def _find_recent_duplicate(db: Session, tenant_id: str, dedupe_key: str, since: datetime) -> str | None:
    row = (
        db.query(Notification.id)
        .filter(
            Notification.tenant_id == tenant_id,
            Notification.dedupe_key == dedupe_key,
            Notification.created_at >= since,
        )
        .order_by(Notification.created_at.desc())
        .first()
    )
    return row[0] if row else None


def _claim_dedupe_key(db: Session, tenant_id: str, dedupe_key: str, notification_id: str, now: datetime) -> str:
    """
    Point (tenant, dedupe_key) at notification_id unless a claim younger than the window exists.
    Returns the notification id that owns the key after the upsert (ours or a concurrent winner's).
    """
    insert = insert_for(db)
    cutoff = now - timedelta(minutes=DEDUPE_WINDOW_MINUTES)
    stmt = insert(NotificationDedupeKey).values(
        tenant_id=tenant_id,
        dedupe_key=dedupe_key,
        notification_id=notification_id,
        claimed_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["tenant_id", "dedupe_key"],
        set_={"notification_id": stmt.excluded.notification_id, "claimed_at": stmt.excluded.claimed_at},
        where=NotificationDedupeKey.claimed_at < cutoff,
    )
    db.execute(stmt)
    owner = (
        db.query(NotificationDedupeKey.notification_id)
        .filter(NotificationDedupeKey.tenant_id == tenant_id, NotificationDedupeKey.dedupe_key == dedupe_key)
        .scalar()
    )
    return owner or notification_id


def _default_trigger() -> DeliveryTrigger:
    from app.scheduler.delivery_job import get_outbox

    return get_outbox()


def emit(db: Session, event: NotificationEvent, *, trigger: DeliveryTrigger | None = None) -> Notification | None:
    """
    Fan out one domain event. Returns the persisted (or reused) Notification, or None when
    nobody is eligible (a normal outcome, nothing is written).
    """
    tenant_id = event.tenant_id
    if event.project_id:
        # Project's own tenant wins over the caller-supplied one
        owner_tenant = directory.project_tenant_id(db, event.project_id)
        if owner_tenant:
            tenant_id = owner_tenant

    priority = normalize_priority(event.priority)
    project_id = event.project_id or None

    candidates = resolve_candidates(
        db,
        tenant_id,
        project_id=project_id,
        actor_user_id=event.actor_user_id,
        specific_user_ids=event.specific_user_ids,
        permission_codes=event.permission_codes,
        include_project_members=event.include_project_members,
    )
    if not candidates:
        logger.debug("No candidates for %s/%s in tenant %s; skipping", event.category, event.event_type, tenant_id)
        return None

    metadata = event.metadata
    if event.actor_user_id:
        actor = directory.actor_profile(db, event.actor_user_id)
        if actor is not None:
            metadata = with_actor(metadata, actor)

    preferences = resolve_preferences(
        db, [c.id for c in candidates], tenant_id, project_id, event.category, event.event_type
    )

    now = utcnow()
    notification_id: str | None = None
    if event.dedupe_key:
        notification_id = _find_recent_duplicate(
            db, tenant_id, event.dedupe_key, now - timedelta(minutes=DEDUPE_WINDOW_MINUTES)
        )

    if notification_id is None:
        fresh_id = new_id()
        owner_id = fresh_id
        if event.dedupe_key:
            owner_id = _claim_dedupe_key(db, tenant_id, event.dedupe_key, fresh_id, now)
        if owner_id == fresh_id:
            db.add(
                Notification(
                    id=fresh_id,
                    tenant_id=tenant_id,
                    project_id=project_id,
                    category=event.category,
                    event_type=event.event_type,
                    priority=priority,
                    title=event.title,
                    body=event.body,
                    payload=metadata,
                    dedupe_key=event.dedupe_key,
                    triggered_at=now,
                    created_at=now,
                )
            )
            db.flush()
        else:
            logger.info("Dedupe key %s already claimed by notification %s", event.dedupe_key, owner_id)
        notification_id = owner_id

    recipient_rows: list[dict[str, Any]] = []
    delivery_rows: list[dict[str, Any]] = []
    for user in candidates:
        pref = preferences.get(user.id, DEFAULT_RESOLVED)
        if not pref.is_enabled:
            continue
        if not meets_min_priority(priority, pref.min_priority):
            continue
        if pref.frequency == "off":
            continue
        if not pref.channel_in_app and not pref.channel_email:
            continue

        recipient_rows.append(
            {
                "id": new_id(),
                "notification_id": notification_id,
                "user_id": user.id,
                "channel_in_app": pref.channel_in_app,
                "channel_email": pref.channel_email,
                "is_read": False,
                "created_at": now,
            }
        )
        if pref.channel_email:
            delivery_rows.append(
                {
                    "id": new_id(),
                    "notification_id": notification_id,
                    "user_id": user.id,
                    "channel": CHANNEL_EMAIL,
                    "status": DELIVERY_DIGEST_PENDING if pref.frequency == "digest" else DELIVERY_PENDING,
                    "attempts": 0,
                    "next_attempt_at": None,
                    "payload": {"email": user.email, "userName": user.name, "eventType": event.event_type},
                    "created_at": now,
                    "updated_at": now,
                }
            )

    insert = insert_for(db)
    if recipient_rows:
        db.execute(
            insert(NotificationRecipient)
            .values(recipient_rows)
            .on_conflict_do_nothing(index_elements=["notification_id", "user_id"])
        )
    if delivery_rows:
        db.execute(
            insert(NotificationDelivery)
            .values(delivery_rows)
            .on_conflict_do_nothing(index_elements=["notification_id", "user_id", "channel"])
        )
    db.commit()

    logger.info(
        "Emitted %s/%s notification %s: %s recipients, %s deliveries",
        event.category,
        event.event_type,
        notification_id,
        len(recipient_rows),
        len(delivery_rows),
    )

    if any(r["status"] == DELIVERY_PENDING for r in delivery_rows):
        try:
            (trigger or _default_trigger()).enqueue(settings.delivery_trigger_batch)
        except Exception as e:
            logger.warning("Could not enqueue delivery batch after emit: %s", e, exc_info=True)

    return db.get(Notification, notification_id)
