"""
Delivery processor: drain pending email deliveries, send, and schedule retries.

Each row is claimed (status pending → sending) with a conditional UPDATE before sending, so
overlapping runs (post-emit outbox task and the periodic sweep) never send a row twice.
Failure: attempts += 1, retry in min(60, 2^attempts) minutes; at 5 attempts the row is failed.
One row's failure never aborts the batch.
"""
import html
import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from app.core.constants import (
    CHANNEL_EMAIL,
    DELIVERY_BACKOFF_CAP_MINUTES,
    DELIVERY_BATCH_MAX,
    DELIVERY_BATCH_MIN,
    DELIVERY_CLAIM_LEASE_MINUTES,
    DELIVERY_DEFAULT_BATCH,
    DELIVERY_FAILED,
    DELIVERY_MAX_ATTEMPTS,
    DELIVERY_PENDING,
    DELIVERY_SENDING,
    DELIVERY_SENT,
)
from app.db.base import utcnow
from app.models.notification import Notification
from app.models.notification_delivery import NotificationDelivery
from app.models.user import User
from app.services.email_notify import Mailer, get_mailer
from app.services.notifications import directory

logger = logging.getLogger(__name__)


def backoff_minutes(attempts: int) -> int:
    return min(DELIVERY_BACKOFF_CAP_MINUTES, 2**attempts)


def retry_state(attempts: int, now: datetime) -> tuple[str, datetime | None]:
    """(status, next_attempt_at) after a failed attempt; attempts already includes this one."""
    if attempts >= DELIVERY_MAX_ATTEMPTS:
        return DELIVERY_FAILED, None
    return DELIVERY_PENDING, now + timedelta(minutes=backoff_minutes(attempts))


def render_email(
    notification: Notification,
    user_name: str | None,
    project_name: str | None,
) -> tuple[str, str]:
    """(subject, html) for one notification email. User-supplied text is escaped."""
    subject = f"[{(notification.priority or 'normal').upper()}] {notification.title}"
    body = (
        f"<p>Hello {html.escape(user_name or '')},</p>"
        f"<h3>{html.escape(notification.title)}</h3>"
        f"<p>{html.escape(notification.body)}</p>"
        f"<p><strong>Category:</strong> {html.escape(notification.category)}</p>"
        f"<p><strong>Project:</strong> {html.escape(project_name or 'N/A')}</p>"
    )
    return subject, body


def _release_stale_claims(db: Session, now: datetime) -> int:
    """Rows stuck in 'sending' past the lease (worker died mid-send) go back to pending."""
    result = db.execute(
        update(NotificationDelivery)
        .where(
            NotificationDelivery.status == DELIVERY_SENDING,
            NotificationDelivery.claimed_at < now - timedelta(minutes=DELIVERY_CLAIM_LEASE_MINUTES),
        )
        .values(status=DELIVERY_PENDING, claimed_at=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount:
        logger.warning("Released %s stale delivery claims", result.rowcount)
    return result.rowcount


def _claim(db: Session, delivery_id: str, now: datetime) -> bool:
    result = db.execute(
        update(NotificationDelivery)
        .where(NotificationDelivery.id == delivery_id, NotificationDelivery.status == DELIVERY_PENDING)
        .values(status=DELIVERY_SENDING, claimed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def process_pending_deliveries(
    db: Session,
    limit: int = DELIVERY_DEFAULT_BATCH,
    *,
    mailer: Mailer | None = None,
) -> dict[str, Any]:
    """Send up to `limit` due email deliveries, oldest first. Returns {processed, sent, failed}."""
    mailer = mailer or get_mailer()
    limit = min(max(limit, DELIVERY_BATCH_MIN), DELIVERY_BATCH_MAX)
    now = utcnow()
    _release_stale_claims(db, now)

    due_ids = [
        r[0]
        for r in db.query(NotificationDelivery.id)
        .filter(
            NotificationDelivery.channel == CHANNEL_EMAIL,
            NotificationDelivery.status == DELIVERY_PENDING,
            or_(NotificationDelivery.next_attempt_at.is_(None), NotificationDelivery.next_attempt_at <= now),
        )
        .order_by(NotificationDelivery.created_at.asc())
        .limit(limit)
        .all()
    ]

    sent = 0
    failed = 0
    for delivery_id in due_ids:
        if not _claim(db, delivery_id, utcnow()):
            logger.debug("Delivery %s claimed elsewhere; skipping", delivery_id)
            continue

        # After a claim the row always leaves 'sending': sent, retry or failed
        try:
            delivery = db.get(NotificationDelivery, delivery_id)
            notification = db.get(Notification, delivery.notification_id)
            user = db.get(User, delivery.user_id)
            payload = delivery.payload or {}
            to = (user.email if user else None) or payload.get("email") or ""
            user_name = (user.name if user else None) or payload.get("userName")
            project_name = directory.project_names(db, [notification.project_id]).get(notification.project_id)
            subject, body = render_email(notification, user_name, project_name)
            mailer.send(to, subject, body)
        except Exception as e:
            db.rollback()
            delivery = db.get(NotificationDelivery, delivery_id)
            attempts = (delivery.attempts or 0) + 1
            status, next_attempt_at = retry_state(attempts, utcnow())
            delivery.status = status
            delivery.attempts = attempts
            delivery.next_attempt_at = next_attempt_at
            delivery.claimed_at = None
            delivery.last_error = str(e) or "Email delivery failed"
            db.commit()
            failed += 1
            logger.warning(
                "Delivery %s attempt %s failed (%s): %s", delivery_id, attempts, status, delivery.last_error
            )
            continue

        delivery.status = DELIVERY_SENT
        delivery.attempts = (delivery.attempts or 0) + 1
        delivery.sent_at = utcnow()
        delivery.last_error = None
        delivery.next_attempt_at = None
        delivery.claimed_at = None
        db.commit()
        sent += 1

    if sent or failed:
        logger.info("Delivery batch: %s sent, %s failed", sent, failed)
    return {"processed": sent + failed, "sent": sent, "failed": failed}
