"""
Notification fan-out and delivery engine.

- emit: resolve candidates + preferences, dedupe, persist notification and recipient/delivery rows.
- process_pending_deliveries: claim, send and retry email deliveries.
- get_digest_preview: grouped view of a user's recent notifications (preview only).
- inbox: list / mark read / mark all read / remove for one user.
- preferences: list and upsert per-user preference rows.
"""

from app.services.notifications.delivery import process_pending_deliveries
from app.services.notifications.digest import get_digest_preview
from app.services.notifications.emitter import NotificationEvent, emit
from app.services.notifications.inbox import (
    list_for_user,
    mark_all_read,
    mark_read,
    remove_for_user,
    unread_count,
)
from app.services.notifications.preferences import list_preferences, upsert_preference

__all__ = [
    "NotificationEvent",
    "emit",
    "get_digest_preview",
    "list_for_user",
    "list_preferences",
    "mark_all_read",
    "mark_read",
    "process_pending_deliveries",
    "remove_for_user",
    "unread_count",
    "upsert_preference",
]
