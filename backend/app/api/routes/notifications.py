"""
Notifications API: inbox, read state, preferences, digest preview, delivery processing and event ingress.

Caller identified by X-User-Id and X-Tenant-Id headers (set by the auth gateway in front of this service).
"""
import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.constants import DELIVERY_DEFAULT_BATCH, LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT
from app.core.errors import NotificationError, domain_error_to_http
from app.core.timefmt import iso_utc
from app.db.session import get_db
from app.services import notifications as svc
from app.services.notifications import directory
from app.services.notifications.preferences import preference_to_dict

router = APIRouter()
logger = logging.getLogger(__name__)

Priority = Literal["low", "normal", "high", "critical"]
Frequency = Literal["immediate", "digest", "off"]


class Caller(BaseModel):
    user_id: str
    tenant_id: str


def _caller(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    x_tenant_id: str | None = Header(None, alias="X-Tenant-Id"),
) -> Caller:
    user_id = (x_user_id or "").strip()
    tenant_id = (x_tenant_id or "").strip()
    if not user_id or not tenant_id:
        raise HTTPException(status_code=401, detail="X-User-Id and X-Tenant-Id headers are required")
    return Caller(user_id=user_id, tenant_id=tenant_id)


# --- List ---


@router.get("/notifications")
def list_notifications(
    db: Session = Depends(get_db),
    caller: Caller = Depends(_caller),
    project_id: str | None = Query(None, alias="projectId"),
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(LIST_DEFAULT_LIMIT, ge=1, le=LIST_MAX_LIMIT),
) -> dict[str, Any]:
    """Newest first, gated per category by the caller's permissions."""
    permissions = directory.user_permission_codes(db, caller.user_id)
    rows = svc.list_for_user(
        db,
        caller.user_id,
        caller.tenant_id,
        project_id=project_id,
        unread_only=unread_only,
        limit=limit,
        permissions=permissions,
    )
    return {
        "notifications": rows,
        "unread_count": svc.unread_count(db, caller.user_id, caller.tenant_id, project_id),
    }


# --- Read state ---


class MarkAllReadRequest(BaseModel):
    project_id: str | None = Field(None, alias="projectId")


@router.patch("/notifications/read-all")
def mark_all_read(
    body: MarkAllReadRequest | None = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(_caller),
) -> dict[str, Any]:
    return svc.mark_all_read(db, caller.user_id, body.project_id if body else None)


@router.patch("/notifications/{notification_id}/read")
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    caller: Caller = Depends(_caller),
) -> dict[str, Any]:
    try:
        return svc.mark_read(db, notification_id, caller.user_id)
    except NotificationError as e:
        raise domain_error_to_http(e) from e


@router.delete("/notifications/{notification_id}")
def remove_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    caller: Caller = Depends(_caller),
) -> dict[str, Any]:
    """Remove from the caller's inbox only; the notification stays for other recipients."""
    try:
        return svc.remove_for_user(db, notification_id, caller.user_id)
    except NotificationError as e:
        raise domain_error_to_http(e) from e


# --- Preferences ---


@router.get("/notifications/preferences")
def list_preferences(
    db: Session = Depends(get_db),
    caller: Caller = Depends(_caller),
    project_id: str | None = Query(None, alias="projectId"),
) -> list[dict[str, Any]]:
    rows = svc.list_preferences(db, caller.user_id, caller.tenant_id, project_id)
    return [preference_to_dict(r) for r in rows]


class UpsertPreferenceRequest(BaseModel):
    project_id: str | None = Field(None, alias="projectId")
    category: str = Field(..., min_length=1, max_length=64)
    event_type: str | None = Field(None, alias="eventType", max_length=64)
    channel_in_app: bool | None = Field(None, alias="channelInApp")
    channel_email: bool | None = Field(None, alias="channelEmail")
    frequency: Frequency | None = None
    min_priority: Priority | None = Field(None, alias="minPriority")
    is_enabled: bool | None = Field(None, alias="isEnabled")


@router.put("/notifications/preferences")
def upsert_preference(
    body: UpsertPreferenceRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(_caller),
) -> dict[str, Any]:
    row = svc.upsert_preference(
        db,
        user_id=caller.user_id,
        tenant_id=caller.tenant_id,
        project_id=body.project_id,
        category=body.category,
        event_type=body.event_type,
        channel_in_app=body.channel_in_app,
        channel_email=body.channel_email,
        frequency=body.frequency,
        min_priority=body.min_priority,
        is_enabled=body.is_enabled,
    )
    return preference_to_dict(row)


# --- Digest preview ---


@router.get("/notifications/digest-preview")
def digest_preview(
    db: Session = Depends(get_db),
    caller: Caller = Depends(_caller),
    project_id: str | None = Query(None, alias="projectId"),
    window_minutes: int | None = Query(None, alias="windowMinutes"),
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit_groups: int | None = Query(None, alias="limitGroups"),
) -> dict[str, Any]:
    return svc.get_digest_preview(
        db,
        caller.user_id,
        caller.tenant_id,
        project_id=project_id,
        window_minutes=window_minutes,
        unread_only=unread_only,
        limit_groups=limit_groups,
    )


# --- Delivery processing ---


class ProcessDeliveriesRequest(BaseModel):
    limit: int = DELIVERY_DEFAULT_BATCH


@router.post("/notifications/process-deliveries", dependencies=[Depends(_caller)])
def process_deliveries(
    body: ProcessDeliveriesRequest | None = None,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """External periodic trigger (cron) or manual drain. Limit is clamped to [1, 200]."""
    return svc.process_pending_deliveries(db, body.limit if body else DELIVERY_DEFAULT_BATCH)


# --- Event ingress (business modules) ---


class EmitEventRequest(BaseModel):
    tenant_id: str = Field(..., alias="tenantId")
    project_id: str | None = Field(None, alias="projectId")
    actor_user_id: str | None = Field(None, alias="actorUserId")
    category: str = Field(..., min_length=1, max_length=64)
    event_type: str = Field(..., alias="eventType", min_length=1, max_length=64)
    title: str
    body: str
    priority: str | None = None
    metadata: Any = None
    dedupe_key: str | None = Field(None, alias="dedupeKey", max_length=256)
    specific_user_ids: list[str] = Field(default_factory=list, alias="specificUserIds")
    permission_codes: list[str] = Field(default_factory=list, alias="permissionCodes")
    include_project_members: bool = Field(False, alias="includeProjectMembers")


@router.post("/notifications/events")
def emit_event(body: EmitEventRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Returns the notification id, or null when nobody was eligible."""
    notification = svc.emit(db, svc.NotificationEvent(**body.model_dump()))
    if notification is None:
        return {"notification": None}
    return {
        "notification": {
            "id": notification.id,
            "tenant_id": notification.tenant_id,
            "project_id": notification.project_id,
            "category": notification.category,
            "event_type": notification.event_type,
            "priority": notification.priority,
            "title": notification.title,
            "created_at": iso_utc(notification.created_at),
        }
    }
