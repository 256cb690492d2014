"""
Candidate resolver: who is eligible to receive an event.

candidates = explicit ∪ scoped, filtered to active users, minus the actor.
scoped (permission codes) = tenant-wide holders ∪ project members whose role grants a code.
With include_project_members, scoped is narrowed to project members (or all members when no
codes were given) and privileged users (admins, general project viewers/editors) are always added.
"""
import logging
from typing import Iterable

from sqlalchemy.orm import Session

from app.services.notifications import directory
from app.services.notifications.directory import CandidateUser

logger = logging.getLogger(__name__)


def resolve_candidates(
    db: Session,
    tenant_id: str,
    *,
    project_id: str | None = None,
    actor_user_id: str | None = None,
    specific_user_ids: Iterable[str] | None = None,
    permission_codes: Iterable[str] | None = None,
    include_project_members: bool = False,
) -> list[CandidateUser]:
    """Pure read. Returns deduplicated active users, ordered by id."""
    explicit_ids = {uid for uid in (specific_user_ids or []) if uid}
    codes = [c for c in (permission_codes or []) if c]

    scoped_ids: set[str] | None = None
    if codes:
        scoped_ids = directory.users_with_global_permission(db, tenant_id, codes)
        if project_id:
            scoped_ids |= directory.project_members_with_permission(db, project_id, codes)

    if include_project_members and project_id:
        member_ids = directory.project_member_ids(db, project_id)
        if scoped_ids is not None:
            scoped_ids &= member_ids
        else:
            scoped_ids = member_ids
        scoped_ids |= directory.privileged_user_ids(db, tenant_id)

    user_ids = explicit_ids | (scoped_ids or set())
    if actor_user_id:
        user_ids.discard(actor_user_id)
    if not user_ids:
        return []

    users = directory.active_users(db, user_ids)
    logger.debug("Resolved %s candidates (of %s ids) for tenant %s", len(users), len(user_ids), tenant_id)
    return users
