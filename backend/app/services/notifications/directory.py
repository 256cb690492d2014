"""
Read-only lookups against the user/role/project directory.

Permission traversal is split into two explicit reads that the candidate resolver composes:
users holding a permission tenant-wide (through their roles) and project members holding a
permission through their assigned project role.
"""
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.orm import Session

from app.core.constants import GENERAL_PROJECT_PERMISSIONS, PRIVILEGED_ROLE_NAMES, USER_STATUS_ACTIVE
from app.models.project import Project, ProjectMember
from app.models.user import Permission, Role, RolePermission, User, UserRole
from app.services.notifications.actor import NotificationActor


@dataclass(frozen=True)
class CandidateUser:
    id: str
    email: str
    name: str


def project_tenant_id(db: Session, project_id: str) -> str | None:
    row = db.query(Project.tenant_id).filter(Project.id == project_id).first()
    return row[0] if row else None


def project_names(db: Session, project_ids: Iterable[str]) -> dict[str, str]:
    ids = {p for p in project_ids if p}
    if not ids:
        return {}
    return {pid: name for pid, name in db.query(Project.id, Project.name).filter(Project.id.in_(ids)).all()}


def users_with_global_permission(db: Session, tenant_id: str, codes: Iterable[str]) -> set[str]:
    """Active users of the tenant holding any of the codes through one of their roles."""
    codes = list(codes)
    if not codes:
        return set()
    rows = (
        db.query(User.id)
        .join(UserRole, UserRole.user_id == User.id)
        .join(RolePermission, RolePermission.role_id == UserRole.role_id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .filter(
            User.tenant_id == tenant_id,
            User.status == USER_STATUS_ACTIVE,
            Permission.code.in_(codes),
        )
        .distinct()
        .all()
    )
    return {r[0] for r in rows}


def project_members_with_permission(db: Session, project_id: str, codes: Iterable[str]) -> set[str]:
    """Active members of the project whose assigned role grants any of the codes."""
    codes = list(codes)
    if not codes:
        return set()
    rows = (
        db.query(ProjectMember.user_id)
        .join(User, User.id == ProjectMember.user_id)
        .join(RolePermission, RolePermission.role_id == ProjectMember.assigned_role_id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .filter(
            ProjectMember.project_id == project_id,
            User.status == USER_STATUS_ACTIVE,
            Permission.code.in_(codes),
        )
        .distinct()
        .all()
    )
    return {r[0] for r in rows}


def project_member_ids(db: Session, project_id: str) -> set[str]:
    rows = db.query(ProjectMember.user_id).filter(ProjectMember.project_id == project_id).all()
    return {r[0] for r in rows}


def privileged_user_ids(db: Session, tenant_id: str) -> set[str]:
    """Active users who see every project: admin roles or a general project view/edit permission."""
    admins = (
        db.query(User.id)
        .join(UserRole, UserRole.user_id == User.id)
        .join(Role, Role.id == UserRole.role_id)
        .filter(
            User.tenant_id == tenant_id,
            User.status == USER_STATUS_ACTIVE,
            Role.name.in_(PRIVILEGED_ROLE_NAMES),
        )
        .distinct()
        .all()
    )
    return {r[0] for r in admins} | users_with_global_permission(db, tenant_id, GENERAL_PROJECT_PERMISSIONS)


def active_users(db: Session, user_ids: Iterable[str]) -> list[CandidateUser]:
    ids = {u for u in user_ids if u}
    if not ids:
        return []
    rows = (
        db.query(User.id, User.email, User.name)
        .filter(User.id.in_(ids), User.status == USER_STATUS_ACTIVE)
        .order_by(User.id)
        .all()
    )
    return [CandidateUser(id=r.id, email=r.email, name=r.name) for r in rows]


def actor_profile(db: Session, user_id: str) -> NotificationActor | None:
    row = db.query(User.id, User.name, User.profile_image).filter(User.id == user_id).first()
    if not row:
        return None
    return NotificationActor(id=row.id, name=row.name, profile_image=row.profile_image)


def user_permission_codes(db: Session, user_id: str) -> set[str]:
    """Codes granted through the user's global roles (not project roles)."""
    rows = (
        db.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .filter(UserRole.user_id == user_id)
        .distinct()
        .all()
    )
    return {r[0] for r in rows}


def has_admin_role(db: Session, user_id: str, tenant_id: str) -> bool:
    count = (
        db.query(UserRole)
        .join(Role, Role.id == UserRole.role_id)
        .filter(
            UserRole.user_id == user_id,
            Role.tenant_id == tenant_id,
            Role.name.in_(PRIVILEGED_ROLE_NAMES),
        )
        .count()
    )
    return count > 0


def project_permission_codes(db: Session, user_id: str, project_ids: Iterable[str]) -> dict[str, set[str]]:
    """Per-project codes granted through the user's assigned role on each project."""
    ids = {p for p in project_ids if p}
    if not ids:
        return {}
    rows = (
        db.query(ProjectMember.project_id, Permission.code)
        .join(RolePermission, RolePermission.role_id == ProjectMember.assigned_role_id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .filter(ProjectMember.user_id == user_id, ProjectMember.project_id.in_(ids))
        .all()
    )
    out: dict[str, set[str]] = {}
    for project_id, code in rows:
        out.setdefault(project_id, set()).add(code)
    return out
