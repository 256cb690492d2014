"""Directory: users, roles and permissions (owned by the auth/users modules; read here).

A user holds permissions through roles (user_roles → roles → role_permissions → permissions).
status: 'ACTIVE' users are the only ones ever notified.
"""
from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base, new_id


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    email = Column(String(256), nullable=False)
    name = Column(String(256), nullable=False)
    profile_image = Column(String(512), nullable=True)
    status = Column(String(16), nullable=False, server_default="ACTIVE")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),)

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(64), nullable=False)  # 'ADMIN', 'SUPER_ADMIN', 'USER', custom


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String(128), nullable=False, unique=True)  # e.g. 'supplies.view'


class UserRole(Base):
    __tablename__ = "user_roles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)


class RolePermission(Base):
    __tablename__ = "role_permissions"

    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    permission_id = Column(String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True)
