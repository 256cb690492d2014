"""Directory: projects and their members. A member's assigned role scopes permissions to that project."""
from sqlalchemy import Column, ForeignKey, String, UniqueConstraint

from app.db.base import Base, new_id


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(256), nullable=False)


class ProjectMember(Base):
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),)

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_role_id = Column(String(36), ForeignKey("roles.id", ondelete="SET NULL"), nullable=True)
