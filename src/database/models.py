"""
SQLAlchemy ORM Models for the Resource Allocation Database.

This module defines the database schema for users, teams, memberships,
projects, tasks and project comments.

Architecture:
- Primary Keys: UUID for all tables (generated by the domain layer)
- Foreign Keys: every back-reference column is indexed, since
  back-references are answered by queries rather than stored lists
- Status/Priority/Role: Enum columns sharing the domain enums
- Constraints: date ordering and one active membership per user pair
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Boolean, Date, DateTime, Text, Enum, ForeignKey, Index,
    CheckConstraint, Uuid,
)
from sqlalchemy.orm import declarative_base

from domain.aggregates import Priority, Role, Status


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


Base = declarative_base()


# =============================================================================
# USERS
# =============================================================================

class UserRecord(Base):
    """
    User account. Role is fixed at creation.

    Managed projects and assigned tasks are looked up through
    projects.manager_id and tasks.assignee_id.
    """
    __tablename__ = "users"

    user_id = Column(Uuid, primary_key=True)
    username = Column(String(50), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(254), nullable=True)
    role = Column(Enum(Role), nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<User(id={self.user_id}, username={self.username}, role={self.role})>"


# =============================================================================
# TEAMS
# =============================================================================

class TeamRecord(Base):
    """Team of TEAM_MEMBER users, home of at most one active project."""
    __tablename__ = "teams"

    team_id = Column(Uuid, primary_key=True)
    name = Column(String(100), nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<Team(id={self.team_id}, name={self.name}, active={self.active})>"


class TeamMemberRecord(Base):
    """
    Membership of a user in a team.

    Rows are never deleted; removal flips is_active and stamps remove_date.
    """
    __tablename__ = "team_members"

    team_member_id = Column(Uuid, primary_key=True)
    team_id = Column(Uuid, ForeignKey("teams.team_id"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.user_id"), nullable=False, index=True)
    join_date = Column(Date, nullable=False)
    remove_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index('ix_team_member_user_active', 'user_id', 'is_active'),
        Index('ix_team_member_team_active', 'team_id', 'is_active'),
    )

    def __repr__(self):
        return (
            f"<TeamMember(id={self.team_member_id}, team={self.team_id}, "
            f"user={self.user_id}, active={self.is_active})>"
        )


# =============================================================================
# PROJECTS
# =============================================================================

class ProjectRecord(Base):
    """Project with one manager, at most one team and many tasks."""
    __tablename__ = "projects"

    project_id = Column(Uuid, primary_key=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    priority = Column(Enum(Priority), nullable=False, default=Priority.LOW)
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    completion_date = Column(Date, nullable=True)
    status = Column(Enum(Status), nullable=False, default=Status.NOT_STARTED, index=True)
    manager_id = Column(Uuid, ForeignKey("users.user_id"), nullable=False, index=True)
    team_id = Column(Uuid, ForeignKey("teams.team_id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint('start_date <= due_date', name='ck_project_date_order'),
        Index('ix_project_manager_status', 'manager_id', 'status'),
        Index('ix_project_team_status', 'team_id', 'status'),
    )

    def __repr__(self):
        return f"<Project(id={self.project_id}, name={self.name}, status={self.status})>"


# =============================================================================
# TASKS
# =============================================================================

class TaskRecord(Base):
    """Task owned by exactly one project."""
    __tablename__ = "tasks"

    task_id = Column(Uuid, primary_key=True)
    project_id = Column(Uuid, ForeignKey("projects.project_id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    priority = Column(Enum(Priority), nullable=False, default=Priority.LOW)
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    completion_date = Column(Date, nullable=True)
    status = Column(Enum(Status), nullable=False, default=Status.NOT_STARTED, index=True)
    assignee_id = Column(Uuid, ForeignKey("users.user_id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint('start_date <= due_date', name='ck_task_date_order'),
        Index('ix_task_project_name', 'project_id', 'name'),
        Index('ix_task_assignee_status', 'assignee_id', 'status'),
    )

    def __repr__(self):
        return f"<Task(id={self.task_id}, name={self.name}, status={self.status})>"


# =============================================================================
# COMMENTS
# =============================================================================

class CommentRecord(Base):
    """Project comment; replies point at their parent. Soft-deleted only."""
    __tablename__ = "comments"

    comment_id = Column(Uuid, primary_key=True)
    project_id = Column(Uuid, ForeignKey("projects.project_id"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.user_id"), nullable=False, index=True)
    parent_id = Column(Uuid, ForeignKey("comments.comment_id"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    modified = Column(Boolean, nullable=False, default=False)
    modified_at = Column(DateTime(timezone=True), nullable=True)
    deleted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('ix_comment_project_deleted', 'project_id', 'deleted'),
    )

    def __repr__(self):
        return f"<Comment(id={self.comment_id}, project={self.project_id}, deleted={self.deleted})>"
