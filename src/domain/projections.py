"""
Canonical projections returned by the Allocation Service.

A view is a read-only snapshot of one entity plus the back-references that
are derived by repository queries (a project's task ids, a user's managed
project ids, ...). Views are built inside the unit of work that produced
them, so the back-references are consistent with the committed state.
"""

from datetime import date, datetime
from typing import Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .aggregates import (
    Comment,
    Priority,
    Project,
    Role,
    Status,
    Task,
    Team,
    TeamMember,
    User,
)


class _View(BaseModel):
    model_config = ConfigDict(frozen=True)


class UserView(_View):
    user_id: UUID
    username: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    role: Role
    active: bool
    team_id: Optional[UUID] = Field(default=None, description="Team of the active membership")
    managed_project_ids: List[UUID] = Field(default_factory=list)
    assigned_task_ids: List[UUID] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        user: User,
        membership: Optional[TeamMember] = None,
        managed: Iterable[Project] = (),
        assigned: Iterable[Task] = (),
    ) -> "UserView":
        return cls(
            user_id=user.user_id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
            active=user.active,
            team_id=membership.team_id if membership and membership.is_active else None,
            managed_project_ids=[p.project_id for p in managed],
            assigned_task_ids=[t.task_id for t in assigned],
        )


class TeamMemberView(_View):
    team_member_id: UUID
    team_id: UUID
    user_id: UUID
    username: Optional[str] = None
    join_date: date
    remove_date: Optional[date] = None
    is_active: bool

    @classmethod
    def build(cls, membership: TeamMember, user: Optional[User] = None) -> "TeamMemberView":
        return cls(
            team_member_id=membership.team_member_id,
            team_id=membership.team_id,
            user_id=membership.user_id,
            username=user.username if user else None,
            join_date=membership.join_date,
            remove_date=membership.remove_date,
            is_active=membership.is_active,
        )


class TeamView(_View):
    team_id: UUID
    name: str
    active: bool
    member_ids: List[UUID] = Field(default_factory=list, description="Users with an active membership")
    project_ids: List[UUID] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def build(
        cls,
        team: Team,
        memberships: Iterable[TeamMember] = (),
        projects: Iterable[Project] = (),
    ) -> "TeamView":
        return cls(
            team_id=team.team_id,
            name=team.name,
            active=team.active,
            member_ids=[m.user_id for m in memberships if m.is_active],
            project_ids=[p.project_id for p in projects],
            created_at=team.created_at,
        )


class TaskView(_View):
    task_id: UUID
    project_id: UUID
    name: str
    description: str
    priority: Priority
    start_date: date
    due_date: date
    completion_date: Optional[date] = None
    status: Status
    assignee_id: Optional[UUID] = None

    @classmethod
    def build(cls, task: Task) -> "TaskView":
        return cls(
            task_id=task.task_id,
            project_id=task.project_id,
            name=task.name,
            description=task.description,
            priority=task.priority,
            start_date=task.start_date,
            due_date=task.due_date,
            completion_date=task.completion_date,
            status=task.status,
            assignee_id=task.assignee_id,
        )


def completion_percentage(tasks: Iterable[Task]) -> int:
    """
    Share of completed tasks, as a whole percentage rounded down.

    Cancelled tasks are left out of the total; no counted tasks means 0.
    """
    counted = [t for t in tasks if t.status != Status.CANCELLED]
    if not counted:
        return 0
    completed = sum(1 for t in counted if t.status == Status.COMPLETED)
    return (completed * 100) // len(counted)


class ProjectView(_View):
    project_id: UUID
    name: str
    description: str
    priority: Priority
    start_date: date
    due_date: date
    completion_date: Optional[date] = None
    status: Status
    manager_id: UUID
    team_id: Optional[UUID] = None
    task_ids: List[UUID] = Field(default_factory=list)
    comment_ids: List[UUID] = Field(default_factory=list)
    completion_percentage: int = Field(default=0, ge=0, le=100)

    @classmethod
    def build(
        cls,
        project: Project,
        tasks: Iterable[Task] = (),
        comments: Iterable[Comment] = (),
    ) -> "ProjectView":
        tasks = list(tasks)
        return cls(
            project_id=project.project_id,
            name=project.name,
            description=project.description,
            priority=project.priority,
            start_date=project.start_date,
            due_date=project.due_date,
            completion_date=project.completion_date,
            status=project.status,
            manager_id=project.manager_id,
            team_id=project.team_id,
            task_ids=[t.task_id for t in tasks],
            comment_ids=[c.comment_id for c in comments],
            completion_percentage=completion_percentage(tasks),
        )


class CommentView(_View):
    comment_id: UUID
    project_id: UUID
    user_id: UUID
    parent_id: Optional[UUID] = None
    content: str
    created_at: datetime
    modified: bool
    modified_at: Optional[datetime] = None
    deleted: bool
    reply_ids: List[UUID] = Field(default_factory=list)

    @classmethod
    def build(cls, comment: Comment, replies: Iterable[Comment] = ()) -> "CommentView":
        return cls(
            comment_id=comment.comment_id,
            project_id=comment.project_id,
            user_id=comment.user_id,
            parent_id=comment.parent_id,
            content=comment.content,
            created_at=comment.created_at,
            modified=comment.modified,
            modified_at=comment.modified_at,
            deleted=comment.deleted,
            reply_ids=[r.comment_id for r in replies],
        )
