"""
Domain Value Objects for the Resource Allocation Engine.

Value objects are immutable objects that describe characteristics of a thing,
but have no conceptual identity. They are defined by their attributes.

Besides the caller identity this module holds the input field sets accepted
by the Allocation Service. Shape checks (non-empty names, types) happen here;
business rules (date windows, ceilings) live in the lifecycle and capacity
modules.
"""

from datetime import date
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from .aggregates import Priority, Role, Status


class CallerContext(BaseModel):
    """
    Authenticated principal performing an operation.

    Supplied by the identity provider outside the engine and passed into
    every Allocation Service call. Authorization happens before the call;
    the engine uses the context for audit metadata and log correlation.
    """
    model_config = ConfigDict(frozen=True)

    user_id: Optional[UUID] = Field(default=None, description="Acting user, None for system jobs")
    role: Role = Field(default=Role.ADMIN)

    @classmethod
    def system(cls) -> "CallerContext":
        """Context for maintenance jobs that act on nobody's behalf."""
        return cls(user_id=None, role=Role.ADMIN)

    def to_metadata(self) -> dict:
        return {
            "performed_by": str(self.user_id) if self.user_id else "system",
            "performed_as": self.role.value,
        }


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


class UserDraft(_Input):
    """Fields for registering a user."""
    username: str = Field(min_length=1, max_length=50)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: Optional[str] = Field(default=None, max_length=254)
    role: Role


class ProjectDraft(_Input):
    """Fields for creating a project."""
    manager_id: UUID
    name: str = Field(min_length=1)
    description: str = Field(default="", max_length=2000)
    start_date: date
    due_date: date


class ProjectChanges(_Input):
    """
    Fields accepted by the generic project update.

    Only name, description and dates are editable. The remaining fields may
    be echoed back by a client; any value differing from the stored one is
    rejected because those fields have dedicated operations.
    """
    name: str = Field(min_length=1)
    description: str = Field(default="", max_length=2000)
    start_date: date
    due_date: date

    # Read-only echoes
    priority: Optional[Priority] = None
    status: Optional[Status] = None
    completion_date: Optional[date] = None
    manager_id: Optional[UUID] = None
    team_id: Optional[UUID] = None
    task_ids: Optional[List[UUID]] = None
    comment_ids: Optional[List[UUID]] = None


class TaskDraft(_Input):
    """Fields for creating a task, optionally assigning it at once."""
    project_id: UUID
    name: str = Field(min_length=1)
    description: str = Field(default="", max_length=2000)
    priority: Priority = Field(default=Priority.LOW)
    start_date: date
    due_date: date
    assignee_id: Optional[UUID] = None


class TaskChanges(_Input):
    """Fields accepted by the generic task update."""
    name: str = Field(min_length=1)
    description: str = Field(default="", max_length=2000)
    priority: Priority
    start_date: date
    due_date: date

    # Read-only echoes
    status: Optional[Status] = None
    completion_date: Optional[date] = None
    project_id: Optional[UUID] = None
    assignee_id: Optional[UUID] = None


class CommentDraft(_Input):
    """Fields for posting a comment. The author is the calling user."""
    project_id: UUID
    content: str = Field(min_length=1)
    parent_id: Optional[UUID] = Field(default=None, description="Comment being replied to")
