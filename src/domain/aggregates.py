"""
Domain Aggregates for the Resource Allocation Engine.

Aggregates are clusters of domain objects that are treated as a single unit
for data changes. Relationships between them are plain foreign-key fields;
back-references (a project's tasks, a user's assigned tasks, a team's
members) are derived through repository lookups, never stored here.
"""

from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID, uuid4
from pydantic import BaseModel, Field
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Role(str, Enum):
    """Fixed role of a user."""
    ADMIN = "ADMIN"
    PROJECT_MANAGER = "PROJECT_MANAGER"
    TEAM_MEMBER = "TEAM_MEMBER"


class Status(str, Enum):
    """Lifecycle status shared by projects and tasks."""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.CANCELLED})


class Priority(str, Enum):
    """Priority of a project or task."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    COMPLETED = "COMPLETED"  # Reporting marker for finished tasks only


# =============================================================================
# USER AGGREGATE
# =============================================================================

class User(BaseModel):
    """
    User Aggregate Root.

    Invariants:
    - Role never changes after creation
    - Deactivation is terminal until explicitly reactivated
    """

    user_id: UUID = Field(default_factory=uuid4)
    username: str = Field(description="Unique login name")
    first_name: str = Field(default="")
    last_name: str = Field(default="")
    email: Optional[str] = Field(default=None)
    role: Role
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.username


# =============================================================================
# TEAM AGGREGATE
# =============================================================================

class Team(BaseModel):
    """
    Team Aggregate Root.

    Members are TeamMember records owned by the team. A team is home to at
    most one non-terminal project at a time.
    """

    team_id: UUID = Field(default_factory=uuid4)
    name: str
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utcnow)


class TeamMember(BaseModel):
    """
    Audit-tracked join record between a user and a team.

    Removal flips `is_active` and stamps `remove_date`; the row is kept.
    """

    team_member_id: UUID = Field(default_factory=uuid4)
    team_id: UUID
    user_id: UUID
    join_date: date
    remove_date: Optional[date] = Field(default=None)
    is_active: bool = Field(default=True)

    def deactivate(self, today: date) -> None:
        """End this membership."""
        self.is_active = False
        self.remove_date = today


# =============================================================================
# PROJECT AGGREGATE
# =============================================================================

class Project(BaseModel):
    """
    Project Aggregate Root.

    Invariants:
    - start_date <= due_date
    - Exactly one manager (a PROJECT_MANAGER user)
    - At most one team
    - Tasks are owned by the project and cancelled with it
    """

    project_id: UUID = Field(default_factory=uuid4)
    name: str
    description: str = Field(default="")
    priority: Priority = Field(default=Priority.LOW)
    start_date: date
    due_date: date
    completion_date: Optional[date] = Field(default=None)
    status: Status = Field(default=Status.NOT_STARTED)
    manager_id: UUID
    team_id: Optional[UUID] = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def contains(self, start: date, due: date) -> bool:
        """Whether [start, due] lies inside this project's date window."""
        return self.start_date <= start and due <= self.due_date

    def touch(self) -> None:
        self.updated_at = _utcnow()


# =============================================================================
# TASK AGGREGATE
# =============================================================================

class Task(BaseModel):
    """
    Task entity, owned by exactly one Project.

    The assignee, when set, must be an active TEAM_MEMBER with an active
    membership in the project's team.
    """

    task_id: UUID = Field(default_factory=uuid4)
    project_id: UUID
    name: str
    description: str = Field(default="")
    priority: Priority = Field(default=Priority.LOW)
    start_date: date
    due_date: date
    completion_date: Optional[date] = Field(default=None)
    status: Status = Field(default=Status.NOT_STARTED)
    assignee_id: Optional[UUID] = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def touch(self) -> None:
        self.updated_at = _utcnow()


# =============================================================================
# COMMENT AGGREGATE
# =============================================================================

DELETED_COMMENT_TEXT = "This comment has been deleted."


class Comment(BaseModel):
    """
    Discussion entry on a project, optionally replying to another comment.

    Deletion is soft: the row stays so reply threads keep their parent, and
    the content is replaced by DELETED_COMMENT_TEXT.
    """

    comment_id: UUID = Field(default_factory=uuid4)
    project_id: UUID
    user_id: UUID = Field(description="Author")
    parent_id: Optional[UUID] = Field(default=None)
    content: str
    created_at: datetime = Field(default_factory=_utcnow)
    modified: bool = Field(default=False)
    modified_at: Optional[datetime] = Field(default=None)
    deleted: bool = Field(default=False)

    def edit(self, content: str) -> None:
        self.content = content
        self.modified = True
        self.modified_at = _utcnow()

    def soft_delete(self) -> None:
        self.content = DELETED_COMMENT_TEXT
        self.deleted = True
