"""
Domain Events for the Resource Allocation Engine.

Domain events represent something that happened in the domain that domain
experts care about. They are immutable records of past occurrences.

Events are used for:
1. Audit trails - who changed which project, task or team
2. Integration - triggering side effects such as notifications

Events are collected by the unit of work and published only after the
transaction commits.
"""

from datetime import date, datetime, timezone
from typing import Optional, Dict, Any, List
from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class EventType(str, Enum):
    """Types of domain events."""
    # Project Events
    PROJECT_CREATED = "project.created"
    PROJECT_UPDATED = "project.updated"
    PROJECT_COMPLETED = "project.completed"
    PROJECT_CANCELLED = "project.cancelled"
    PROJECT_MANAGER_CHANGED = "project.manager_changed"
    TEAM_ASSIGNED_TO_PROJECT = "project.team_assigned"
    TEAM_REASSIGNED = "project.team_reassigned"

    # Task Events
    TASK_CREATED = "task.created"
    TASK_ASSIGNED = "task.assigned"
    TASK_UNASSIGNED = "task.unassigned"
    TASK_COMPLETED = "task.completed"
    TASK_REMOVED = "task.removed"

    # Team Events
    TEAM_MEMBERS_ADDED = "team.members_added"
    TEAM_MEMBERS_REMOVED = "team.members_removed"

    # User Events
    USER_ACTIVATED = "user.activated"
    USER_DEACTIVATED = "user.deactivated"

    # Comment Events
    COMMENT_POSTED = "comment.posted"
    COMMENT_EDITED = "comment.edited"
    COMMENT_DELETED = "comment.deleted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainEvent(BaseModel):
    """
    Base class for all domain events.

    All events are immutable and contain:
    - Unique event ID
    - When the event occurred
    - Metadata about context (performed_by, performed_as)
    """
    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(default_factory=uuid4)
    event_type: EventType
    occurred_at: datetime = Field(default_factory=_utcnow)
    version: int = Field(default=1, description="Event schema version")

    # Context metadata
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context (performed_by, performed_as, etc.)"
    )

    # Aggregate reference
    aggregate_id: Optional[UUID] = Field(
        default=None,
        description="ID of the aggregate this event belongs to"
    )
    aggregate_type: Optional[str] = Field(
        default=None,
        description="Type of aggregate (project, task, team, user, comment)"
    )


# =============================================================================
# PROJECT EVENTS
# =============================================================================

class ProjectCreated(DomainEvent):
    """Event raised when a project is created."""
    event_type: EventType = EventType.PROJECT_CREATED
    aggregate_type: str = "project"

    project_id: UUID
    name: str
    manager_id: UUID
    start_date: date
    due_date: date


class ProjectUpdated(DomainEvent):
    """Event raised when a project's editable fields change."""
    event_type: EventType = EventType.PROJECT_UPDATED
    aggregate_type: str = "project"

    project_id: UUID
    changed_fields: Dict[str, Any] = Field(
        default_factory=dict,
        description="Fields that changed and their new values"
    )


class ProjectCompleted(DomainEvent):
    """Event raised when a project is completed."""
    event_type: EventType = EventType.PROJECT_COMPLETED
    aggregate_type: str = "project"

    project_id: UUID
    completion_date: date


class ProjectCancelled(DomainEvent):
    """Event raised when a project is removed (cancelled with its tasks)."""
    event_type: EventType = EventType.PROJECT_CANCELLED
    aggregate_type: str = "project"

    project_id: UUID
    cancelled_task_ids: List[UUID] = Field(default_factory=list)
    deleted_comment_ids: List[UUID] = Field(default_factory=list)


class ProjectManagerChanged(DomainEvent):
    """Event raised when a project is handed to another manager."""
    event_type: EventType = EventType.PROJECT_MANAGER_CHANGED
    aggregate_type: str = "project"

    project_id: UUID
    previous_manager_id: UUID
    new_manager_id: UUID


class TeamAssignedToProject(DomainEvent):
    """Event raised when a team is assigned to a project without one."""
    event_type: EventType = EventType.TEAM_ASSIGNED_TO_PROJECT
    aggregate_type: str = "project"

    project_id: UUID
    team_id: UUID


class TeamReassigned(DomainEvent):
    """Event raised when a project's team is replaced."""
    event_type: EventType = EventType.TEAM_REASSIGNED
    aggregate_type: str = "project"

    project_id: UUID
    previous_team_id: UUID
    new_team_id: UUID
    unassigned_task_ids: List[UUID] = Field(default_factory=list)


# =============================================================================
# TASK EVENTS
# =============================================================================

class TaskCreated(DomainEvent):
    """Event raised when a task is added to a project."""
    event_type: EventType = EventType.TASK_CREATED
    aggregate_type: str = "task"

    task_id: UUID
    project_id: UUID
    name: str


class TaskAssigned(DomainEvent):
    """Event raised when a task gets an assignee."""
    event_type: EventType = EventType.TASK_ASSIGNED
    aggregate_type: str = "task"

    task_id: UUID
    project_id: UUID
    assignee_id: UUID
    previous_assignee_id: Optional[UUID] = None


class TaskUnassigned(DomainEvent):
    """Event raised when a task loses its assignee as a side effect."""
    event_type: EventType = EventType.TASK_UNASSIGNED
    aggregate_type: str = "task"

    task_id: UUID
    project_id: UUID
    previous_assignee_id: UUID
    reason: str = Field(description="Operation that caused the unassignment")


class TaskCompleted(DomainEvent):
    """Event raised when a task is completed."""
    event_type: EventType = EventType.TASK_COMPLETED
    aggregate_type: str = "task"

    task_id: UUID
    project_id: UUID
    completion_date: date


class TaskRemoved(DomainEvent):
    """Event raised when a task is deleted or cancelled with its project."""
    event_type: EventType = EventType.TASK_REMOVED
    aggregate_type: str = "task"

    task_id: UUID
    project_id: UUID
    cascade: bool = Field(default=False, description="Removed as part of project removal")


# =============================================================================
# TEAM EVENTS
# =============================================================================

class TeamMembersAdded(DomainEvent):
    """Event raised when users join a team."""
    event_type: EventType = EventType.TEAM_MEMBERS_ADDED
    aggregate_type: str = "team"

    team_id: UUID
    user_ids: List[UUID]


class TeamMembersRemoved(DomainEvent):
    """Event raised when users leave a team (or the team is deactivated)."""
    event_type: EventType = EventType.TEAM_MEMBERS_REMOVED
    aggregate_type: str = "team"

    team_id: UUID
    user_ids: List[UUID]


# =============================================================================
# USER EVENTS
# =============================================================================

class UserActivated(DomainEvent):
    event_type: EventType = EventType.USER_ACTIVATED
    aggregate_type: str = "user"

    user_id: UUID


class UserDeactivated(DomainEvent):
    event_type: EventType = EventType.USER_DEACTIVATED
    aggregate_type: str = "user"

    user_id: UUID
    unassigned_task_ids: List[UUID] = Field(default_factory=list)


# =============================================================================
# COMMENT EVENTS
# =============================================================================

class CommentPosted(DomainEvent):
    """Event raised when a comment or reply is posted on a project."""
    event_type: EventType = EventType.COMMENT_POSTED
    aggregate_type: str = "comment"

    comment_id: UUID
    project_id: UUID
    user_id: UUID
    parent_id: Optional[UUID] = None


class CommentEdited(DomainEvent):
    event_type: EventType = EventType.COMMENT_EDITED
    aggregate_type: str = "comment"

    comment_id: UUID
    project_id: UUID


class CommentDeleted(DomainEvent):
    """Event raised when a comment is soft-deleted, alone or with its project."""
    event_type: EventType = EventType.COMMENT_DELETED
    aggregate_type: str = "comment"

    comment_id: UUID
    project_id: UUID
