"""
Domain layer for the Resource Allocation Engine.

This module contains the core domain models, aggregates, value objects,
events, business rules and repository interfaces following Domain-Driven
Design principles.
"""

from .aggregates import (
    Role,
    Status,
    Priority,
    TERMINAL_STATUSES,
    User,
    Team,
    TeamMember,
    Project,
    Task,
    Comment,
    DELETED_COMMENT_TEXT,
)
from .value_objects import (
    CallerContext,
    UserDraft,
    ProjectDraft,
    ProjectChanges,
    TaskDraft,
    TaskChanges,
    CommentDraft,
)
from .errors import (
    ErrorKind,
    ErrorCode,
    AllocationError,
    NotFoundError,
    InvalidStateError,
    CapacityExceededError,
    IneligibleRoleError,
    DomainValidationError,
    AlreadyActiveError,
    AlreadyInactiveError,
    ErrorResponse,
    to_error_response,
)
from .events import (
    DomainEvent,
    EventType,
    ProjectCreated,
    ProjectUpdated,
    ProjectCompleted,
    ProjectCancelled,
    ProjectManagerChanged,
    TeamAssignedToProject,
    TeamReassigned,
    TaskCreated,
    TaskAssigned,
    TaskUnassigned,
    TaskCompleted,
    TaskRemoved,
    TeamMembersAdded,
    TeamMembersRemoved,
    UserActivated,
    UserDeactivated,
    CommentPosted,
    CommentEdited,
    CommentDeleted,
)
from .repositories import (
    IRepository,
    IUserRepository,
    ITeamRepository,
    ITeamMemberRepository,
    IProjectRepository,
    ITaskRepository,
    ICommentRepository,
    IUnitOfWork,
)
from .event_bus import (
    EventBus,
    LoggingEventHandler,
    get_event_bus,
    publish_event,
)
from .naming import resolve_unique_name, case_insensitive_exists
from .priority import compute_priority, refresh_priority
from .projections import (
    UserView,
    TeamView,
    TeamMemberView,
    ProjectView,
    TaskView,
    CommentView,
    completion_percentage,
)

__all__ = [
    # Aggregates
    "Role",
    "Status",
    "Priority",
    "TERMINAL_STATUSES",
    "User",
    "Team",
    "TeamMember",
    "Project",
    "Task",
    "Comment",
    "DELETED_COMMENT_TEXT",
    # Value Objects
    "CallerContext",
    "UserDraft",
    "ProjectDraft",
    "ProjectChanges",
    "TaskDraft",
    "TaskChanges",
    "CommentDraft",
    # Errors
    "ErrorKind",
    "ErrorCode",
    "AllocationError",
    "NotFoundError",
    "InvalidStateError",
    "CapacityExceededError",
    "IneligibleRoleError",
    "DomainValidationError",
    "AlreadyActiveError",
    "AlreadyInactiveError",
    "ErrorResponse",
    "to_error_response",
    # Events
    "DomainEvent",
    "EventType",
    "ProjectCreated",
    "ProjectUpdated",
    "ProjectCompleted",
    "ProjectCancelled",
    "ProjectManagerChanged",
    "TeamAssignedToProject",
    "TeamReassigned",
    "TaskCreated",
    "TaskAssigned",
    "TaskUnassigned",
    "TaskCompleted",
    "TaskRemoved",
    "TeamMembersAdded",
    "TeamMembersRemoved",
    "UserActivated",
    "UserDeactivated",
    "CommentPosted",
    "CommentEdited",
    "CommentDeleted",
    # Repositories
    "IRepository",
    "IUserRepository",
    "ITeamRepository",
    "ITeamMemberRepository",
    "IProjectRepository",
    "ITaskRepository",
    "ICommentRepository",
    "IUnitOfWork",
    # Event Bus
    "EventBus",
    "LoggingEventHandler",
    "get_event_bus",
    "publish_event",
    # Rules
    "resolve_unique_name",
    "case_insensitive_exists",
    "compute_priority",
    "refresh_priority",
    # Projections
    "UserView",
    "TeamView",
    "TeamMemberView",
    "ProjectView",
    "TaskView",
    "CommentView",
    "completion_percentage",
]
