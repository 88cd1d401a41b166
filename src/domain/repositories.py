"""
Repository Interfaces for the Resource Allocation Engine.

Repository interfaces define the contract for data access, following the
Repository pattern from Domain-Driven Design. Implementations are provided
in the infrastructure layer (see `database.repositories`).

This abstraction allows:
1. Swapping storage backends (SQLite -> PostgreSQL)
2. Testing the rules against an in-memory database
3. Clear separation between domain and infrastructure

Back-references (a project's tasks, a manager's projects, a team's members)
are answered by the query methods here rather than stored on aggregates.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Generic, Iterable, List, Optional, TypeVar
from uuid import UUID

from .aggregates import Comment, Priority, Project, Role, Status, Task, Team, TeamMember, User


# Generic type for repository entities
T = TypeVar('T')


class IRepository(ABC, Generic[T]):
    """
    Base repository interface.

    Provides standard CRUD operations for aggregate roots.
    """

    @abstractmethod
    def get(self, id: UUID, for_update: bool = False) -> Optional[T]:
        """
        Retrieve an entity by ID.

        Args:
            id: Unique identifier of the entity
            for_update: Lock the row until the transaction ends

        Returns:
            The entity if found, None otherwise
        """
        pass

    @abstractmethod
    def require(self, id: UUID, for_update: bool = False) -> T:
        """
        Retrieve an entity by ID or raise NotFoundError.

        Args:
            id: Unique identifier of the entity
            for_update: Lock the row until the transaction ends
        """
        pass

    @abstractmethod
    def save(self, entity: T) -> None:
        """
        Save an entity (create or update).

        Args:
            entity: The entity to save
        """
        pass

    @abstractmethod
    def delete(self, id: UUID) -> bool:
        """
        Delete an entity by ID.

        Args:
            id: Unique identifier of the entity

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    def exists(self, id: UUID) -> bool:
        """Check if an entity exists."""
        pass


class IUserRepository(IRepository[User]):
    """User Repository Interface."""

    @abstractmethod
    def exists_by_username(self, username: str) -> bool:
        """Whether a user already holds this username."""
        pass

    @abstractmethod
    def list_users(
        self,
        role: Optional[Role] = None,
        active: Optional[bool] = None,
        search: Optional[str] = None,
        team_id: Optional[UUID] = None,
        project_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[User]:
        """
        List users ordered by username.

        Args:
            role: Only users with this role
            active: Only active (True) or inactive (False) users
            search: Case-insensitive fragment of username, first or last name
            team_id: Only users with an active membership in this team
            project_id: Only users assigned a task of this project
        """
        pass


class ITeamRepository(IRepository[Team]):
    """Team Repository Interface."""

    @abstractmethod
    def exists_by_name_ignore_case(self, name: str, exclude_id: Optional[UUID] = None) -> bool:
        """
        Whether another team already uses `name`, ignoring case.

        Args:
            name: Candidate name
            exclude_id: Team to ignore (the one being renamed)
        """
        pass

    @abstractmethod
    def list_teams(
        self,
        active: Optional[bool] = None,
        name: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Team]:
        """List teams ordered by name, optionally matching a name fragment."""
        pass


class ITeamMemberRepository(ABC):
    """
    Team Membership Repository Interface.

    Membership rows are never deleted; they are deactivated instead.
    """

    @abstractmethod
    def save(self, membership: TeamMember) -> None:
        """Save a membership row."""
        pass

    @abstractmethod
    def get_active_for_user(self, user_id: UUID) -> Optional[TeamMember]:
        """The user's active membership in any team, if there is one."""
        pass

    @abstractmethod
    def get_active(self, team_id: UUID, user_id: UUID) -> Optional[TeamMember]:
        """The user's active membership in a specific team."""
        pass

    @abstractmethod
    def list_by_team(self, team_id: UUID, active_only: bool = True) -> List[TeamMember]:
        """Membership rows of a team, oldest first."""
        pass


class IProjectRepository(IRepository[Project]):
    """
    Project Repository Interface.

    "Active" below means non-terminal (NOT_STARTED or IN_PROGRESS).
    """

    @abstractmethod
    def exists_by_name_ignore_case(self, name: str, exclude_id: Optional[UUID] = None) -> bool:
        """Whether another project already uses `name`, ignoring case."""
        pass

    @abstractmethod
    def count_active_by_manager(self, manager_id: UUID) -> int:
        """Number of non-terminal projects the user manages."""
        pass

    @abstractmethod
    def count_active_by_team(self, team_id: UUID) -> int:
        """Number of non-terminal projects the team staffs."""
        pass

    @abstractmethod
    def list_by_manager(self, manager_id: UUID, active_only: bool = False) -> List[Project]:
        """Projects managed by a user."""
        pass

    @abstractmethod
    def list_by_team(self, team_id: UUID, active_only: bool = False) -> List[Project]:
        """Projects staffed by a team."""
        pass

    @abstractmethod
    def list_active(self) -> List[Project]:
        """Every non-terminal project, oldest first."""
        pass

    @abstractmethod
    def list_projects(
        self,
        status: Optional[Status] = None,
        priority: Optional[Priority] = None,
        name: Optional[str] = None,
        manager_id: Optional[UUID] = None,
        team_id: Optional[UUID] = None,
        member_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Project]:
        """
        Filtered project listing, ordered by creation time.

        Args:
            name: Case-insensitive fragment of the project name
            member_id: Only projects staffed by the team this user actively belongs to
        """
        pass


class ITaskRepository(IRepository[Task]):
    """Task Repository Interface."""

    @abstractmethod
    def exists_by_name_ignore_case(
        self,
        project_id: UUID,
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        """Whether another task of the project already uses `name`, ignoring case."""
        pass

    @abstractmethod
    def list_by_project(self, project_id: UUID) -> List[Task]:
        """All tasks of a project, oldest first."""
        pass

    @abstractmethod
    def list_by_assignee(
        self,
        user_id: UUID,
        statuses: Optional[Iterable[Status]] = None,
        project_ids: Optional[Iterable[UUID]] = None,
    ) -> List[Task]:
        """
        Tasks assigned to a user.

        Args:
            user_id: Assignee
            statuses: Restrict to these statuses
            project_ids: Restrict to tasks of these projects
        """
        pass

    @abstractmethod
    def list_tasks(
        self,
        project_id: Optional[UUID] = None,
        assignee_id: Optional[UUID] = None,
        status: Optional[Status] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Task]:
        """Filtered task listing, ordered by creation time."""
        pass

    @abstractmethod
    def list_overdue_by_assignee(
        self,
        user_id: UUID,
        today: date,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Task]:
        """Open tasks of a user whose due date is before `today`, most overdue first."""
        pass


class ICommentRepository(IRepository[Comment]):
    """
    Comment Repository Interface.

    Comments are soft-deleted through `save`; `delete` is not used by the
    service.
    """

    @abstractmethod
    def list_by_project(self, project_id: UUID) -> List[Comment]:
        """Every comment of a project, oldest first."""
        pass

    @abstractmethod
    def list_replies(self, parent_id: UUID) -> List[Comment]:
        """Direct replies to a comment, oldest first."""
        pass

    @abstractmethod
    def list_comments(
        self,
        project_id: UUID,
        parent_id: Optional[UUID] = None,
        roots_only: bool = False,
        user_id: Optional[UUID] = None,
        content: Optional[str] = None,
        include_deleted: bool = True,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Comment]:
        """
        Filtered comments of a project, oldest first.

        Args:
            parent_id: Only replies to this comment
            roots_only: Only comments that reply to nothing
            user_id: Only comments by this author
            content: Case-insensitive fragment of the content
            include_deleted: Keep soft-deleted comments
        """
        pass


class IUnitOfWork(ABC):
    """
    Unit of Work Interface.

    Coordinates multiple repository operations as a single transaction.
    """

    @property
    @abstractmethod
    def users(self) -> IUserRepository:
        """User repository."""
        pass

    @property
    @abstractmethod
    def teams(self) -> ITeamRepository:
        """Team repository."""
        pass

    @property
    @abstractmethod
    def team_members(self) -> ITeamMemberRepository:
        """Team membership repository."""
        pass

    @property
    @abstractmethod
    def projects(self) -> IProjectRepository:
        """Project repository."""
        pass

    @property
    @abstractmethod
    def tasks(self) -> ITaskRepository:
        """Task repository."""
        pass

    @property
    @abstractmethod
    def comments(self) -> ICommentRepository:
        """Comment repository."""
        pass

    @abstractmethod
    def collect_event(self, event) -> None:
        """Queue a domain event for publication after commit."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit all changes."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Rollback all changes."""
        pass

    @abstractmethod
    def __enter__(self) -> 'IUnitOfWork':
        """Enter context."""
        pass

    @abstractmethod
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context (commit or rollback)."""
        pass
