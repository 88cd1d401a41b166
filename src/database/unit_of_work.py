"""Unit of Work Pattern Implementation.

Coordinates multiple repository operations as a single transaction.
Provides transactional guarantees across aggregate boundaries: an
allocation operation either persists every touched entity or none.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, List

from sqlalchemy.orm import Session

from domain.repositories import IUnitOfWork
from domain.events import DomainEvent
from domain.event_bus import EventBus, get_event_bus
from database.connection import get_sync_session_factory
from database.repositories import (
    CommentRepository,
    ProjectRepository,
    TaskRepository,
    TeamMemberRepository,
    TeamRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class UnitOfWork(IUnitOfWork):
    """
    Unit of Work implementation using SQLAlchemy sessions.

    Coordinates multiple repository operations within a single database
    transaction. Automatically commits on success or rolls back on failure.

    Usage:
        with UnitOfWork() as uow:
            uow.projects.save(project)
            uow.commit()

    The context manager automatically handles:
    - Creating a database session
    - Committing on clean exit
    - Rolling back on exception
    - Publishing collected events once the commit succeeded
    - Closing the session
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        event_bus: Optional[EventBus] = None,
        session: Optional[Session] = None,
    ):
        """
        Initialize the unit of work.

        Args:
            session_factory: Factory for new sessions. Defaults to the global one.
            event_bus: Bus receiving events after commit. Defaults to the global one.
            session: Optional existing session. If given, it is not closed on exit.
        """
        self._session_factory = session_factory
        self._event_bus = event_bus
        self._session: Optional[Session] = session
        self._owns_session: bool = session is None
        self._committed: bool = False

        # Lazy-initialized repositories
        self._users: Optional[UserRepository] = None
        self._teams: Optional[TeamRepository] = None
        self._team_members: Optional[TeamMemberRepository] = None
        self._projects: Optional[ProjectRepository] = None
        self._tasks: Optional[TaskRepository] = None
        self._comments: Optional[CommentRepository] = None

        # Collected domain events
        self._pending_events: List[DomainEvent] = []

    @property
    def session(self) -> Session:
        """Get the underlying session."""
        if self._session is None:
            raise RuntimeError("UnitOfWork not initialized. Use 'with' context.")
        return self._session

    @property
    def users(self) -> UserRepository:
        """Get the user repository."""
        if self._users is None:
            self._users = UserRepository(self.session)
        return self._users

    @property
    def teams(self) -> TeamRepository:
        """Get the team repository."""
        if self._teams is None:
            self._teams = TeamRepository(self.session)
        return self._teams

    @property
    def team_members(self) -> TeamMemberRepository:
        """Get the team membership repository."""
        if self._team_members is None:
            self._team_members = TeamMemberRepository(self.session)
        return self._team_members

    @property
    def projects(self) -> ProjectRepository:
        """Get the project repository."""
        if self._projects is None:
            self._projects = ProjectRepository(self.session)
        return self._projects

    @property
    def tasks(self) -> TaskRepository:
        """Get the task repository."""
        if self._tasks is None:
            self._tasks = TaskRepository(self.session)
        return self._tasks

    @property
    def comments(self) -> CommentRepository:
        """Get the comment repository."""
        if self._comments is None:
            self._comments = CommentRepository(self.session)
        return self._comments

    @property
    def pending_events(self) -> List[DomainEvent]:
        return list(self._pending_events)

    def collect_event(self, event: DomainEvent) -> None:
        """
        Collect a domain event for publishing after commit.

        Args:
            event: Domain event to publish.
        """
        self._pending_events.append(event)

    def collect_events(self, events: List[DomainEvent]) -> None:
        """Collect multiple domain events."""
        self._pending_events.extend(events)

    def commit(self) -> None:
        """
        Commit all changes.

        Flushes all pending operations to the database and commits
        the transaction. After commit, publishes collected domain events.
        """
        if self._session is None:
            raise RuntimeError("UnitOfWork not initialized")

        if self._committed:
            return

        self._session.commit()
        self._committed = True
        logger.debug("UnitOfWork committed")

        # Publish events after successful commit
        self._publish_events()

    def rollback(self) -> None:
        """
        Rollback all changes.

        Discards all pending changes and clears collected events.
        """
        if self._session is None:
            return

        self._session.rollback()
        self._pending_events.clear()
        logger.debug("UnitOfWork rolled back")

    def _publish_events(self) -> None:
        """Publish collected domain events."""
        if not self._pending_events:
            return

        events, self._pending_events = self._pending_events, []
        bus = self._event_bus or get_event_bus()
        published = bus.publish_all(events)
        logger.debug(f"Published {published} domain event(s)")

    def __enter__(self) -> "UnitOfWork":
        """Enter the context."""
        if self._session is None:
            factory = self._session_factory or get_sync_session_factory()
            self._session = factory()
            self._owns_session = True
        self._committed = False
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """
        Exit the context.

        Commits if no exception, rolls back otherwise.
        Always closes the session if we own it.
        """
        try:
            if exc_type is not None:
                self.rollback()
                logger.debug(f"UnitOfWork rolled back due to: {exc_type.__name__}")
            elif not self._committed:
                self.commit()
        finally:
            if self._owns_session and self._session is not None:
                self._session.close()
                self._session = None
                self._users = None
                self._teams = None
                self._team_members = None
                self._projects = None
                self._tasks = None
                self._comments = None


class UnitOfWorkFactory:
    """
    Factory for creating unit of work instances.

    Injected into the Allocation Service so every operation gets a fresh
    unit of work on the configured database and event bus.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._session_factory = session_factory
        self._event_bus = event_bus

    def create(self) -> UnitOfWork:
        """Create a new unit of work."""
        return UnitOfWork(session_factory=self._session_factory, event_bus=self._event_bus)

    __call__ = create
