"""Pytest configuration and fixtures for test suite."""

import os
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Set test environment BEFORE any other imports
os.environ.setdefault("ALLOCATION_ENVIRONMENT", "test")
os.environ.setdefault("DB_DRIVER", "sqlite")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from config.settings import AllocationSettings
from database.connection import create_session_factory, enable_sqlite_pragmas, init_db
from database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from domain.aggregates import Role
from domain.event_bus import EventBus
from domain.value_objects import CallerContext, ProjectDraft, TaskDraft, UserDraft
from services.allocation_service import AllocationService


TODAY = date(2030, 6, 1)


class FixedClock:
    """Settable stand-in for date.today."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int) -> date:
        self.today = self.today + timedelta(days=days)
        return self.today


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_pragmas(engine)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published(event_bus):
    """Every event published after a successful commit, in order."""
    events = []
    event_bus.subscribe_all(events.append)
    return events


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def settings():
    return AllocationSettings(
        max_active_projects_per_manager=5,
        max_active_projects_per_team=1,
        project_name_max_length=100,
        task_name_max_length=100,
        team_name_max_length=100,
    )


@pytest.fixture
def uow_factory(session_factory, event_bus):
    return UnitOfWorkFactory(session_factory, event_bus)


@pytest.fixture
def make_uow(session_factory, event_bus):
    """Open a unit of work directly against the test database."""
    def _make():
        return UnitOfWork(session_factory=session_factory, event_bus=event_bus)
    return _make


@pytest.fixture
def service(uow_factory, settings, clock):
    return AllocationService(uow_factory, settings=settings, clock=clock)


@pytest.fixture
def admin():
    return CallerContext.system()


class Factory:
    """Builds users, teams, projects and tasks through the service."""

    def __init__(self, service: AllocationService, caller: CallerContext, clock: FixedClock):
        self.service = service
        self.caller = caller
        self.clock = clock
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def user(self, role: Role, username: str = None):
        username = username or f"{role.value.lower()}_{self._next()}"
        return self.service.create_user(
            self.caller,
            UserDraft(username=username, first_name="Test", last_name=username, role=role),
        )

    def manager(self, username: str = None):
        return self.user(Role.PROJECT_MANAGER, username)

    def member(self, username: str = None):
        return self.user(Role.TEAM_MEMBER, username)

    def team(self, name: str = None, members=()):
        team = self.service.create_team(self.caller, name or f"Team {self._next()}")
        if members:
            team = self.service.add_team_members(
                self.caller, team.team_id, [m.user_id for m in members]
            )
        return team

    def project(self, manager=None, name: str = None, start: int = 0, due: int = 90, team=None):
        manager = manager or self.manager()
        today = self.clock()
        project = self.service.create_project(
            self.caller,
            ProjectDraft(
                manager_id=manager.user_id,
                name=name or f"Project {self._next()}",
                start_date=today + timedelta(days=start),
                due_date=today + timedelta(days=due),
            ),
        )
        if team is not None:
            project = self.service.assign_team(self.caller, project.project_id, team.team_id)
        return project

    def task(self, project, name: str = None, start: int = 0, due: int = 30, assignee=None):
        today = self.clock()
        return self.service.create_task(
            self.caller,
            TaskDraft(
                project_id=project.project_id,
                name=name or f"Task {self._next()}",
                start_date=today + timedelta(days=start),
                due_date=today + timedelta(days=due),
                assignee_id=assignee.user_id if assignee else None,
            ),
        )

    def staffed_project(self, members: int = 1):
        """A project with a fresh team of `members` team members."""
        people = [self.member() for _ in range(members)]
        team = self.team(members=people)
        project = self.project(team=team)
        return project, team, people


@pytest.fixture
def factory(service, admin, clock):
    return Factory(service, admin, clock)
