"""
Database Layer for the Resource Allocation Engine.

This module provides:
- SQLAlchemy ORM models for users, teams, memberships, projects, tasks and comments
- Sync engine and session management with connection pooling
- Repository implementations and the Unit of Work
"""

from .models import (
    Base,
    UserRecord,
    TeamRecord,
    TeamMemberRecord,
    ProjectRecord,
    TaskRecord,
    CommentRecord,
)
from .connection import (
    create_db_engine,
    create_session_factory,
    enable_sqlite_pragmas,
    get_sync_engine,
    get_sync_session_factory,
    get_db_session,
    init_db,
    check_database_connection,
    close_sync_engine,
)
from .unit_of_work import UnitOfWork, UnitOfWorkFactory

__all__ = [
    # Models
    "Base",
    "UserRecord",
    "TeamRecord",
    "TeamMemberRecord",
    "ProjectRecord",
    "TaskRecord",
    "CommentRecord",
    # Connection
    "create_db_engine",
    "create_session_factory",
    "enable_sqlite_pragmas",
    "get_sync_engine",
    "get_sync_session_factory",
    "get_db_session",
    "init_db",
    "check_database_connection",
    "close_sync_engine",
    # Unit of Work
    "UnitOfWork",
    "UnitOfWorkFactory",
]
