"""User Repository Implementation.

Implements IUserRepository using SQLAlchemy sync sessions.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select

from domain.aggregates import Role, User
from domain.errors import ErrorCode
from domain.repositories import IUserRepository
from database.models import TaskRecord, TeamMemberRecord, UserRecord
from .base import SqlRepository, contains_ignore_case

logger = logging.getLogger(__name__)


class UserRepository(SqlRepository[User], IUserRepository):
    """SQLAlchemy implementation of IUserRepository."""

    record_type = UserRecord
    model_type = User
    id_field = "user_id"
    not_found_code = ErrorCode.USER_NOT_FOUND

    def exists_by_username(self, username: str) -> bool:
        stmt = select(func.count()).select_from(UserRecord).where(UserRecord.username == username)
        return (self._session.execute(stmt).scalar() or 0) > 0

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
        stmt = select(UserRecord)
        if role is not None:
            stmt = stmt.where(UserRecord.role == role)
        if active is not None:
            stmt = stmt.where(UserRecord.active.is_(active))
        if search:
            stmt = stmt.where(or_(
                contains_ignore_case(UserRecord.username, search),
                contains_ignore_case(UserRecord.first_name, search),
                contains_ignore_case(UserRecord.last_name, search),
            ))
        if team_id is not None:
            members = select(TeamMemberRecord.user_id).where(
                TeamMemberRecord.team_id == team_id,
                TeamMemberRecord.is_active.is_(True),
            )
            stmt = stmt.where(UserRecord.user_id.in_(members))
        if project_id is not None:
            assignees = select(TaskRecord.assignee_id).where(
                TaskRecord.project_id == project_id,
                TaskRecord.assignee_id.is_not(None),
            )
            stmt = stmt.where(UserRecord.user_id.in_(assignees))
        stmt = stmt.order_by(UserRecord.username).limit(limit).offset(offset)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]
