"""Project Repository Implementation.

Implements IProjectRepository using SQLAlchemy sync sessions. The active
counts back the manager and team capacity ceilings.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from domain.aggregates import Priority, Project, Status, TERMINAL_STATUSES
from domain.errors import ErrorCode
from domain.repositories import IProjectRepository
from database.models import ProjectRecord, TeamMemberRecord
from .base import SqlRepository, contains_ignore_case

logger = logging.getLogger(__name__)

_ACTIVE = ProjectRecord.status.not_in(list(TERMINAL_STATUSES))


class ProjectRepository(SqlRepository[Project], IProjectRepository):
    """SQLAlchemy implementation of IProjectRepository."""

    record_type = ProjectRecord
    model_type = Project
    id_field = "project_id"
    not_found_code = ErrorCode.PROJECT_NOT_FOUND

    def exists_by_name_ignore_case(self, name: str, exclude_id: Optional[UUID] = None) -> bool:
        return self._name_taken(ProjectRecord.name, name, exclude_id)

    def count_active_by_manager(self, manager_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(ProjectRecord)
            .where(ProjectRecord.manager_id == manager_id, _ACTIVE)
        )
        return self._session.execute(stmt).scalar() or 0

    def count_active_by_team(self, team_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(ProjectRecord)
            .where(ProjectRecord.team_id == team_id, _ACTIVE)
        )
        return self._session.execute(stmt).scalar() or 0

    def list_by_manager(self, manager_id: UUID, active_only: bool = False) -> List[Project]:
        stmt = select(ProjectRecord).where(ProjectRecord.manager_id == manager_id)
        if active_only:
            stmt = stmt.where(_ACTIVE)
        stmt = stmt.order_by(ProjectRecord.created_at)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def list_by_team(self, team_id: UUID, active_only: bool = False) -> List[Project]:
        stmt = select(ProjectRecord).where(ProjectRecord.team_id == team_id)
        if active_only:
            stmt = stmt.where(_ACTIVE)
        stmt = stmt.order_by(ProjectRecord.created_at)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def list_active(self) -> List[Project]:
        stmt = select(ProjectRecord).where(_ACTIVE).order_by(ProjectRecord.created_at)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]

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
        stmt = select(ProjectRecord)
        if status is not None:
            stmt = stmt.where(ProjectRecord.status == status)
        if priority is not None:
            stmt = stmt.where(ProjectRecord.priority == priority)
        if name:
            stmt = stmt.where(contains_ignore_case(ProjectRecord.name, name))
        if manager_id is not None:
            stmt = stmt.where(ProjectRecord.manager_id == manager_id)
        if team_id is not None:
            stmt = stmt.where(ProjectRecord.team_id == team_id)
        if member_id is not None:
            teams = select(TeamMemberRecord.team_id).where(
                TeamMemberRecord.user_id == member_id,
                TeamMemberRecord.is_active.is_(True),
            )
            stmt = stmt.where(ProjectRecord.team_id.in_(teams))
        stmt = stmt.order_by(ProjectRecord.created_at).limit(limit).offset(offset)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]
