"""Team and Team Membership Repository Implementations.

Implements ITeamRepository and ITeamMemberRepository using SQLAlchemy sync
sessions. Membership rows are never deleted.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from domain.aggregates import Team, TeamMember
from domain.errors import ErrorCode
from domain.repositories import ITeamMemberRepository, ITeamRepository
from database.models import TeamMemberRecord, TeamRecord
from .base import SqlRepository, contains_ignore_case

logger = logging.getLogger(__name__)


class TeamRepository(SqlRepository[Team], ITeamRepository):
    """SQLAlchemy implementation of ITeamRepository."""

    record_type = TeamRecord
    model_type = Team
    id_field = "team_id"
    not_found_code = ErrorCode.TEAM_NOT_FOUND

    def exists_by_name_ignore_case(self, name: str, exclude_id: Optional[UUID] = None) -> bool:
        return self._name_taken(TeamRecord.name, name, exclude_id)

    def list_teams(
        self,
        active: Optional[bool] = None,
        name: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Team]:
        stmt = select(TeamRecord)
        if active is not None:
            stmt = stmt.where(TeamRecord.active.is_(active))
        if name:
            stmt = stmt.where(contains_ignore_case(TeamRecord.name, name))
        stmt = stmt.order_by(TeamRecord.name).limit(limit).offset(offset)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]


class TeamMemberRepository(SqlRepository[TeamMember], ITeamMemberRepository):
    """SQLAlchemy implementation of ITeamMemberRepository."""

    record_type = TeamMemberRecord
    model_type = TeamMember
    id_field = "team_member_id"
    not_found_code = ErrorCode.TEAM_MEMBER_NOT_FOUND

    def get_active_for_user(self, user_id: UUID) -> Optional[TeamMember]:
        stmt = (
            select(TeamMemberRecord)
            .where(
                TeamMemberRecord.user_id == user_id,
                TeamMemberRecord.is_active.is_(True),
            )
            .order_by(TeamMemberRecord.join_date.desc())
            .limit(1)
        )
        record = self._session.execute(stmt).scalar_one_or_none()
        return self._to_domain(record) if record is not None else None

    def get_active(self, team_id: UUID, user_id: UUID) -> Optional[TeamMember]:
        stmt = (
            select(TeamMemberRecord)
            .where(
                TeamMemberRecord.team_id == team_id,
                TeamMemberRecord.user_id == user_id,
                TeamMemberRecord.is_active.is_(True),
            )
            .limit(1)
        )
        record = self._session.execute(stmt).scalar_one_or_none()
        return self._to_domain(record) if record is not None else None

    def list_by_team(self, team_id: UUID, active_only: bool = True) -> List[TeamMember]:
        stmt = select(TeamMemberRecord).where(TeamMemberRecord.team_id == team_id)
        if active_only:
            stmt = stmt.where(TeamMemberRecord.is_active.is_(True))
        stmt = stmt.order_by(TeamMemberRecord.join_date)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]
