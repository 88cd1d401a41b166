"""Comment Repository Implementation.

Implements ICommentRepository using SQLAlchemy sync sessions. Deletion is a
flag on the row, written through `save`.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from domain.aggregates import Comment
from domain.errors import ErrorCode
from domain.repositories import ICommentRepository
from database.models import CommentRecord
from .base import SqlRepository, contains_ignore_case

logger = logging.getLogger(__name__)


class CommentRepository(SqlRepository[Comment], ICommentRepository):
    """SQLAlchemy implementation of ICommentRepository."""

    record_type = CommentRecord
    model_type = Comment
    id_field = "comment_id"
    not_found_code = ErrorCode.COMMENT_NOT_FOUND

    def list_by_project(self, project_id: UUID) -> List[Comment]:
        stmt = (
            select(CommentRecord)
            .where(CommentRecord.project_id == project_id)
            .order_by(CommentRecord.created_at)
        )
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def list_replies(self, parent_id: UUID) -> List[Comment]:
        stmt = (
            select(CommentRecord)
            .where(CommentRecord.parent_id == parent_id)
            .order_by(CommentRecord.created_at)
        )
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]

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
        stmt = select(CommentRecord).where(CommentRecord.project_id == project_id)
        if parent_id is not None:
            stmt = stmt.where(CommentRecord.parent_id == parent_id)
        elif roots_only:
            stmt = stmt.where(CommentRecord.parent_id.is_(None))
        if user_id is not None:
            stmt = stmt.where(CommentRecord.user_id == user_id)
        if content:
            stmt = stmt.where(contains_ignore_case(CommentRecord.content, content))
        if not include_deleted:
            stmt = stmt.where(CommentRecord.deleted.is_(False))
        stmt = stmt.order_by(CommentRecord.created_at).limit(limit).offset(offset)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]
