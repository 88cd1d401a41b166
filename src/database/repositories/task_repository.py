"""Task Repository Implementation.

Implements ITaskRepository using SQLAlchemy sync sessions.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select

from domain.aggregates import Status, Task, TERMINAL_STATUSES
from domain.errors import ErrorCode
from domain.repositories import ITaskRepository
from database.models import TaskRecord
from .base import SqlRepository

logger = logging.getLogger(__name__)


class TaskRepository(SqlRepository[Task], ITaskRepository):
    """SQLAlchemy implementation of ITaskRepository."""

    record_type = TaskRecord
    model_type = Task
    id_field = "task_id"
    not_found_code = ErrorCode.TASK_NOT_FOUND

    def exists_by_name_ignore_case(
        self,
        project_id: UUID,
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        return self._name_taken(
            TaskRecord.name, name, exclude_id, TaskRecord.project_id == project_id
        )

    def list_by_project(self, project_id: UUID) -> List[Task]:
        stmt = (
            select(TaskRecord)
            .where(TaskRecord.project_id == project_id)
            .order_by(TaskRecord.created_at)
        )
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def list_by_assignee(
        self,
        user_id: UUID,
        statuses: Optional[Iterable[Status]] = None,
        project_ids: Optional[Iterable[UUID]] = None,
    ) -> List[Task]:
        stmt = select(TaskRecord).where(TaskRecord.assignee_id == user_id)
        if statuses is not None:
            stmt = stmt.where(TaskRecord.status.in_(list(statuses)))
        if project_ids is not None:
            stmt = stmt.where(TaskRecord.project_id.in_(list(project_ids)))
        stmt = stmt.order_by(TaskRecord.created_at)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def list_tasks(
        self,
        project_id: Optional[UUID] = None,
        assignee_id: Optional[UUID] = None,
        status: Optional[Status] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Task]:
        stmt = select(TaskRecord)
        if project_id is not None:
            stmt = stmt.where(TaskRecord.project_id == project_id)
        if assignee_id is not None:
            stmt = stmt.where(TaskRecord.assignee_id == assignee_id)
        if status is not None:
            stmt = stmt.where(TaskRecord.status == status)
        stmt = stmt.order_by(TaskRecord.created_at).limit(limit).offset(offset)
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def list_overdue_by_assignee(
        self,
        user_id: UUID,
        today: date,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Task]:
        stmt = (
            select(TaskRecord)
            .where(
                TaskRecord.assignee_id == user_id,
                TaskRecord.due_date < today,
                TaskRecord.status.not_in(list(TERMINAL_STATUSES)),
            )
            .order_by(TaskRecord.due_date, TaskRecord.created_at)
            .limit(limit)
            .offset(offset)
        )
        return [self._to_domain(r) for r in self._session.execute(stmt).scalars().all()]
