"""Shared SQLAlchemy repository plumbing.

Records and domain aggregates use the same field names, so mapping in both
directions is a field-by-field copy driven by the pydantic model fields.
"""

from __future__ import annotations

import logging
from typing import Generic, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from domain.errors import ErrorCode, NotFoundError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class SqlRepository(Generic[M]):
    """
    Base for sync SQLAlchemy repositories.

    Subclasses set the record class, the domain model, the primary key
    column name and the NotFound error code.
    """

    record_type: Type = None
    model_type: Type[M] = None
    id_field: str = ""
    not_found_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, session: Session):
        """
        Initialize repository with a session.

        Args:
            session: SQLAlchemy session owned by the unit of work.
        """
        self._session = session

    @property
    def _id_column(self):
        return getattr(self.record_type, self.id_field)

    def _to_domain(self, record) -> M:
        return self.model_type.model_validate(record, from_attributes=True)

    def _apply(self, record, entity: M) -> None:
        for name in self.model_type.model_fields:
            setattr(record, name, getattr(entity, name))

    def _load(self, id: UUID, for_update: bool = False):
        stmt = select(self.record_type).where(self._id_column == id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self._session.execute(stmt).scalar_one_or_none()

    def get(self, id: UUID, for_update: bool = False) -> Optional[M]:
        record = self._load(id, for_update)
        if record is None:
            return None
        return self._to_domain(record)

    def require(self, id: UUID, for_update: bool = False) -> M:
        entity = self.get(id, for_update)
        if entity is None:
            name = self.model_type.__name__
            logger.warning(f"{name} not found: {id}")
            raise NotFoundError(
                self.not_found_code,
                f"{name} not found.",
                {self.id_field: str(id)},
            )
        return entity

    def save(self, entity: M) -> None:
        """Insert or update, then flush so later queries in the transaction see it."""
        id = getattr(entity, self.id_field)
        record = self._session.get(self.record_type, id)
        if record is None:
            record = self.record_type()
            self._apply(record, entity)
            self._session.add(record)
        else:
            self._apply(record, entity)
        self._session.flush()
        logger.debug(f"Saved {self.model_type.__name__}: {id}")

    def delete(self, id: UUID) -> bool:
        result = self._session.execute(
            delete(self.record_type).where(self._id_column == id)
        )
        deleted = result.rowcount > 0
        if deleted:
            logger.debug(f"Deleted {self.model_type.__name__}: {id}")
        return deleted

    def exists(self, id: UUID) -> bool:
        stmt = select(func.count()).select_from(self.record_type).where(self._id_column == id)
        return (self._session.execute(stmt).scalar() or 0) > 0

    def _name_taken(self, column, name: str, exclude_id: Optional[UUID], *criteria) -> bool:
        stmt = (
            select(func.count())
            .select_from(self.record_type)
            .where(func.lower(column) == name.lower(), *criteria)
        )
        if exclude_id is not None:
            stmt = stmt.where(self._id_column != exclude_id)
        return (self._session.execute(stmt).scalar() or 0) > 0


def contains_ignore_case(column, fragment: str):
    """`column` contains `fragment`, ignoring case; LIKE wildcards are escaped."""
    return func.lower(column).contains(fragment.lower(), autoescape=True)
