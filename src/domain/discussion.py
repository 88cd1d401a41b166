"""
Project Discussion Rules.

Comments belong to one project. Only the people working on it (its manager
and the active members of its team) may post, only the author may edit, and
the author or an administrator may delete. Deleted comments are kept so
that reply threads stay intact, but they can be neither edited nor answered.
"""

import logging
from typing import Optional
from uuid import UUID

from .aggregates import Comment, Project, Role, TeamMember, User
from .capacity import ensure_user_active
from .errors import (
    ErrorCode,
    IneligibleRoleError,
    InvalidStateError,
    NotFoundError,
)
from .lifecycle import ensure_project_open
from .value_objects import CallerContext

logger = logging.getLogger(__name__)


def is_project_participant(
    user: User,
    project: Project,
    membership: Optional[TeamMember],
) -> bool:
    """
    Whether `user` works on `project`.

    Args:
        user: Candidate author
        project: Project being discussed
        membership: The user's active membership, if any
    """
    if user.user_id == project.manager_id:
        return True
    return (
        project.team_id is not None
        and membership is not None
        and membership.is_active
        and membership.team_id == project.team_id
    )


def ensure_can_comment(user: User, project: Project, membership: Optional[TeamMember]) -> None:
    ensure_user_active(user)
    ensure_project_open(project, "comment on")
    if not is_project_participant(user, project, membership):
        logger.warning("User %s is not working on project %s", user.user_id, project.project_id)
        raise IneligibleRoleError(
            ErrorCode.NOT_PROJECT_PARTICIPANT,
            "User is not working on this project.",
            {"user_id": str(user.user_id), "project_id": str(project.project_id)},
        )


def ensure_valid_parent(parent: Comment, project_id: UUID) -> None:
    """A reply answers a live comment of the same project."""
    if parent.project_id != project_id:
        raise NotFoundError(
            ErrorCode.COMMENT_NOT_FOUND,
            "Parent comment not found in this project.",
            {"comment_id": str(parent.comment_id), "project_id": str(project_id)},
        )
    if parent.deleted:
        raise InvalidStateError(
            ErrorCode.COMMENT_DELETED,
            "Cannot reply to a deleted comment.",
        )


def ensure_comment_owner(comment: Comment, caller: CallerContext) -> None:
    if caller.user_id != comment.user_id:
        raise IneligibleRoleError(
            ErrorCode.NOT_COMMENT_OWNER,
            "Only the author can change this comment.",
            {"comment_id": str(comment.comment_id)},
        )


def ensure_comment_editable(comment: Comment, caller: CallerContext) -> None:
    ensure_comment_owner(comment, caller)
    if comment.deleted:
        raise InvalidStateError(
            ErrorCode.COMMENT_DELETED,
            "Cannot update a deleted comment.",
        )


def ensure_comment_deletable(comment: Comment, caller: CallerContext) -> None:
    """Authors delete their own comments; administrators delete any."""
    if caller.role != Role.ADMIN:
        ensure_comment_owner(comment, caller)
    if comment.deleted:
        raise InvalidStateError(
            ErrorCode.COMMENT_ALREADY_DELETED,
            "This comment has already been deleted.",
        )
