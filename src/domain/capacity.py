"""
Assignment & Capacity Engine.

Answers two questions for the Allocation Service:
- may this user / team take on one more active project?
- may this user be assigned work in this team?

Counts are only meaningful after the counted owner row (the manager's user
row or the team row) has been loaded with `for_update=True` in the same
unit of work. The orchestrator takes that lock before calling in here.
"""

import logging
from typing import Optional
from uuid import UUID

from .aggregates import Role, Team, TeamMember, User
from .errors import (
    AlreadyActiveError,
    AlreadyInactiveError,
    CapacityExceededError,
    ErrorCode,
    IneligibleRoleError,
    InvalidStateError,
)
from .repositories import IUnitOfWork

logger = logging.getLogger(__name__)


# =============================================================================
# COUNTS
# =============================================================================

def manager_active_project_count(uow: IUnitOfWork, manager_id: UUID) -> int:
    return uow.projects.count_active_by_manager(manager_id)


def team_active_project_count(uow: IUnitOfWork, team_id: UUID) -> int:
    return uow.projects.count_active_by_team(team_id)


# =============================================================================
# ACTIVITY AND ROLE
# =============================================================================

def ensure_user_active(user: User) -> None:
    if not user.active:
        raise InvalidStateError(
            ErrorCode.USER_INACTIVE,
            "User is inactive.",
            {"user_id": str(user.user_id)},
        )


def ensure_team_active(team: Team) -> None:
    if not team.active:
        raise InvalidStateError(
            ErrorCode.TEAM_INACTIVE,
            "Team is inactive.",
            {"team_id": str(team.team_id)},
        )


def ensure_role(user: User, role: Role) -> None:
    if user.role != role:
        code = (
            ErrorCode.ROLE_NOT_PROJECT_MANAGER
            if role == Role.PROJECT_MANAGER
            else ErrorCode.ROLE_NOT_TEAM_MEMBER
        )
        raise IneligibleRoleError(
            code,
            f"User must have role {role.value}.",
            {"user_id": str(user.user_id), "role": user.role.value},
        )


# =============================================================================
# CEILINGS
# =============================================================================

def ensure_manager_capacity(uow: IUnitOfWork, manager: User, ceiling: int) -> None:
    """Reject a manager already holding `ceiling` non-terminal projects."""
    count = manager_active_project_count(uow, manager.user_id)
    if count >= ceiling:
        logger.warning(
            "Manager %s at capacity (%d/%d)", manager.user_id, count, ceiling
        )
        raise CapacityExceededError(
            ErrorCode.MANAGER_CAPACITY_EXCEEDED,
            f"Project manager cannot manage more than {ceiling} active projects.",
            {"active_projects": count, "ceiling": ceiling},
        )


def ensure_team_capacity(uow: IUnitOfWork, team: Team, ceiling: int) -> None:
    """Reject a team already staffing `ceiling` non-terminal projects."""
    count = team_active_project_count(uow, team.team_id)
    if count >= ceiling:
        logger.warning("Team %s at capacity (%d/%d)", team.team_id, count, ceiling)
        raise CapacityExceededError(
            ErrorCode.TEAM_CAPACITY_EXCEEDED,
            "Team is already assigned to an active project.",
            {"active_projects": count, "ceiling": ceiling},
        )


def ensure_project_manager_eligible(uow: IUnitOfWork, manager: User, ceiling: int) -> None:
    """An eligible manager is active, a PROJECT_MANAGER and under the ceiling."""
    ensure_user_active(manager)
    ensure_role(manager, Role.PROJECT_MANAGER)
    ensure_manager_capacity(uow, manager, ceiling)


def ensure_team_assignable(uow: IUnitOfWork, team: Team, ceiling: int) -> None:
    ensure_team_active(team)
    ensure_team_capacity(uow, team, ceiling)


# =============================================================================
# ASSIGNEES AND MEMBERSHIPS
# =============================================================================

def is_eligible_assignee(user: User, membership: Optional[TeamMember], team_id: UUID) -> bool:
    """
    Whether `user` may be assigned tasks of a project staffed by `team_id`.

    Args:
        user: Candidate assignee
        membership: The user's active membership, if any
        team_id: The project's team
    """
    return (
        user.active
        and user.role == Role.TEAM_MEMBER
        and membership is not None
        and membership.is_active
        and membership.team_id == team_id
    )


def ensure_eligible_assignee(user: User, membership: Optional[TeamMember], team_id: UUID) -> None:
    """Raise the most specific error explaining why `user` is not eligible."""
    if is_eligible_assignee(user, membership, team_id):
        return
    ensure_user_active(user)
    ensure_role(user, Role.TEAM_MEMBER)
    raise IneligibleRoleError(
        ErrorCode.NOT_TEAM_MEMBER,
        "User is not an active member of the project's team.",
        {"user_id": str(user.user_id), "team_id": str(team_id)},
    )


def ensure_sole_active_membership(user: User, membership: Optional[TeamMember]) -> None:
    """A user belongs to at most one team at a time."""
    if membership is not None and membership.is_active:
        raise AlreadyActiveError(
            ErrorCode.MEMBERSHIP_ALREADY_ACTIVE,
            "User is already an active member of a team.",
            {"user_id": str(user.user_id), "team_id": str(membership.team_id)},
        )


def ensure_can_join_team(user: User, membership: Optional[TeamMember]) -> None:
    ensure_role(user, Role.TEAM_MEMBER)
    ensure_user_active(user)
    ensure_sole_active_membership(user, membership)


# =============================================================================
# DEACTIVATION
# =============================================================================

def ensure_user_deactivatable(uow: IUnitOfWork, user: User) -> None:
    """
    Reject deactivating an inactive user, or a manager with live projects.

    A TEAM_MEMBER is always deactivatable; the orchestrator unassigns their
    in-progress tasks first.
    """
    if not user.active:
        raise AlreadyInactiveError(
            ErrorCode.USER_ALREADY_INACTIVE,
            "User is already inactive.",
        )
    if user.role == Role.PROJECT_MANAGER:
        count = manager_active_project_count(uow, user.user_id)
        if count:
            raise InvalidStateError(
                ErrorCode.PROJECT_MANAGES_ACTIVE,
                "Cannot deactivate a project manager who still manages active projects.",
                {"active_projects": count},
            )


def ensure_team_deactivatable(uow: IUnitOfWork, team: Team) -> None:
    if not team.active:
        raise AlreadyInactiveError(
            ErrorCode.TEAM_ALREADY_INACTIVE,
            "Team is already inactive.",
        )
    if team_active_project_count(uow, team.team_id):
        raise InvalidStateError(
            ErrorCode.TEAM_STAFFS_ACTIVE_PROJECT,
            "Cannot deactivate a team assigned to an active project.",
        )
