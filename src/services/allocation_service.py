"""
Allocation Service.

Orchestrates every state-changing operation on users, teams, projects,
tasks and project comments. Each public method runs in exactly one unit of
work:

    read -> validate -> mutate -> persist -> commit -> publish -> project

Guards from the lifecycle and capacity modules run before any mutation, and
any exception rolls the whole unit of work back, so no operation is ever
observably half-applied. Rows whose counts feed a ceiling (the manager's
user row, the team row) are loaded with for_update=True before counting.

Usage:
    service = AllocationService(UnitOfWorkFactory(session_factory))
    caller = CallerContext(user_id=admin_id, role=Role.ADMIN)

    project = service.create_project(caller, ProjectDraft(
        manager_id=pm_id, name="Apollo",
        start_date=date.today(), due_date=date.today() + timedelta(days=60),
    ))
"""

import logging
from datetime import date
from typing import Callable, Iterable, List, Mapping, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ValidationError

from config.settings import AllocationSettings, get_settings
from domain import capacity, discussion, lifecycle
from domain.aggregates import (
    Comment,
    Priority,
    Project,
    Role,
    Status,
    Task,
    Team,
    TeamMember,
    User,
)
from domain.errors import (
    AlreadyActiveError,
    DomainValidationError,
    ErrorCode,
    InvalidStateError,
    NotFoundError,
)
from domain.events import (
    CommentDeleted,
    CommentEdited,
    CommentPosted,
    ProjectCancelled,
    ProjectCompleted,
    ProjectCreated,
    ProjectManagerChanged,
    ProjectUpdated,
    TaskAssigned,
    TaskCompleted,
    TaskCreated,
    TaskRemoved,
    TaskUnassigned,
    TeamAssignedToProject,
    TeamMembersAdded,
    TeamMembersRemoved,
    TeamReassigned,
    UserActivated,
    UserDeactivated,
)
from domain.naming import resolve_unique_name
from domain.priority import refresh_priority
from domain.projections import (
    CommentView,
    ProjectView,
    TaskView,
    TeamMemberView,
    TeamView,
    UserView,
    completion_percentage,
)
from domain.repositories import IUnitOfWork
from domain.value_objects import (
    CallerContext,
    CommentDraft,
    ProjectChanges,
    ProjectDraft,
    TaskChanges,
    TaskDraft,
    UserDraft,
)
from services.logging_config import log_operation

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ACTIVE_TASK_STATUSES = (Status.NOT_STARTED, Status.IN_PROGRESS)


def _parse(model: Type[M], data: Union[M, Mapping]) -> M:
    """Accept a ready input model or a plain field mapping."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DomainValidationError(
            f"Invalid {model.__name__} input.",
            details={
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ]
            },
        ) from e


def _clean_name(name: str, max_length: int, field: str = "Name") -> str:
    name = (name or "").strip()
    if not name:
        raise DomainValidationError(f"{field} cannot be empty.")
    if len(name) > max_length:
        raise DomainValidationError(
            f"{field} cannot be longer than {max_length} characters.",
            details={"max_length": max_length},
        )
    return name


def _check_page(limit: int, offset: int) -> None:
    if limit < 1 or offset < 0:
        raise DomainValidationError(
            "limit must be positive and offset non-negative.",
            details={"limit": limit, "offset": offset},
        )


def _dedupe(ids: Iterable[UUID]) -> List[UUID]:
    seen = []
    for id in ids:
        if id not in seen:
            seen.append(id)
    return seen


class AllocationService:
    """
    Entry point for all allocation operations.

    Args:
        uow_factory: Callable returning a fresh IUnitOfWork per operation.
        settings: Ceilings and name limits. Defaults to environment settings.
        clock: Returns "today". Injected so date rules are testable.
    """

    def __init__(
        self,
        uow_factory: Optional[Callable[[], IUnitOfWork]] = None,
        settings: Optional[AllocationSettings] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        if uow_factory is None:
            from database.unit_of_work import UnitOfWorkFactory
            uow_factory = UnitOfWorkFactory()
        self._uow_factory = uow_factory
        self._settings = settings or get_settings()
        self._clock = clock or date.today

    def _today(self) -> date:
        return self._clock()

    # =========================================================================
    # PROJECTION HELPERS
    # =========================================================================

    def _user_view(self, uow: IUnitOfWork, user: User) -> UserView:
        return UserView.build(
            user,
            membership=uow.team_members.get_active_for_user(user.user_id),
            managed=uow.projects.list_by_manager(user.user_id),
            assigned=uow.tasks.list_by_assignee(user.user_id),
        )

    def _team_view(self, uow: IUnitOfWork, team: Team) -> TeamView:
        return TeamView.build(
            team,
            memberships=uow.team_members.list_by_team(team.team_id, active_only=True),
            projects=uow.projects.list_by_team(team.team_id),
        )

    def _project_view(self, uow: IUnitOfWork, project: Project) -> ProjectView:
        return ProjectView.build(
            project,
            uow.tasks.list_by_project(project.project_id),
            uow.comments.list_by_project(project.project_id),
        )

    def _comment_view(self, uow: IUnitOfWork, comment: Comment) -> CommentView:
        return CommentView.build(comment, uow.comments.list_replies(comment.comment_id))

    def _fresh(self, uow: IUnitOfWork, project: Project) -> Project:
        """Recompute the date-driven priority and persist it if it moved."""
        if refresh_priority(project, self._today()):
            uow.projects.save(project)
        return project

    # =========================================================================
    # SHARED STEPS
    # =========================================================================

    def _unassign(
        self,
        uow: IUnitOfWork,
        caller: CallerContext,
        task: Task,
        reason: str,
    ) -> None:
        previous = lifecycle.unassign_task(task)
        uow.tasks.save(task)
        if previous is not None:
            uow.collect_event(TaskUnassigned(
                aggregate_id=task.task_id,
                metadata=caller.to_metadata(),
                task_id=task.task_id,
                project_id=task.project_id,
                previous_assignee_id=previous,
                reason=reason,
            ))

    def _assign(
        self,
        uow: IUnitOfWork,
        caller: CallerContext,
        project: Project,
        task: Task,
        user_id: UUID,
    ) -> None:
        """Validate and apply an assignment, promoting the project on first use."""
        lifecycle.ensure_project_open(project, "assign tasks of")
        if project.team_id is None:
            raise InvalidStateError(
                ErrorCode.PROJECT_TEAM_MISSING,
                "Project has no team to assign tasks to.",
            )
        user = uow.users.require(user_id)
        membership = uow.team_members.get_active_for_user(user_id)
        capacity.ensure_eligible_assignee(user, membership, project.team_id)

        previous = task.assignee_id
        lifecycle.assign_task(task, user_id)
        uow.tasks.save(task)

        if lifecycle.start_project(project):
            refresh_priority(project, self._today())
            uow.projects.save(project)
            logger.info(f"Project {project.project_id} started on first assignment")

        uow.collect_event(TaskAssigned(
            aggregate_id=task.task_id,
            metadata=caller.to_metadata(),
            task_id=task.task_id,
            project_id=task.project_id,
            assignee_id=user_id,
            previous_assignee_id=previous,
        ))

    def _remove_task(
        self,
        uow: IUnitOfWork,
        caller: CallerContext,
        task: Task,
        cascade: bool,
    ) -> None:
        """
        Detach a task from its project.

        Standalone removal deletes the row. Cascade removal (from project
        removal) keeps the row for audit and cancels the task instead.
        """
        if task.assignee_id is not None:
            self._unassign(uow, caller, task, "task_removed")
        if cascade:
            lifecycle.cancel_task(task)
            uow.tasks.save(task)
        else:
            uow.tasks.delete(task.task_id)
        uow.collect_event(TaskRemoved(
            aggregate_id=task.task_id,
            metadata=caller.to_metadata(),
            task_id=task.task_id,
            project_id=task.project_id,
            cascade=cascade,
        ))

    def _delete_comment(self, uow: IUnitOfWork, caller: CallerContext, comment: Comment) -> None:
        comment.soft_delete()
        uow.comments.save(comment)
        uow.collect_event(CommentDeleted(
            aggregate_id=comment.comment_id,
            metadata=caller.to_metadata(),
            comment_id=comment.comment_id,
            project_id=comment.project_id,
        ))

    # =========================================================================
    # USERS
    # =========================================================================

    @log_operation()
    def create_user(self, caller: CallerContext, draft: Union[UserDraft, Mapping]) -> UserView:
        """Register a user. Usernames are unique; the role never changes."""
        draft = _parse(UserDraft, draft)
        with self._uow_factory() as uow:
            if uow.users.exists_by_username(draft.username):
                raise DomainValidationError(
                    "Username is already taken.",
                    ErrorCode.VALIDATION_DUPLICATE,
                    {"username": draft.username},
                )
            user = User(**draft.model_dump())
            uow.users.save(user)
            view = self._user_view(uow, user)
        return view

    @log_operation()
    def get_user(self, caller: CallerContext, user_id: UUID) -> UserView:
        with self._uow_factory() as uow:
            return self._user_view(uow, uow.users.require(user_id))

    @log_operation()
    def list_users(
        self,
        caller: CallerContext,
        role: Optional[Role] = None,
        active: Optional[bool] = None,
        search: Optional[str] = None,
        team_id: Optional[UUID] = None,
        project_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[UserView]:
        """
        List users, optionally narrowed down.

        `search` matches username, first or last name ignoring case;
        `team_id` keeps the team's active members; `project_id` keeps users
        assigned at least one of the project's tasks.
        """
        _check_page(limit, offset)
        with self._uow_factory() as uow:
            if team_id is not None:
                uow.teams.require(team_id)
            if project_id is not None:
                uow.projects.require(project_id)
            users = uow.users.list_users(
                role=role, active=active, search=search,
                team_id=team_id, project_id=project_id,
                limit=limit, offset=offset,
            )
            return [self._user_view(uow, user) for user in users]

    @log_operation()
    def deactivate_user(self, caller: CallerContext, user_id: UUID) -> UserView:
        """
        Deactivate a user.

        A project manager must not manage any open project. A team member's
        in-progress tasks are unassigned first; their status is kept.
        """
        with self._uow_factory() as uow:
            user = uow.users.require(user_id, for_update=True)
            capacity.ensure_user_deactivatable(uow, user)

            unassigned = []
            if user.role == Role.TEAM_MEMBER:
                for task in uow.tasks.list_by_assignee(user_id, statuses=[Status.IN_PROGRESS]):
                    self._unassign(uow, caller, task, "user_deactivated")
                    unassigned.append(task.task_id)

            user.active = False
            uow.users.save(user)
            uow.collect_event(UserDeactivated(
                aggregate_id=user_id,
                metadata=caller.to_metadata(),
                user_id=user_id,
                unassigned_task_ids=unassigned,
            ))
            view = self._user_view(uow, user)
        return view

    @log_operation()
    def activate_user(self, caller: CallerContext, user_id: UUID) -> UserView:
        with self._uow_factory() as uow:
            user = uow.users.require(user_id, for_update=True)
            if user.active:
                raise AlreadyActiveError(ErrorCode.USER_ALREADY_ACTIVE, "User is already active.")
            user.active = True
            uow.users.save(user)
            uow.collect_event(UserActivated(
                aggregate_id=user_id,
                metadata=caller.to_metadata(),
                user_id=user_id,
            ))
            view = self._user_view(uow, user)
        return view

    # =========================================================================
    # TEAMS
    # =========================================================================

    @log_operation()
    def create_team(self, caller: CallerContext, name: str) -> TeamView:
        """Create an active, empty team. A taken name gets a " (n)" suffix."""
        max_length = self._settings.team_name_max_length
        name = _clean_name(name, max_length, "Team name")
        with self._uow_factory() as uow:
            name = resolve_unique_name(name, uow.teams.exists_by_name_ignore_case, max_length)
            team = Team(name=name)
            uow.teams.save(team)
            view = self._team_view(uow, team)
        return view

    @log_operation()
    def rename_team(self, caller: CallerContext, team_id: UUID, name: str) -> TeamView:
        max_length = self._settings.team_name_max_length
        name = _clean_name(name, max_length, "Team name")
        with self._uow_factory() as uow:
            team = uow.teams.require(team_id, for_update=True)
            if name != team.name:
                team.name = resolve_unique_name(
                    name,
                    lambda n: uow.teams.exists_by_name_ignore_case(n, exclude_id=team_id),
                    max_length,
                )
                uow.teams.save(team)
            view = self._team_view(uow, team)
        return view

    @log_operation()
    def deactivate_team(self, caller: CallerContext, team_id: UUID) -> TeamView:
        """Deactivate a team that staffs no open project, ending every membership."""
        today = self._today()
        with self._uow_factory() as uow:
            team = uow.teams.require(team_id, for_update=True)
            capacity.ensure_team_deactivatable(uow, team)

            removed = []
            for membership in uow.team_members.list_by_team(team_id, active_only=True):
                membership.deactivate(today)
                uow.team_members.save(membership)
                removed.append(membership.user_id)

            team.active = False
            uow.teams.save(team)
            if removed:
                uow.collect_event(TeamMembersRemoved(
                    aggregate_id=team_id,
                    metadata=caller.to_metadata(),
                    team_id=team_id,
                    user_ids=removed,
                ))
            view = self._team_view(uow, team)
        return view

    @log_operation()
    def get_team(self, caller: CallerContext, team_id: UUID) -> TeamView:
        with self._uow_factory() as uow:
            return self._team_view(uow, uow.teams.require(team_id))

    @log_operation()
    def list_teams(
        self,
        caller: CallerContext,
        active: Optional[bool] = None,
        name: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[TeamView]:
        """List teams by name; `name` matches a fragment ignoring case."""
        _check_page(limit, offset)
        with self._uow_factory() as uow:
            teams = uow.teams.list_teams(active=active, name=name, limit=limit, offset=offset)
            return [self._team_view(uow, team) for team in teams]

    @log_operation()
    def add_team_members(
        self,
        caller: CallerContext,
        team_id: UUID,
        user_ids: Iterable[UUID],
    ) -> TeamView:
        """
        Add TEAM_MEMBER users to an active team.

        Every user must be active and hold no active membership anywhere.
        One ineligible user rejects the whole batch.
        """
        user_ids = _dedupe(user_ids)
        if not user_ids:
            raise DomainValidationError("At least one user id is required.")
        today = self._today()
        with self._uow_factory() as uow:
            team = uow.teams.require(team_id, for_update=True)
            capacity.ensure_team_active(team)

            for user_id in user_ids:
                user = uow.users.require(user_id, for_update=True)
                capacity.ensure_can_join_team(user, uow.team_members.get_active_for_user(user_id))
                uow.team_members.save(TeamMember(team_id=team_id, user_id=user_id, join_date=today))

            uow.collect_event(TeamMembersAdded(
                aggregate_id=team_id,
                metadata=caller.to_metadata(),
                team_id=team_id,
                user_ids=user_ids,
            ))
            view = self._team_view(uow, team)
        return view

    @log_operation()
    def remove_team_members(
        self,
        caller: CallerContext,
        team_id: UUID,
        user_ids: Iterable[UUID],
    ) -> TeamView:
        """
        End the active memberships of the given users in a team.

        Each removed member's open tasks in the team's open projects are
        unassigned so no task keeps an assignee outside the project's team.
        """
        user_ids = _dedupe(user_ids)
        if not user_ids:
            raise DomainValidationError("At least one user id is required.")
        today = self._today()
        with self._uow_factory() as uow:
            team = uow.teams.require(team_id, for_update=True)
            project_ids = [p.project_id for p in uow.projects.list_by_team(team_id, active_only=True)]

            for user_id in user_ids:
                user = uow.users.require(user_id)
                capacity.ensure_role(user, Role.TEAM_MEMBER)
                membership = uow.team_members.get_active(team_id, user_id)
                if membership is None:
                    raise NotFoundError(
                        ErrorCode.TEAM_MEMBER_NOT_FOUND,
                        "User is not an active member of this team.",
                        {"user_id": str(user_id), "team_id": str(team_id)},
                    )
                membership.deactivate(today)
                uow.team_members.save(membership)

                if project_ids:
                    for task in uow.tasks.list_by_assignee(
                        user_id, statuses=ACTIVE_TASK_STATUSES, project_ids=project_ids
                    ):
                        self._unassign(uow, caller, task, "member_removed")

            uow.collect_event(TeamMembersRemoved(
                aggregate_id=team_id,
                metadata=caller.to_metadata(),
                team_id=team_id,
                user_ids=user_ids,
            ))
            view = self._team_view(uow, team)
        return view

    @log_operation()
    def list_team_members(
        self,
        caller: CallerContext,
        team_id: UUID,
        active_only: bool = True,
    ) -> List[TeamMemberView]:
        with self._uow_factory() as uow:
            uow.teams.require(team_id)
            return [
                TeamMemberView.build(m, uow.users.get(m.user_id))
                for m in uow.team_members.list_by_team(team_id, active_only=active_only)
            ]

    # =========================================================================
    # PROJECTS
    # =========================================================================

    @log_operation()
    def create_project(
        self,
        caller: CallerContext,
        draft: Union[ProjectDraft, Mapping],
    ) -> ProjectView:
        """
        Create a NOT_STARTED, LOW priority project.

        The start date is today or later; the manager is an active project
        manager below the open-project ceiling.
        """
        draft = _parse(ProjectDraft, draft)
        max_length = self._settings.project_name_max_length
        name = _clean_name(draft.name, max_length, "Project name")
        today = self._today()
        lifecycle.validate_new_project_dates(draft.start_date, draft.due_date, today)

        with self._uow_factory() as uow:
            manager = uow.users.require(draft.manager_id, for_update=True)
            capacity.ensure_project_manager_eligible(
                uow, manager, self._settings.max_active_projects_per_manager
            )
            name = resolve_unique_name(name, uow.projects.exists_by_name_ignore_case, max_length)

            project = Project(
                name=name,
                description=draft.description,
                start_date=draft.start_date,
                due_date=draft.due_date,
                manager_id=manager.user_id,
                priority=Priority.LOW,
                status=Status.NOT_STARTED,
            )
            uow.projects.save(project)
            uow.collect_event(ProjectCreated(
                aggregate_id=project.project_id,
                metadata=caller.to_metadata(),
                project_id=project.project_id,
                name=project.name,
                manager_id=project.manager_id,
                start_date=project.start_date,
                due_date=project.due_date,
            ))
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def update_project(
        self,
        caller: CallerContext,
        project_id: UUID,
        changes: Union[ProjectChanges, Mapping],
    ) -> ProjectView:
        """Edit name, description and dates of an open project."""
        changes = _parse(ProjectChanges, changes)
        max_length = self._settings.project_name_max_length
        name = _clean_name(changes.name, max_length, "Project name")
        today = self._today()

        with self._uow_factory() as uow:
            project = uow.projects.require(project_id, for_update=True)
            tasks = uow.tasks.list_by_project(project_id)
            lifecycle.check_project_update(
                project, changes, tasks, today,
                comment_ids=[c.comment_id for c in uow.comments.list_by_project(project_id)],
            )

            if name != project.name:
                name = resolve_unique_name(
                    name,
                    lambda n: uow.projects.exists_by_name_ignore_case(n, exclude_id=project_id),
                    max_length,
                )

            before = project.model_dump(include={"name", "description", "start_date", "due_date"})
            lifecycle.apply_project_update(project, changes, name)
            after = project.model_dump(include=set(before))
            refresh_priority(project, today)
            uow.projects.save(project)

            changed = {k: v for k, v in after.items() if before[k] != v}
            if changed:
                uow.collect_event(ProjectUpdated(
                    aggregate_id=project_id,
                    metadata=caller.to_metadata(),
                    project_id=project_id,
                    changed_fields=changed,
                ))
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def update_project_manager(
        self,
        caller: CallerContext,
        project_id: UUID,
        manager_id: UUID,
    ) -> ProjectView:
        with self._uow_factory() as uow:
            project = uow.projects.require(project_id, for_update=True)
            lifecycle.ensure_project_open(project, "change the manager of")
            if project.manager_id == manager_id:
                raise InvalidStateError(
                    ErrorCode.PROJECT_SAME_MANAGER,
                    "User already manages this project.",
                )
            manager = uow.users.require(manager_id, for_update=True)
            capacity.ensure_project_manager_eligible(
                uow, manager, self._settings.max_active_projects_per_manager
            )

            previous = project.manager_id
            project.manager_id = manager_id
            project.touch()
            uow.projects.save(project)
            uow.collect_event(ProjectManagerChanged(
                aggregate_id=project_id,
                metadata=caller.to_metadata(),
                project_id=project_id,
                previous_manager_id=previous,
                new_manager_id=manager_id,
            ))
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def assign_team(self, caller: CallerContext, project_id: UUID, team_id: UUID) -> ProjectView:
        """Give an open project without a team an active, free team."""
        with self._uow_factory() as uow:
            project = uow.projects.require(project_id, for_update=True)
            lifecycle.ensure_project_open(project, "assign a team to")
            if project.team_id is not None:
                raise InvalidStateError(
                    ErrorCode.PROJECT_TEAM_ALREADY_ASSIGNED,
                    "Project already has a team. Use team reassignment instead.",
                )
            team = uow.teams.require(team_id, for_update=True)
            capacity.ensure_team_assignable(uow, team, self._settings.max_active_projects_per_team)

            project.team_id = team_id
            project.touch()
            uow.projects.save(project)
            uow.collect_event(TeamAssignedToProject(
                aggregate_id=project_id,
                metadata=caller.to_metadata(),
                project_id=project_id,
                team_id=team_id,
            ))
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def reassign_team(self, caller: CallerContext, project_id: UUID, team_id: UUID) -> ProjectView:
        """
        Replace the project's team.

        In-progress tasks held by members of the old team lose their assignee
        but stay IN_PROGRESS. Tasks assigned to anyone else are untouched.
        """
        with self._uow_factory() as uow:
            project = uow.projects.require(project_id, for_update=True)
            lifecycle.ensure_project_open(project, "reassign the team of")
            if project.team_id is None:
                raise InvalidStateError(
                    ErrorCode.PROJECT_TEAM_MISSING,
                    "Project has no team to replace. Use team assignment instead.",
                )
            if project.team_id == team_id:
                raise InvalidStateError(
                    ErrorCode.PROJECT_SAME_TEAM,
                    "Team is already assigned to this project.",
                )
            team = uow.teams.require(team_id, for_update=True)
            capacity.ensure_team_assignable(uow, team, self._settings.max_active_projects_per_team)

            previous = project.team_id
            old_members = {
                m.user_id for m in uow.team_members.list_by_team(previous, active_only=True)
            }
            unassigned = []
            for task in uow.tasks.list_by_project(project_id):
                if task.status == Status.IN_PROGRESS and task.assignee_id in old_members:
                    self._unassign(uow, caller, task, "team_reassigned")
                    unassigned.append(task.task_id)

            project.team_id = team_id
            project.touch()
            uow.projects.save(project)
            uow.collect_event(TeamReassigned(
                aggregate_id=project_id,
                metadata=caller.to_metadata(),
                project_id=project_id,
                previous_team_id=previous,
                new_team_id=team_id,
                unassigned_task_ids=unassigned,
            ))
            logger.info(
                f"Project {project_id} moved to team {team_id}, "
                f"{len(unassigned)} task(s) unassigned"
            )
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def complete_project(self, caller: CallerContext, project_id: UUID) -> ProjectView:
        """Complete a project whose tasks are all COMPLETED or CANCELLED."""
        today = self._today()
        with self._uow_factory() as uow:
            project = uow.projects.require(project_id, for_update=True)
            lifecycle.check_project_completion(project, uow.tasks.list_by_project(project_id))
            lifecycle.complete_project(project, today)
            uow.projects.save(project)
            uow.collect_event(ProjectCompleted(
                aggregate_id=project_id,
                metadata=caller.to_metadata(),
                project_id=project_id,
                completion_date=today,
            ))
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def remove_project(self, caller: CallerContext, project_id: UUID) -> ProjectView:
        """
        Cancel a project with every one of its tasks and comments.

        Tasks are removed in cascade mode: unassigned and marked CANCELLED,
        keeping their rows. Live comments are soft-deleted. The project ends
        CANCELLED with LOW priority.
        """
        with self._uow_factory() as uow:
            project = uow.projects.require(project_id, for_update=True)
            lifecycle.check_project_cancellation(project)

            cancelled = []
            for task in uow.tasks.list_by_project(project_id):
                self._remove_task(uow, caller, task, cascade=True)
                cancelled.append(task.task_id)

            deleted = []
            for comment in uow.comments.list_by_project(project_id):
                if not comment.deleted:
                    self._delete_comment(uow, caller, comment)
                    deleted.append(comment.comment_id)

            lifecycle.cancel_project(project)
            uow.projects.save(project)
            uow.collect_event(ProjectCancelled(
                aggregate_id=project_id,
                metadata=caller.to_metadata(),
                project_id=project_id,
                cancelled_task_ids=cancelled,
                deleted_comment_ids=deleted,
            ))
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def get_project(self, caller: CallerContext, project_id: UUID) -> ProjectView:
        """Read a project; its priority is refreshed and persisted on the way."""
        with self._uow_factory() as uow:
            project = self._fresh(uow, uow.projects.require(project_id))
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def list_projects(
        self,
        caller: CallerContext,
        status: Optional[Status] = None,
        priority: Optional[Priority] = None,
        name: Optional[str] = None,
        manager_id: Optional[UUID] = None,
        team_id: Optional[UUID] = None,
        member_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ProjectView]:
        """
        List projects, optionally narrowed down.

        `name` matches a fragment ignoring case; `member_id` keeps the
        projects staffed by the team that user actively belongs to. Open
        projects' priorities are refreshed before a priority filter runs.
        """
        _check_page(limit, offset)
        with self._uow_factory() as uow:
            if priority is not None:
                for project in uow.projects.list_active():
                    self._fresh(uow, project)
            projects = uow.projects.list_projects(
                status=status, priority=priority, name=name,
                manager_id=manager_id, team_id=team_id, member_id=member_id,
                limit=limit, offset=offset,
            )
            views = [self._project_view(uow, self._fresh(uow, p)) for p in projects]
        return views

    @log_operation()
    def project_completion_percentage(self, caller: CallerContext, project_id: UUID) -> int:
        """Completed share of the project's non-cancelled tasks, 0 to 100."""
        with self._uow_factory() as uow:
            uow.projects.require(project_id)
            return completion_percentage(uow.tasks.list_by_project(project_id))

    # =========================================================================
    # TASKS
    # =========================================================================

    @log_operation()
    def create_task(self, caller: CallerContext, draft: Union[TaskDraft, Mapping]) -> TaskView:
        """
        Add a task to an open project, optionally assigning it at once.

        Task dates lie inside the project's window and start no earlier than
        today. The name is made unique within the project.
        """
        draft = _parse(TaskDraft, draft)
        max_length = self._settings.task_name_max_length
        name = _clean_name(draft.name, max_length, "Task name")
        if draft.priority == Priority.COMPLETED:
            raise DomainValidationError(
                "The COMPLETED priority is reserved for finished tasks.",
                ErrorCode.VALIDATION_IMMUTABLE_FIELD,
                {"field": "priority"},
            )
        today = self._today()

        with self._uow_factory() as uow:
            project = uow.projects.require(draft.project_id, for_update=True)
            lifecycle.ensure_project_open(project, "add tasks to")
            lifecycle.validate_task_dates(draft.start_date, draft.due_date, project, today)
            name = resolve_unique_name(
                name,
                lambda n: uow.tasks.exists_by_name_ignore_case(project.project_id, n),
                max_length,
            )

            task = Task(
                project_id=project.project_id,
                name=name,
                description=draft.description,
                priority=draft.priority,
                start_date=draft.start_date,
                due_date=draft.due_date,
            )
            uow.tasks.save(task)
            uow.collect_event(TaskCreated(
                aggregate_id=task.task_id,
                metadata=caller.to_metadata(),
                task_id=task.task_id,
                project_id=task.project_id,
                name=task.name,
            ))

            if draft.assignee_id is not None:
                self._assign(uow, caller, project, task, draft.assignee_id)
            view = TaskView.build(task)
        return view

    @log_operation()
    def update_task(
        self,
        caller: CallerContext,
        task_id: UUID,
        changes: Union[TaskChanges, Mapping],
    ) -> TaskView:
        """Edit name, description, priority and dates of an open task."""
        changes = _parse(TaskChanges, changes)
        max_length = self._settings.task_name_max_length
        name = _clean_name(changes.name, max_length, "Task name")
        today = self._today()

        with self._uow_factory() as uow:
            task = uow.tasks.require(task_id, for_update=True)
            project = uow.projects.require(task.project_id, for_update=True)
            lifecycle.ensure_project_open(project, "update tasks of")
            lifecycle.check_task_update(task, changes)
            lifecycle.validate_task_dates(
                changes.start_date, changes.due_date, project, today, previous=task
            )

            if name != task.name:
                name = resolve_unique_name(
                    name,
                    lambda n: uow.tasks.exists_by_name_ignore_case(
                        project.project_id, n, exclude_id=task_id
                    ),
                    max_length,
                )
            lifecycle.apply_task_update(task, changes, name)
            uow.tasks.save(task)
            view = TaskView.build(task)
        return view

    @log_operation()
    def assign_task(self, caller: CallerContext, task_id: UUID, user_id: UUID) -> TaskView:
        """Assign an unassigned open task to an eligible member of the project's team."""
        with self._uow_factory() as uow:
            task = uow.tasks.require(task_id, for_update=True)
            lifecycle.ensure_task_open(task, "assign")
            if task.assignee_id is not None:
                raise InvalidStateError(
                    ErrorCode.TASK_ALREADY_ASSIGNED,
                    "Task is already assigned. Use reassignment instead.",
                )
            project = uow.projects.require(task.project_id, for_update=True)
            self._assign(uow, caller, project, task, user_id)
            view = TaskView.build(task)
        return view

    @log_operation()
    def reassign_task(self, caller: CallerContext, task_id: UUID, user_id: UUID) -> TaskView:
        """Move an assigned open task to a different eligible user."""
        with self._uow_factory() as uow:
            task = uow.tasks.require(task_id, for_update=True)
            lifecycle.ensure_task_open(task, "reassign")
            if task.assignee_id is None:
                raise InvalidStateError(
                    ErrorCode.TASK_NOT_ASSIGNED,
                    "Task has no assignee. Use assignment instead.",
                )
            if task.assignee_id == user_id:
                raise InvalidStateError(
                    ErrorCode.TASK_ALREADY_ASSIGNED,
                    "Task is already assigned to this user.",
                )
            project = uow.projects.require(task.project_id, for_update=True)
            self._assign(uow, caller, project, task, user_id)
            view = TaskView.build(task)
        return view

    @log_operation()
    def complete_task(self, caller: CallerContext, task_id: UUID) -> TaskView:
        today = self._today()
        with self._uow_factory() as uow:
            task = uow.tasks.require(task_id, for_update=True)
            project = uow.projects.require(task.project_id)
            lifecycle.check_task_completion(task, today)
            lifecycle.ensure_project_open(project, "complete tasks of")
            lifecycle.complete_task(task, today)
            uow.tasks.save(task)
            uow.collect_event(TaskCompleted(
                aggregate_id=task_id,
                metadata=caller.to_metadata(),
                task_id=task_id,
                project_id=task.project_id,
                completion_date=today,
            ))
            view = TaskView.build(task)
        return view

    @log_operation()
    def remove_task_from_project(
        self,
        caller: CallerContext,
        project_id: UUID,
        task_id: UUID,
    ) -> ProjectView:
        """Delete a task of an open project, unassigning it first."""
        with self._uow_factory() as uow:
            project = uow.projects.require(project_id, for_update=True)
            lifecycle.ensure_project_open(project, "remove tasks from")
            task = uow.tasks.require(task_id, for_update=True)
            if task.project_id != project_id:
                raise NotFoundError(
                    ErrorCode.TASK_NOT_FOUND,
                    "Task not found in this project.",
                    {"task_id": str(task_id), "project_id": str(project_id)},
                )
            self._remove_task(uow, caller, task, cascade=False)
            view = self._project_view(uow, project)
        return view

    @log_operation()
    def get_task(self, caller: CallerContext, task_id: UUID) -> TaskView:
        with self._uow_factory() as uow:
            return TaskView.build(uow.tasks.require(task_id))

    @log_operation()
    def list_tasks(
        self,
        caller: CallerContext,
        project_id: Optional[UUID] = None,
        assignee_id: Optional[UUID] = None,
        status: Optional[Status] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[TaskView]:
        _check_page(limit, offset)
        with self._uow_factory() as uow:
            tasks = uow.tasks.list_tasks(
                project_id=project_id, assignee_id=assignee_id, status=status,
                limit=limit, offset=offset,
            )
            return [TaskView.build(t) for t in tasks]

    @log_operation()
    def list_overdue_tasks(
        self,
        caller: CallerContext,
        user_id: UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> List[TaskView]:
        """Open tasks of a user that are past their due date, most overdue first."""
        _check_page(limit, offset)
        with self._uow_factory() as uow:
            uow.users.require(user_id)
            tasks = uow.tasks.list_overdue_by_assignee(
                user_id, self._today(), limit=limit, offset=offset
            )
            return [TaskView.build(t) for t in tasks]

    # =========================================================================
    # COMMENTS
    # =========================================================================

    @log_operation()
    def create_comment(
        self,
        caller: CallerContext,
        draft: Union[CommentDraft, Mapping],
    ) -> CommentView:
        """
        Post a comment, or a reply when `parent_id` is set, as the calling user.

        The author must be active and work on the open project: its manager
        or an active member of its team.
        """
        draft = _parse(CommentDraft, draft)
        if caller.user_id is None:
            raise DomainValidationError(
                "Comments need an acting user.",
                details={"field": "caller"},
            )
        content = _clean_name(draft.content, self._settings.comment_max_length, "Comment")

        with self._uow_factory() as uow:
            author = uow.users.require(caller.user_id)
            project = uow.projects.require(draft.project_id)
            discussion.ensure_can_comment(
                author, project, uow.team_members.get_active_for_user(author.user_id)
            )
            if draft.parent_id is not None:
                parent = uow.comments.require(draft.parent_id)
                discussion.ensure_valid_parent(parent, project.project_id)

            comment = Comment(
                project_id=project.project_id,
                user_id=author.user_id,
                parent_id=draft.parent_id,
                content=content,
            )
            uow.comments.save(comment)
            uow.collect_event(CommentPosted(
                aggregate_id=comment.comment_id,
                metadata=caller.to_metadata(),
                comment_id=comment.comment_id,
                project_id=comment.project_id,
                user_id=comment.user_id,
                parent_id=comment.parent_id,
            ))
            view = CommentView.build(comment)
        return view

    @log_operation()
    def update_comment(self, caller: CallerContext, comment_id: UUID, content: str) -> CommentView:
        """Replace the content of the caller's own live comment."""
        content = _clean_name(content, self._settings.comment_max_length, "Comment")
        with self._uow_factory() as uow:
            comment = uow.comments.require(comment_id, for_update=True)
            discussion.ensure_comment_editable(comment, caller)
            comment.edit(content)
            uow.comments.save(comment)
            uow.collect_event(CommentEdited(
                aggregate_id=comment_id,
                metadata=caller.to_metadata(),
                comment_id=comment_id,
                project_id=comment.project_id,
            ))
            view = self._comment_view(uow, comment)
        return view

    @log_operation()
    def delete_comment(self, caller: CallerContext, comment_id: UUID) -> CommentView:
        """Soft-delete a comment. Its replies stay in place."""
        with self._uow_factory() as uow:
            comment = uow.comments.require(comment_id, for_update=True)
            discussion.ensure_comment_deletable(comment, caller)
            self._delete_comment(uow, caller, comment)
            view = self._comment_view(uow, comment)
        return view

    @log_operation()
    def get_comment(self, caller: CallerContext, comment_id: UUID) -> CommentView:
        with self._uow_factory() as uow:
            return self._comment_view(uow, uow.comments.require(comment_id))

    @log_operation()
    def list_comments(
        self,
        caller: CallerContext,
        project_id: UUID,
        parent_id: Optional[UUID] = None,
        roots_only: bool = False,
        user_id: Optional[UUID] = None,
        content: Optional[str] = None,
        include_deleted: bool = True,
        limit: int = 100,
        offset: int = 0,
    ) -> List[CommentView]:
        """
        Comments of a project, oldest first.

        Args:
            parent_id: Only direct replies to this comment
            roots_only: Only comments that start a thread
            user_id: Only comments by this author
            content: Case-insensitive fragment of the content
            include_deleted: Keep soft-deleted comments
        """
        _check_page(limit, offset)
        with self._uow_factory() as uow:
            uow.projects.require(project_id)
            comments = uow.comments.list_comments(
                project_id,
                parent_id=parent_id,
                roots_only=roots_only,
                user_id=user_id,
                content=content,
                include_deleted=include_deleted,
                limit=limit,
                offset=offset,
            )
            return [self._comment_view(uow, c) for c in comments]
