"""Tests for user operations of the Allocation Service."""

import pytest

from domain.aggregates import Role, Status
from domain.errors import (
    AlreadyActiveError,
    AlreadyInactiveError,
    DomainValidationError,
    ErrorCode,
    InvalidStateError,
    NotFoundError,
)
from domain.events import TaskUnassigned, UserDeactivated
from domain.value_objects import UserDraft


class TestCreateUser:
    """Tests for create_user."""

    def test_creates_active_user(self, service, admin):
        view = service.create_user(
            admin, UserDraft(username="ann", first_name="Ann", role=Role.TEAM_MEMBER)
        )
        assert view.active is True
        assert view.role == Role.TEAM_MEMBER
        assert view.team_id is None

    def test_accepts_plain_mapping(self, service, admin):
        view = service.create_user(admin, {"username": "bob", "role": "PROJECT_MANAGER"})
        assert view.role == Role.PROJECT_MANAGER

    def test_duplicate_username_rejected(self, service, admin, factory):
        factory.member("ann")
        with pytest.raises(DomainValidationError) as exc:
            factory.member("ann")
        assert exc.value.code == ErrorCode.VALIDATION_DUPLICATE

    def test_malformed_input_reports_fields(self, service, admin):
        with pytest.raises(DomainValidationError) as exc:
            service.create_user(admin, {"username": "", "role": "WIZARD"})
        fields = {e["field"] for e in exc.value.details["errors"]}
        assert {"username", "role"} <= fields


class TestReadUsers:
    """Tests for get_user and list_users."""

    def test_missing_user(self, service, admin):
        from uuid import uuid4
        with pytest.raises(NotFoundError) as exc:
            service.get_user(admin, uuid4())
        assert exc.value.code == ErrorCode.USER_NOT_FOUND

    def test_view_lists_back_references(self, service, admin, factory):
        project, team, (member,) = factory.staffed_project()
        task = factory.task(project, assignee=member)
        view = service.get_user(admin, member.user_id)
        assert view.team_id == team.team_id
        assert view.assigned_task_ids == [task.task_id]
        manager_view = service.get_user(admin, project.manager_id)
        assert manager_view.managed_project_ids == [project.project_id]

    def test_list_filters_by_role(self, service, admin, factory):
        factory.manager()
        factory.member()
        factory.member()
        members = service.list_users(admin, role=Role.TEAM_MEMBER)
        assert len(members) == 2
        assert all(u.role == Role.TEAM_MEMBER for u in members)

    def test_list_rejects_bad_page(self, service, admin):
        with pytest.raises(DomainValidationError):
            service.list_users(admin, limit=0)


class TestDeactivateUser:
    """Tests for deactivate_user and activate_user."""

    def test_manager_with_open_project_cannot_be_deactivated(self, service, admin, factory):
        manager = factory.manager()
        factory.project(manager=manager)
        with pytest.raises(InvalidStateError) as exc:
            service.deactivate_user(admin, manager.user_id)
        assert exc.value.code == ErrorCode.PROJECT_MANAGES_ACTIVE

    def test_manager_with_only_closed_projects_can_be_deactivated(self, service, admin, factory):
        manager = factory.manager()
        project = factory.project(manager=manager)
        service.complete_project(admin, project.project_id)
        assert service.deactivate_user(admin, manager.user_id).active is False

    def test_member_tasks_are_unassigned_but_keep_status(self, service, admin, factory, published):
        project, team, (member,) = factory.staffed_project()
        task = factory.task(project, assignee=member)

        service.deactivate_user(admin, member.user_id)

        reloaded = service.get_task(admin, task.task_id)
        assert reloaded.assignee_id is None
        assert reloaded.status == Status.IN_PROGRESS
        deactivated = [e for e in published if isinstance(e, UserDeactivated)]
        assert deactivated[-1].unassigned_task_ids == [task.task_id]
        unassigned = [e for e in published if isinstance(e, TaskUnassigned)]
        assert unassigned[-1].reason == "user_deactivated"

    def test_deactivate_twice(self, service, admin, factory):
        member = factory.member()
        service.deactivate_user(admin, member.user_id)
        with pytest.raises(AlreadyInactiveError) as exc:
            service.deactivate_user(admin, member.user_id)
        assert exc.value.code == ErrorCode.USER_ALREADY_INACTIVE

    def test_activate_round_trip(self, service, admin, factory):
        member = factory.member()
        service.deactivate_user(admin, member.user_id)
        assert service.activate_user(admin, member.user_id).active is True
        with pytest.raises(AlreadyActiveError) as exc:
            service.activate_user(admin, member.user_id)
        assert exc.value.code == ErrorCode.USER_ALREADY_ACTIVE

    def test_inactive_manager_cannot_take_projects(self, service, admin, factory):
        manager = factory.manager()
        service.deactivate_user(admin, manager.user_id)
        with pytest.raises(InvalidStateError) as exc:
            factory.project(manager=manager)
        assert exc.value.code == ErrorCode.USER_INACTIVE


class TestUserQueries:
    """Tests for the narrowing filters of list_users."""

    def test_search_matches_names(self, service, admin):
        service.create_user(admin, UserDraft(username="jsmith", first_name="Jane", last_name="Doe", role=Role.TEAM_MEMBER))
        service.create_user(admin, UserDraft(username="ann", first_name="Ann", last_name="Smithers", role=Role.TEAM_MEMBER))
        service.create_user(admin, UserDraft(username="bob", first_name="Bob", last_name="Jones", role=Role.TEAM_MEMBER))

        assert [u.username for u in service.list_users(admin, search="SMITH")] == ["ann", "jsmith"]
        assert [u.username for u in service.list_users(admin, search="jane")] == ["jsmith"]
        assert service.list_users(admin, search="nobody") == []

    def test_filter_by_team(self, service, admin, factory):
        ann, bob = factory.member(), factory.member()
        team = factory.team(members=[ann, bob])
        factory.team(members=[factory.member()])
        service.remove_team_members(admin, team.team_id, [bob.user_id])

        (view,) = service.list_users(admin, team_id=team.team_id)
        assert view.user_id == ann.user_id

    def test_filter_by_project(self, service, admin, factory):
        project, _, (ann, bob) = factory.staffed_project(members=2)
        factory.task(project, assignee=ann)
        factory.task(project, assignee=ann)
        factory.task(project)

        (view,) = service.list_users(admin, project_id=project.project_id)
        assert view.user_id == ann.user_id

    def test_unknown_team_or_project(self, service, admin):
        from uuid import uuid4
        with pytest.raises(NotFoundError) as exc:
            service.list_users(admin, team_id=uuid4())
        assert exc.value.code == ErrorCode.TEAM_NOT_FOUND
        with pytest.raises(NotFoundError) as exc:
            service.list_users(admin, project_id=uuid4())
        assert exc.value.code == ErrorCode.PROJECT_NOT_FOUND
