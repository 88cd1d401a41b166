"""Tests for the SQLAlchemy repositories."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from domain.aggregates import Comment, Project, Role, Status, Task, Team, TeamMember, User
from domain.errors import ErrorCode, NotFoundError

TODAY = date(2030, 6, 1)


@pytest.fixture
def manager(make_uow):
    user = User(username="pm", role=Role.PROJECT_MANAGER)
    with make_uow() as uow:
        uow.users.save(user)
    return user


def project_for(manager, name="Apollo", status=Status.NOT_STARTED, team_id=None):
    return Project(
        name=name,
        manager_id=manager.user_id,
        start_date=TODAY,
        due_date=TODAY + timedelta(days=30),
        status=status,
        team_id=team_id,
    )


class TestSqlRepository:
    """Tests for the shared repository behaviour."""

    def test_save_and_get_round_trip(self, make_uow):
        user = User(username="ann", first_name="Ann", role=Role.TEAM_MEMBER)
        with make_uow() as uow:
            uow.users.save(user)
        with make_uow() as uow:
            loaded = uow.users.get(user.user_id)
        assert loaded.username == "ann"
        assert loaded.role == Role.TEAM_MEMBER

    def test_save_updates_existing(self, make_uow):
        user = User(username="ann", role=Role.TEAM_MEMBER)
        with make_uow() as uow:
            uow.users.save(user)
        user.active = False
        with make_uow() as uow:
            uow.users.save(user)
        with make_uow() as uow:
            assert uow.users.get(user.user_id).active is False

    def test_require_missing_raises(self, make_uow):
        with make_uow() as uow:
            with pytest.raises(NotFoundError) as exc:
                uow.projects.require(uuid4())
        assert exc.value.code == ErrorCode.PROJECT_NOT_FOUND

    def test_get_for_update(self, make_uow):
        user = User(username="ann", role=Role.TEAM_MEMBER)
        with make_uow() as uow:
            uow.users.save(user)
            assert uow.users.get(user.user_id, for_update=True).user_id == user.user_id

    def test_delete(self, make_uow, manager):
        project = project_for(manager)
        task = Task(project_id=project.project_id, name="t", start_date=TODAY, due_date=TODAY)
        with make_uow() as uow:
            uow.projects.save(project)
            uow.tasks.save(task)
        with make_uow() as uow:
            assert uow.tasks.delete(task.task_id) is True
            assert uow.tasks.delete(task.task_id) is False
        with make_uow() as uow:
            assert not uow.tasks.exists(task.task_id)


class TestNameLookups:
    """Case-insensitive name checks."""

    def test_project_names_ignore_case(self, make_uow, manager):
        project = project_for(manager, name="Apollo")
        with make_uow() as uow:
            uow.projects.save(project)
            assert uow.projects.exists_by_name_ignore_case("APOLLO")
            assert not uow.projects.exists_by_name_ignore_case("apollo", exclude_id=project.project_id)

    def test_task_names_scoped_to_project(self, make_uow, manager):
        first, second = project_for(manager, "A"), project_for(manager, "B")
        with make_uow() as uow:
            uow.projects.save(first)
            uow.projects.save(second)
            uow.tasks.save(Task(project_id=first.project_id, name="Design", start_date=TODAY, due_date=TODAY))
            assert uow.tasks.exists_by_name_ignore_case(first.project_id, "design")
            assert not uow.tasks.exists_by_name_ignore_case(second.project_id, "design")

    def test_team_names_ignore_case(self, make_uow):
        with make_uow() as uow:
            uow.teams.save(Team(name="Red"))
            assert uow.teams.exists_by_name_ignore_case("red")

    def test_username_lookup(self, make_uow):
        with make_uow() as uow:
            uow.users.save(User(username="ann", role=Role.ADMIN))
            assert uow.users.exists_by_username("ann")
            assert not uow.users.exists_by_username("bob")


class TestActiveCounts:
    """Counts that feed the capacity ceilings."""

    def test_terminal_projects_not_counted(self, make_uow, manager):
        team = Team(name="Red")
        with make_uow() as uow:
            uow.teams.save(team)
            uow.projects.save(project_for(manager, "a", Status.NOT_STARTED, team.team_id))
            uow.projects.save(project_for(manager, "b", Status.IN_PROGRESS))
            uow.projects.save(project_for(manager, "c", Status.COMPLETED, team.team_id))
            uow.projects.save(project_for(manager, "d", Status.CANCELLED))
            assert uow.projects.count_active_by_manager(manager.user_id) == 2
            assert uow.projects.count_active_by_team(team.team_id) == 1
            assert len(uow.projects.list_by_manager(manager.user_id)) == 4
            assert len(uow.projects.list_by_manager(manager.user_id, active_only=True)) == 2


class TestMemberships:
    """Team membership lookups."""

    def test_active_membership_lookup(self, make_uow):
        user = User(username="ann", role=Role.TEAM_MEMBER)
        red, blue = Team(name="Red"), Team(name="Blue")
        old = TeamMember(team_id=red.team_id, user_id=user.user_id, join_date=TODAY)
        old.deactivate(TODAY)
        current = TeamMember(team_id=blue.team_id, user_id=user.user_id, join_date=TODAY)
        with make_uow() as uow:
            uow.users.save(user)
            uow.teams.save(red)
            uow.teams.save(blue)
            uow.team_members.save(old)
            uow.team_members.save(current)

            assert uow.team_members.get_active_for_user(user.user_id).team_id == blue.team_id
            assert uow.team_members.get_active(red.team_id, user.user_id) is None
            assert uow.team_members.list_by_team(red.team_id) == []
            assert len(uow.team_members.list_by_team(red.team_id, active_only=False)) == 1


class TestTaskQueries:
    """Task listing filters."""

    def test_list_by_assignee_filters(self, make_uow, manager):
        user = User(username="ann", role=Role.TEAM_MEMBER)
        project = project_for(manager)
        busy = Task(project_id=project.project_id, name="a", start_date=TODAY, due_date=TODAY,
                    status=Status.IN_PROGRESS, assignee_id=user.user_id)
        done = Task(project_id=project.project_id, name="b", start_date=TODAY, due_date=TODAY,
                    status=Status.COMPLETED, assignee_id=user.user_id)
        with make_uow() as uow:
            uow.users.save(user)
            uow.projects.save(project)
            uow.tasks.save(busy)
            uow.tasks.save(done)

            assert len(uow.tasks.list_by_assignee(user.user_id)) == 2
            in_progress = uow.tasks.list_by_assignee(user.user_id, statuses=[Status.IN_PROGRESS])
            assert [t.task_id for t in in_progress] == [busy.task_id]
            assert uow.tasks.list_by_assignee(user.user_id, project_ids=[uuid4()]) == []
            assert len(uow.tasks.list_tasks(status=Status.COMPLETED)) == 1


class TestCommentQueries:
    """Comment persistence and listing."""

    def test_thread_round_trip(self, make_uow, manager):
        project = project_for(manager)
        root = Comment(project_id=project.project_id, user_id=manager.user_id, content="Root")
        reply = Comment(project_id=project.project_id, user_id=manager.user_id,
                        parent_id=root.comment_id, content="Reply")
        with make_uow() as uow:
            uow.projects.save(project)
            uow.comments.save(root)
            uow.comments.save(reply)

        with make_uow() as uow:
            assert [c.comment_id for c in uow.comments.list_replies(root.comment_id)] == [reply.comment_id]
            assert len(uow.comments.list_by_project(project.project_id)) == 2
            roots = uow.comments.list_comments(project.project_id, roots_only=True)
            assert [c.comment_id for c in roots] == [root.comment_id]

    def test_missing_comment_code(self, make_uow):
        with make_uow() as uow:
            with pytest.raises(NotFoundError) as exc:
                uow.comments.require(uuid4())
            assert exc.value.code == ErrorCode.COMMENT_NOT_FOUND

    def test_soft_deleted_rows_filtered(self, make_uow, manager):
        project = project_for(manager)
        gone = Comment(project_id=project.project_id, user_id=manager.user_id, content="gone")
        gone.soft_delete()
        with make_uow() as uow:
            uow.projects.save(project)
            uow.comments.save(gone)
            assert uow.comments.list_comments(project.project_id, include_deleted=False) == []
            assert uow.comments.get(gone.comment_id).deleted is True


class TestOverdueQuery:
    """list_overdue_by_assignee."""

    def test_only_open_tasks_before_today(self, make_uow, manager):
        user = User(username="ann", role=Role.TEAM_MEMBER)
        project = project_for(manager)
        late = Task(project_id=project.project_id, name="late", start_date=TODAY,
                    due_date=TODAY + timedelta(days=2), status=Status.IN_PROGRESS,
                    assignee_id=user.user_id)
        finished = Task(project_id=project.project_id, name="done", start_date=TODAY,
                        due_date=TODAY + timedelta(days=1), status=Status.COMPLETED,
                        assignee_id=user.user_id)
        with make_uow() as uow:
            uow.users.save(user)
            uow.projects.save(project)
            uow.tasks.save(late)
            uow.tasks.save(finished)

            today = TODAY + timedelta(days=5)
            overdue = uow.tasks.list_overdue_by_assignee(user.user_id, today)
            assert [t.task_id for t in overdue] == [late.task_id]
            assert uow.tasks.list_overdue_by_assignee(user.user_id, TODAY) == []
