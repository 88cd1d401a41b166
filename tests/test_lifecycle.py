"""Tests for project and task lifecycle rules."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from domain.aggregates import Priority, Project, Status, Task
from domain.errors import DomainValidationError, ErrorCode, InvalidStateError
from domain.lifecycle import (
    PROJECT_TRANSITIONS,
    TASK_TRANSITIONS,
    assign_task,
    can_transition,
    cancel_project,
    cancel_task,
    check_project_cancellation,
    check_project_completion,
    check_project_update,
    check_task_completion,
    check_task_update,
    complete_project,
    complete_task,
    start_project,
    unassign_task,
    validate_new_project_dates,
    validate_task_dates,
)
from domain.value_objects import ProjectChanges, TaskChanges

TODAY = date(2030, 6, 1)


def days(n):
    return TODAY + timedelta(days=n)


def make_project(**kwargs):
    fields = dict(name="Apollo", manager_id=uuid4(), start_date=days(0), due_date=days(60))
    fields.update(kwargs)
    return Project(**fields)


def make_task(project, **kwargs):
    fields = dict(
        project_id=project.project_id,
        name="Design",
        start_date=project.start_date,
        due_date=project.start_date + timedelta(days=10),
    )
    fields.update(kwargs)
    return Task(**fields)


def changes_for(project, **kwargs):
    fields = dict(
        name=project.name,
        description=project.description,
        start_date=project.start_date,
        due_date=project.due_date,
    )
    fields.update(kwargs)
    return ProjectChanges(**fields)


class TestTransitionTables:
    """Tests for the allowed status transitions."""

    @pytest.mark.parametrize("table", [PROJECT_TRANSITIONS, TASK_TRANSITIONS])
    def test_terminal_states_have_no_exits(self, table):
        for target in Status:
            assert not can_transition(table, Status.COMPLETED, target)
            assert not can_transition(table, Status.CANCELLED, target)

    @pytest.mark.parametrize("table", [PROJECT_TRANSITIONS, TASK_TRANSITIONS])
    def test_no_return_to_not_started(self, table):
        assert not can_transition(table, Status.IN_PROGRESS, Status.NOT_STARTED)

    def test_not_started_may_complete_directly(self):
        assert can_transition(PROJECT_TRANSITIONS, Status.NOT_STARTED, Status.COMPLETED)


class TestDateRules:
    """Tests for date validation."""

    def test_new_project_may_start_today(self):
        validate_new_project_dates(days(0), days(0), TODAY)

    def test_new_project_cannot_start_in_past(self):
        with pytest.raises(DomainValidationError) as exc:
            validate_new_project_dates(days(-1), days(10), TODAY)
        assert exc.value.code == ErrorCode.VALIDATION_DATE_IN_PAST

    def test_start_after_due_rejected(self):
        with pytest.raises(DomainValidationError) as exc:
            validate_new_project_dates(days(5), days(4), TODAY)
        assert exc.value.code == ErrorCode.VALIDATION_DATE_ORDER

    def test_task_outside_project_window_rejected(self):
        project = make_project(start_date=days(2), due_date=days(20))
        with pytest.raises(DomainValidationError) as exc:
            validate_task_dates(days(2), days(21), project, TODAY)
        assert exc.value.code == ErrorCode.VALIDATION_DATE_OUT_OF_PROJECT

    def test_task_matching_project_window_accepted(self):
        project = make_project(start_date=days(2), due_date=days(20))
        validate_task_dates(days(2), days(20), project, TODAY)

    def test_unchanged_past_start_is_tolerated_on_update(self):
        """A task that already started keeps its start date through edits."""
        project = make_project(start_date=days(-10), due_date=days(20))
        task = make_task(project, start_date=days(-5), due_date=days(5))
        validate_task_dates(days(-5), days(8), project, TODAY, previous=task)

    def test_moving_start_into_past_rejected_on_update(self):
        project = make_project(start_date=days(-10), due_date=days(20))
        task = make_task(project, start_date=days(-5), due_date=days(5))
        with pytest.raises(DomainValidationError) as exc:
            validate_task_dates(days(-6), days(5), project, TODAY, previous=task)
        assert exc.value.code == ErrorCode.VALIDATION_DATE_IN_PAST


class TestProjectUpdate:
    """Tests for check_project_update."""

    def test_plain_edit_passes(self):
        project = make_project()
        check_project_update(project, changes_for(project, name="Renamed"), [], TODAY)

    def test_matching_echoes_pass(self):
        project = make_project()
        changes = changes_for(
            project,
            priority=project.priority,
            status=project.status,
            manager_id=project.manager_id,
        )
        check_project_update(project, changes, [], TODAY)

    @pytest.mark.parametrize("field,value", [
        ("priority", Priority.HIGH),
        ("status", Status.COMPLETED),
        ("manager_id", uuid4()),
        ("team_id", uuid4()),
        ("completion_date", TODAY),
    ])
    def test_differing_echo_rejected(self, field, value):
        project = make_project()
        with pytest.raises(DomainValidationError) as exc:
            check_project_update(project, changes_for(project, **{field: value}), [], TODAY)
        assert exc.value.code == ErrorCode.VALIDATION_IMMUTABLE_FIELD

    def test_differing_task_list_rejected(self):
        project = make_project()
        task = make_task(project)
        changes = changes_for(project, task_ids=[uuid4()])
        with pytest.raises(DomainValidationError) as exc:
            check_project_update(project, changes, [task], TODAY)
        assert exc.value.code == ErrorCode.VALIDATION_IMMUTABLE_FIELD

    def test_start_date_locked_when_in_progress(self):
        project = make_project(status=Status.IN_PROGRESS)
        with pytest.raises(InvalidStateError) as exc:
            check_project_update(project, changes_for(project, start_date=days(1)), [], TODAY)
        assert exc.value.code == ErrorCode.PROJECT_START_DATE_LOCKED

    def test_due_date_editable_when_in_progress(self):
        project = make_project(status=Status.IN_PROGRESS)
        check_project_update(project, changes_for(project, due_date=days(70)), [], TODAY)

    def test_window_must_contain_open_tasks(self):
        project = make_project()
        task = make_task(project, due_date=days(50))
        with pytest.raises(DomainValidationError) as exc:
            check_project_update(project, changes_for(project, due_date=days(40)), [task], TODAY)
        assert exc.value.code == ErrorCode.VALIDATION_DATE_OUT_OF_PROJECT

    def test_cancelled_tasks_ignored_by_window_check(self):
        project = make_project()
        task = make_task(project, due_date=days(50), status=Status.CANCELLED)
        check_project_update(project, changes_for(project, due_date=days(40)), [task], TODAY)

    @pytest.mark.parametrize("status", [Status.COMPLETED, Status.CANCELLED])
    def test_terminal_project_rejected(self, status):
        project = make_project(status=status)
        with pytest.raises(InvalidStateError) as exc:
            check_project_update(project, changes_for(project), [], TODAY)
        assert exc.value.code == ErrorCode.PROJECT_TERMINAL


class TestProjectTransitions:
    """Tests for start, completion and cancellation of projects."""

    def test_start_promotes_once(self):
        project = make_project()
        assert start_project(project) is True
        assert project.status == Status.IN_PROGRESS
        assert start_project(project) is False

    def test_completion_blocked_by_in_progress_task(self):
        project = make_project(status=Status.IN_PROGRESS)
        busy = make_task(project, status=Status.IN_PROGRESS)
        with pytest.raises(InvalidStateError) as exc:
            check_project_completion(project, [busy])
        assert exc.value.code == ErrorCode.PROJECT_HAS_ACTIVE_TASKS

    def test_completion_blocked_by_not_started_task(self):
        project = make_project()
        with pytest.raises(InvalidStateError) as exc:
            check_project_completion(project, [make_task(project)])
        assert exc.value.code == ErrorCode.PROJECT_HAS_ACTIVE_TASKS

    def test_completion_allowed_with_only_terminal_tasks(self):
        project = make_project(status=Status.IN_PROGRESS)
        check_project_completion(project, [
            make_task(project, status=Status.COMPLETED),
            make_task(project, status=Status.CANCELLED),
        ])

    def test_complete_sets_date_and_low_priority(self):
        project = make_project(status=Status.IN_PROGRESS, priority=Priority.HIGH)
        complete_project(project, TODAY)
        assert project.status == Status.COMPLETED
        assert project.completion_date == TODAY
        assert project.priority == Priority.LOW

    def test_cancel_sets_low_priority(self):
        project = make_project(priority=Priority.MEDIUM)
        cancel_project(project)
        assert project.status == Status.CANCELLED
        assert project.priority == Priority.LOW

    def test_cancelling_twice_reports_already_cancelled(self):
        project = make_project(status=Status.CANCELLED)
        with pytest.raises(InvalidStateError) as exc:
            check_project_cancellation(project)
        assert exc.value.code == ErrorCode.PROJECT_ALREADY_CANCELLED

    def test_completed_project_cannot_be_removed(self):
        project = make_project(status=Status.COMPLETED)
        with pytest.raises(InvalidStateError) as exc:
            check_project_cancellation(project)
        assert exc.value.code == ErrorCode.PROJECT_TERMINAL

    def test_cancel_completed_is_invalid_transition(self):
        project = make_project(status=Status.COMPLETED)
        with pytest.raises(InvalidStateError) as exc:
            cancel_project(project)
        assert exc.value.code == ErrorCode.INVALID_TRANSITION


class TestTaskTransitions:
    """Tests for task assignment, completion and cancellation."""

    def test_assign_moves_to_in_progress(self):
        task = make_task(make_project())
        user_id = uuid4()
        assign_task(task, user_id)
        assert task.assignee_id == user_id
        assert task.status == Status.IN_PROGRESS

    def test_unassign_keeps_status(self):
        task = make_task(make_project())
        user_id = uuid4()
        assign_task(task, user_id)
        assert unassign_task(task) == user_id
        assert task.assignee_id is None
        assert task.status == Status.IN_PROGRESS

    def test_complete_sets_marker_and_date(self):
        task = make_task(make_project(), status=Status.IN_PROGRESS, priority=Priority.HIGH)
        check_task_completion(task, TODAY)
        complete_task(task, TODAY)
        assert task.status == Status.COMPLETED
        assert task.priority == Priority.COMPLETED
        assert task.completion_date == TODAY

    def test_completing_twice_rejected(self):
        task = make_task(make_project(), status=Status.COMPLETED)
        with pytest.raises(InvalidStateError) as exc:
            check_task_completion(task, TODAY)
        assert exc.value.code == ErrorCode.TASK_ALREADY_COMPLETED

    def test_completing_cancelled_rejected(self):
        task = make_task(make_project(), status=Status.CANCELLED)
        with pytest.raises(InvalidStateError) as exc:
            check_task_completion(task, TODAY)
        assert exc.value.code == ErrorCode.TASK_TERMINAL

    def test_completing_before_start_rejected(self):
        project = make_project(start_date=days(3), due_date=days(30))
        task = make_task(project)
        with pytest.raises(InvalidStateError) as exc:
            check_task_completion(task, TODAY)
        assert exc.value.code == ErrorCode.TASK_NOT_STARTED_YET

    def test_cancel_skips_terminal_tasks(self):
        task = make_task(make_project(), status=Status.COMPLETED)
        cancel_task(task)
        assert task.status == Status.COMPLETED

    def test_update_rejects_completed_priority(self):
        task = make_task(make_project())
        changes = TaskChanges(
            name=task.name,
            priority=Priority.COMPLETED,
            start_date=task.start_date,
            due_date=task.due_date,
        )
        with pytest.raises(DomainValidationError) as exc:
            check_task_update(task, changes)
        assert exc.value.code == ErrorCode.VALIDATION_IMMUTABLE_FIELD

    def test_update_rejects_assignee_echo_change(self):
        task = make_task(make_project())
        changes = TaskChanges(
            name=task.name,
            priority=Priority.HIGH,
            start_date=task.start_date,
            due_date=task.due_date,
            assignee_id=uuid4(),
        )
        with pytest.raises(DomainValidationError):
            check_task_update(task, changes)
