"""
Project and Task Lifecycle State Machine.

Manages the status of projects and tasks:
- NOT_STARTED: Created, nobody working on it yet
- IN_PROGRESS: Work assigned (a project is promoted on its first assignment)
- COMPLETED: Finished (terminal)
- CANCELLED: Abandoned or removed (terminal)

Every guard here raises a domain error and mutates nothing when it fails, so
the orchestrator can call guards first and apply changes afterwards. The
transition helpers mutate the passed aggregate in place; persisting it is the
caller's job.
"""

from datetime import date
from typing import Dict, FrozenSet, Iterable, Optional
from uuid import UUID
import logging

from .aggregates import Priority, Project, Status, Task
from .errors import (
    DomainValidationError,
    ErrorCode,
    InvalidStateError,
)
from .priority import mark_task_completed
from .value_objects import ProjectChanges, TaskChanges

logger = logging.getLogger(__name__)


# Valid status transitions
PROJECT_TRANSITIONS: Dict[Status, FrozenSet[Status]] = {
    Status.NOT_STARTED: frozenset({Status.IN_PROGRESS, Status.COMPLETED, Status.CANCELLED}),
    Status.IN_PROGRESS: frozenset({Status.COMPLETED, Status.CANCELLED}),
    Status.COMPLETED: frozenset(),
    Status.CANCELLED: frozenset(),
}

TASK_TRANSITIONS: Dict[Status, FrozenSet[Status]] = {
    Status.NOT_STARTED: frozenset({Status.IN_PROGRESS, Status.COMPLETED, Status.CANCELLED}),
    Status.IN_PROGRESS: frozenset({Status.COMPLETED, Status.CANCELLED}),
    Status.COMPLETED: frozenset(),
    Status.CANCELLED: frozenset(),
}


def can_transition(table: Dict[Status, FrozenSet[Status]], current: Status, target: Status) -> bool:
    """Check if a transition is valid."""
    return target in table.get(current, frozenset())


def _transition(kind: str, table, current: Status, target: Status) -> Status:
    if not can_transition(table, current, target):
        raise InvalidStateError(
            ErrorCode.INVALID_TRANSITION,
            f"Cannot move {kind} from {current.value} to {target.value}.",
            {"from": current.value, "to": target.value},
        )
    return target


# =============================================================================
# DATE RULES
# =============================================================================

def ensure_date_order(start_date: date, due_date: date) -> None:
    if start_date > due_date:
        raise DomainValidationError(
            "Start date cannot be after due date.",
            ErrorCode.VALIDATION_DATE_ORDER,
        )


def ensure_not_in_past(value: date, today: date, field: str) -> None:
    if value < today:
        raise DomainValidationError(
            f"{field} must be today or in the future.",
            ErrorCode.VALIDATION_DATE_IN_PAST,
            {"field": field},
        )


def validate_new_project_dates(start_date: date, due_date: date, today: date) -> None:
    """A new project starts today or later and ends no earlier than it starts."""
    ensure_not_in_past(start_date, today, "Start date")
    ensure_date_order(start_date, due_date)


def validate_task_dates(
    start_date: date,
    due_date: date,
    project: Project,
    today: date,
    *,
    previous: Optional[Task] = None,
) -> None:
    """
    Task dates are ordered, not in the past, and nested in the project window.

    When `previous` is given (an update), only dates that actually change
    are checked against `today`.
    """
    if previous is None or start_date != previous.start_date:
        ensure_not_in_past(start_date, today, "Start date")
    if previous is None or due_date != previous.due_date:
        ensure_not_in_past(due_date, today, "Due date")
    ensure_date_order(start_date, due_date)
    if not project.contains(start_date, due_date):
        raise DomainValidationError(
            "Task dates must fall within the project's start and due dates.",
            ErrorCode.VALIDATION_DATE_OUT_OF_PROJECT,
            {
                "project_start_date": project.start_date.isoformat(),
                "project_due_date": project.due_date.isoformat(),
            },
        )


# =============================================================================
# PROJECT RULES
# =============================================================================

def ensure_project_open(project: Project, action: str) -> None:
    """Reject any change to a completed or cancelled project."""
    if project.is_terminal:
        raise InvalidStateError(
            ErrorCode.PROJECT_TERMINAL,
            f"Cannot {action} a completed or cancelled project.",
            {"status": project.status.value},
        )


def _ensure_unchanged(field: str, supplied, stored) -> None:
    if supplied is not None and supplied != stored:
        raise DomainValidationError(
            f"Cannot change {field} through a generic update.",
            ErrorCode.VALIDATION_IMMUTABLE_FIELD,
            {"field": field},
        )


def check_project_update(
    project: Project,
    changes: ProjectChanges,
    tasks: Iterable[Task],
    today: date,
    comment_ids: Iterable[UUID] = (),
) -> None:
    """
    Validate a generic project update without applying it.

    Editable: name, description, start/due dates. Start date is frozen once
    the project is IN_PROGRESS. Every other field must match what is stored,
    and the new window must still contain every open task.
    """
    ensure_project_open(project, "update")
    ensure_date_order(changes.start_date, changes.due_date)

    if changes.start_date != project.start_date:
        if project.status == Status.IN_PROGRESS:
            raise InvalidStateError(
                ErrorCode.PROJECT_START_DATE_LOCKED,
                "Cannot change start date for an ongoing project.",
            )
        ensure_not_in_past(changes.start_date, today, "Start date")

    tasks = list(tasks)
    _ensure_unchanged("priority", changes.priority, project.priority)
    _ensure_unchanged("status", changes.status, project.status)
    _ensure_unchanged("completion date", changes.completion_date, project.completion_date)
    _ensure_unchanged("project manager", changes.manager_id, project.manager_id)
    _ensure_unchanged("team", changes.team_id, project.team_id)
    if changes.task_ids is not None and set(changes.task_ids) != {t.task_id for t in tasks}:
        _ensure_unchanged("tasks", changes.task_ids, [t.task_id for t in tasks])
    comment_ids = list(comment_ids)
    if changes.comment_ids is not None and set(changes.comment_ids) != set(comment_ids):
        _ensure_unchanged("comments", changes.comment_ids, comment_ids)

    for task in tasks:
        if task.is_terminal:
            continue
        if task.start_date < changes.start_date or task.due_date > changes.due_date:
            raise DomainValidationError(
                "Project dates must contain the dates of its open tasks.",
                ErrorCode.VALIDATION_DATE_OUT_OF_PROJECT,
                {"task_id": str(task.task_id)},
            )


def apply_project_update(project: Project, changes: ProjectChanges, name: str) -> None:
    project.name = name
    project.description = changes.description
    project.start_date = changes.start_date
    project.due_date = changes.due_date
    project.touch()


def start_project(project: Project) -> bool:
    """
    Promote a NOT_STARTED project to IN_PROGRESS.

    Returns:
        True if the project was promoted.
    """
    if project.status != Status.NOT_STARTED:
        return False
    project.status = _transition("project", PROJECT_TRANSITIONS, project.status, Status.IN_PROGRESS)
    project.touch()
    return True


def check_project_completion(project: Project, tasks: Iterable[Task]) -> None:
    """A project completes only when every task is COMPLETED or CANCELLED."""
    ensure_project_open(project, "complete")
    open_tasks = [task for task in tasks if not task.is_terminal]
    if open_tasks:
        raise InvalidStateError(
            ErrorCode.PROJECT_HAS_ACTIVE_TASKS,
            "At least one task is not completed. Please complete or remove the "
            "incomplete tasks before proceeding.",
            {"open_tasks": len(open_tasks)},
        )


def complete_project(project: Project, today: date) -> None:
    project.status = _transition("project", PROJECT_TRANSITIONS, project.status, Status.COMPLETED)
    project.priority = Priority.LOW
    project.completion_date = today
    project.touch()


def check_project_cancellation(project: Project) -> None:
    """Only a non-terminal project can be removed."""
    if project.status == Status.CANCELLED:
        raise InvalidStateError(
            ErrorCode.PROJECT_ALREADY_CANCELLED,
            "Project is already cancelled.",
        )
    ensure_project_open(project, "remove")


def cancel_project(project: Project) -> None:
    project.status = _transition("project", PROJECT_TRANSITIONS, project.status, Status.CANCELLED)
    project.priority = Priority.LOW
    project.touch()


# =============================================================================
# TASK RULES
# =============================================================================

def ensure_task_open(task: Task, action: str) -> None:
    if task.is_terminal:
        raise InvalidStateError(
            ErrorCode.TASK_TERMINAL,
            f"Cannot {action} a completed or cancelled task.",
            {"status": task.status.value},
        )


def check_task_update(task: Task, changes: TaskChanges) -> None:
    ensure_task_open(task, "update")
    if changes.priority == Priority.COMPLETED:
        raise DomainValidationError(
            "The COMPLETED priority is reserved for finished tasks.",
            ErrorCode.VALIDATION_IMMUTABLE_FIELD,
            {"field": "priority"},
        )
    _ensure_unchanged("status", changes.status, task.status)
    _ensure_unchanged("completion date", changes.completion_date, task.completion_date)
    _ensure_unchanged("project", changes.project_id, task.project_id)
    _ensure_unchanged("assignee", changes.assignee_id, task.assignee_id)


def apply_task_update(task: Task, changes: TaskChanges, name: str) -> None:
    task.name = name
    task.description = changes.description
    task.priority = changes.priority
    task.start_date = changes.start_date
    task.due_date = changes.due_date
    task.touch()


def assign_task(task: Task, user_id) -> None:
    """Set the assignee and move a NOT_STARTED task to IN_PROGRESS."""
    task.assignee_id = user_id
    if task.status == Status.NOT_STARTED:
        task.status = _transition("task", TASK_TRANSITIONS, task.status, Status.IN_PROGRESS)
    task.touch()


def unassign_task(task: Task) -> Optional[object]:
    """
    Clear the assignee, leaving status as it is.

    Returns:
        The previous assignee id, if any.
    """
    previous = task.assignee_id
    task.assignee_id = None
    task.touch()
    return previous


def check_task_completion(task: Task, today: date) -> None:
    if task.status == Status.COMPLETED:
        raise InvalidStateError(
            ErrorCode.TASK_ALREADY_COMPLETED,
            "Task is already completed.",
        )
    ensure_task_open(task, "complete")
    if today < task.start_date:
        raise InvalidStateError(
            ErrorCode.TASK_NOT_STARTED_YET,
            "Cannot complete the task before its start date.",
            {"start_date": task.start_date.isoformat()},
        )


def complete_task(task: Task, today: date) -> None:
    task.status = _transition("task", TASK_TRANSITIONS, task.status, Status.COMPLETED)
    mark_task_completed(task)
    task.completion_date = today
    task.touch()


def cancel_task(task: Task) -> None:
    """Cancel a task during cascade. Already-terminal tasks are left alone."""
    if task.is_terminal:
        return
    task.status = _transition("task", TASK_TRANSITIONS, task.status, Status.CANCELLED)
    task.touch()
