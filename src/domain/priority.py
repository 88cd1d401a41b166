"""
Date-driven project priority.

Priority is a function of how close the due date is once work has started:

    today <= start_date          -> LOW
    due_date - today <= 7 days   -> HIGH
    due_date - today <= 30 days  -> MEDIUM
    otherwise                    -> LOW

Terminal projects keep whatever priority they were closed with.
"""

from datetime import date

from .aggregates import Priority, Project, Task

HIGH_PRIORITY_WINDOW_DAYS = 7
MEDIUM_PRIORITY_WINDOW_DAYS = 30


def compute_priority(project: Project, today: date) -> Priority:
    """Priority the project should carry on `today`."""
    if project.is_terminal:
        return project.priority

    if today <= project.start_date:
        return Priority.LOW

    days_remaining = (project.due_date - today).days
    if days_remaining <= HIGH_PRIORITY_WINDOW_DAYS:
        return Priority.HIGH
    if days_remaining <= MEDIUM_PRIORITY_WINDOW_DAYS:
        return Priority.MEDIUM
    return Priority.LOW


def refresh_priority(project: Project, today: date) -> bool:
    """
    Recompute and store the project's priority.

    Returns:
        True if the stored priority changed and needs persisting.
    """
    priority = compute_priority(project, today)
    if priority == project.priority:
        return False
    project.priority = priority
    project.touch()
    return True


def mark_task_completed(task: Task) -> None:
    """Completed tasks carry the COMPLETED marker regardless of dates."""
    task.priority = Priority.COMPLETED
