"""Repository implementations for the allocation engine."""

from .user_repository import UserRepository
from .team_repository import TeamRepository, TeamMemberRepository
from .project_repository import ProjectRepository
from .task_repository import TaskRepository
from .comment_repository import CommentRepository

__all__ = [
    "UserRepository",
    "TeamRepository",
    "TeamMemberRepository",
    "ProjectRepository",
    "TaskRepository",
    "CommentRepository",
]
