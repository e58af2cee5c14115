"""ORM models exposed for metadata discovery."""
from taskboard.db.models.auth_session import AuthSession
from taskboard.db.models.comment import Comment
from taskboard.db.models.task import Task
from taskboard.db.models.user import User

__all__ = [
    "AuthSession",
    "Comment",
    "Task",
    "User",
]
