"""Persistence adapter interface.

Both backends expose the same capability set. Every call may suspend the
caller; failures are raised as taskboard errors:

* ``ValidationError`` for blank text/content,
* ``NotFoundError`` for unknown (or foreign, when ``owner_id`` is given) ids,
* ``UnauthenticatedError`` for comments without an author,
* ``PersistenceError`` when the store cannot be read or written.

Deleting a task removes its comments before the task itself.
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from taskboard.services.records import CommentRecord, TaskChanges, TaskRecord


class PersistenceAdapter:
    """Base interface for task/comment storage backends."""

    async def list_tasks(self, *, owner_id: UUID) -> List[TaskRecord]:
        """Tasks owned by ``owner_id``, newest first."""
        raise NotImplementedError

    async def create_task(self, *, owner_id: UUID, text: str) -> TaskRecord:
        raise NotImplementedError

    async def update_task(
        self,
        *,
        task_id: int,
        changes: TaskChanges,
        owner_id: Optional[UUID] = None,
    ) -> TaskRecord:
        raise NotImplementedError

    async def toggle_task_completion(
        self,
        *,
        task_id: int,
        current: bool,
        owner_id: Optional[UUID] = None,
    ) -> TaskRecord:
        return await self.update_task(
            task_id=task_id,
            changes=TaskChanges(completed=not current),
            owner_id=owner_id,
        )

    async def delete_task(self, *, task_id: int, owner_id: Optional[UUID] = None) -> bool:
        raise NotImplementedError

    async def list_comments_for_owner(self, *, owner_id: UUID) -> List[CommentRecord]:
        """Comments on tasks owned by ``owner_id``, oldest first."""
        raise NotImplementedError

    async def list_comments(self, *, task_id: int, owner_id: Optional[UUID] = None) -> List[CommentRecord]:
        """Comments on one task, oldest first."""
        raise NotImplementedError

    async def create_comment(
        self,
        *,
        task_id: int,
        author_id: Optional[UUID],
        content: str,
        owner_id: Optional[UUID] = None,
    ) -> CommentRecord:
        raise NotImplementedError

    async def delete_comment(self, *, comment_id: int, owner_id: Optional[UUID] = None) -> bool:
        raise NotImplementedError
