"""In-memory task/comment store for the active user.

The store is the only mutator of the cached collections. Every change is
confirmed by the persistence adapter before it is applied locally; a failed
call leaves the cache untouched, is logged, and comes back as ``Err``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar
from uuid import UUID

from taskboard.core.errors import (
    NotFoundError,
    TaskboardError,
    UnauthenticatedError,
    ValidationError,
)
from taskboard.services.persistence.base import PersistenceAdapter
from taskboard.services.records import CommentRecord, Err, Ok, Result, TaskChanges, TaskRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

StoreListener = Callable[["TaskStore"], None]


class TaskStore:
    def __init__(self, adapter: PersistenceAdapter) -> None:
        self.adapter = adapter
        self.owner_id: Optional[UUID] = None
        self._loading: Optional[UUID] = None
        self._tasks: List[TaskRecord] = []
        self._comments: List[CommentRecord] = []
        self._listeners: List[StoreListener] = []

    # -- observation -------------------------------------------------------

    @property
    def tasks(self) -> Tuple[TaskRecord, ...]:
        """Tasks newest first."""
        return tuple(self._tasks)

    @property
    def comments(self) -> Tuple[CommentRecord, ...]:
        """All cached comments, oldest first."""
        return tuple(self._comments)

    def get_task(self, task_id: int) -> Optional[TaskRecord]:
        return next((task for task in self._tasks if task.id == task_id), None)

    def comments_for(self, task_id: int) -> List[CommentRecord]:
        return [comment for comment in self._comments if comment.task_id == task_id]

    def subscribe(self, callback: StoreListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.exception("Store listener %r failed", callback)

    # -- loading -----------------------------------------------------------

    async def load(self, owner_id: UUID) -> None:
        """Replace the cache with ``owner_id``'s tasks and comments.

        Both lists are fetched concurrently; a failed fetch leaves that
        collection empty. The store is empty and ownerless until both
        resolve, so writes made meanwhile are refused rather than sent on
        behalf of the previous user.
        """
        self.clear()
        self._loading = owner_id
        tasks, comments = await asyncio.gather(
            self.adapter.list_tasks(owner_id=owner_id),
            self.adapter.list_comments_for_owner(owner_id=owner_id),
            return_exceptions=True,
        )
        if isinstance(tasks, BaseException):
            logger.warning("Loading tasks for %s failed: %s", owner_id, tasks)
            tasks = []
        if isinstance(comments, BaseException):
            logger.warning("Loading comments for %s failed: %s", owner_id, comments)
            comments = []
        if self._loading != owner_id:
            logger.debug("Dropping superseded load for %s", owner_id)
            return

        self._loading = None
        self.owner_id = owner_id
        self._tasks = list(tasks)
        self._comments = list(comments)
        logger.debug("Loaded %s task(s), %s comment(s) for %s", len(self._tasks), len(self._comments), owner_id)
        self._notify()

    def clear(self) -> None:
        self._loading = None
        self.owner_id = None
        self._tasks = []
        self._comments = []
        self._notify()

    # -- mutations ---------------------------------------------------------

    async def _call(self, action: str, operation: Callable[[], Awaitable[T]]) -> Result[T]:
        try:
            return Ok(await operation())
        except TaskboardError as exc:
            logger.warning("%s failed: %s", action, exc.message)
            return Err(exc)

    def _require_owner(self) -> Optional[Err]:
        if self.owner_id is None:
            return Err(UnauthenticatedError("No active user"))
        return None

    def _require_task(self, task_id: int) -> TaskRecord | Err:
        task = self.get_task(task_id)
        if task is None:
            return Err(NotFoundError(f"Task {task_id} not found"))
        return task

    async def add_task(self, text: str) -> Result[TaskRecord]:
        if not (text or "").strip():
            return Err(ValidationError("text must not be blank"))
        denied = self._require_owner()
        if denied:
            return denied
        owner_id = self.owner_id

        result = await self._call("add_task", lambda: self.adapter.create_task(owner_id=owner_id, text=text))
        if result.ok and self.owner_id == owner_id:
            self._tasks.insert(0, result.value)
            self._notify()
        return result

    async def update_task(
        self,
        task_id: int,
        *,
        text: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Result[TaskRecord]:
        changes = TaskChanges(text=text, completed=completed)
        if changes.is_empty():
            task = self._require_task(task_id)
            return task if isinstance(task, Err) else Ok(task)
        if text is not None and not text.strip():
            return Err(ValidationError("text must not be blank"))
        denied = self._require_owner()
        if denied:
            return denied
        current = self._require_task(task_id)
        if isinstance(current, Err):
            return current
        owner_id = self.owner_id

        result = await self._call(
            "update_task",
            lambda: self.adapter.update_task(task_id=task_id, changes=changes, owner_id=owner_id),
        )
        if result.ok and self.owner_id == owner_id:
            self._replace_task(result.value)
        return result

    async def toggle_task(self, task_id: int) -> Result[TaskRecord]:
        denied = self._require_owner()
        if denied:
            return denied
        current = self._require_task(task_id)
        if isinstance(current, Err):
            return current
        owner_id = self.owner_id

        result = await self._call(
            "toggle_task",
            lambda: self.adapter.toggle_task_completion(
                task_id=task_id,
                current=current.completed,
                owner_id=owner_id,
            ),
        )
        if result.ok and self.owner_id == owner_id:
            self._replace_task(result.value)
        return result

    def _replace_task(self, updated: TaskRecord) -> None:
        for index, task in enumerate(self._tasks):
            if task.id == updated.id:
                self._tasks[index] = updated
                self._notify()
                return

    async def remove_task(self, task_id: int) -> Result[bool]:
        denied = self._require_owner()
        if denied:
            return denied
        owner_id = self.owner_id

        result = await self._call(
            "remove_task",
            lambda: self.adapter.delete_task(task_id=task_id, owner_id=owner_id),
        )
        if result.ok and self.owner_id == owner_id:
            self._tasks = [task for task in self._tasks if task.id != task_id]
            self._comments = [comment for comment in self._comments if comment.task_id != task_id]
            self._notify()
        return result

    async def add_comment(self, task_id: int, content: str) -> Result[CommentRecord]:
        if not (content or "").strip():
            return Err(ValidationError("content must not be blank"))
        denied = self._require_owner()
        if denied:
            return denied
        author_id = self.owner_id

        result = await self._call(
            "add_comment",
            lambda: self.adapter.create_comment(
                task_id=task_id,
                author_id=author_id,
                content=content,
                owner_id=author_id,
            ),
        )
        if result.ok and self.owner_id == author_id:
            self._comments.append(result.value)
            self._notify()
        return result

    async def remove_comment(self, comment_id: int) -> Result[bool]:
        denied = self._require_owner()
        if denied:
            return denied
        owner_id = self.owner_id

        result = await self._call(
            "remove_comment",
            lambda: self.adapter.delete_comment(comment_id=comment_id, owner_id=owner_id),
        )
        if result.ok and self.owner_id == owner_id:
            self._comments = [comment for comment in self._comments if comment.id != comment_id]
            self._notify()
        return result
