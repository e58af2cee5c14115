"""Persistence adapter over :class:`LocalStorage`."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar
from uuid import UUID

from starlette.concurrency import run_in_threadpool

from taskboard.core.errors import NotFoundError, UnauthenticatedError, require_text
from taskboard.services.local_storage import COMMENTS_KEY, TASKS_KEY, USERS_KEY, LocalStorage
from taskboard.services.persistence.base import PersistenceAdapter
from taskboard.services.records import CommentRecord, TaskChanges, TaskRecord, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalPersistenceAdapter(PersistenceAdapter):
    """Tasks and comments kept as JSON snapshots in local storage.

    Tasks and comments draw ids from the single ``nextId`` counter. File
    access runs on the threadpool, each call holding the storage lock for
    its whole read-modify-write.
    """

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage

    async def _run(self, work: Callable[[], T]) -> T:
        def locked() -> T:
            with self.storage.lock:
                return work()

        return await run_in_threadpool(locked)

    def _task_rows(self) -> List[Dict[str, Any]]:
        return list(self.storage.load_json(TASKS_KEY, []))

    def _comment_rows(self) -> List[Dict[str, Any]]:
        return list(self.storage.load_json(COMMENTS_KEY, []))

    @staticmethod
    def _sort_key(row: Dict[str, Any]) -> tuple[datetime, int]:
        return datetime.fromisoformat(row["created_at"]), int(row["id"])

    @staticmethod
    def _find_task(rows: List[Dict[str, Any]], task_id: int, owner_id: Optional[UUID]) -> Dict[str, Any]:
        for row in rows:
            if row["id"] == task_id and (owner_id is None or row["owner_id"] == str(owner_id)):
                return row
        raise NotFoundError(f"Task {task_id} not found")

    async def list_tasks(self, *, owner_id: UUID) -> List[TaskRecord]:
        def work() -> List[TaskRecord]:
            rows = [row for row in self._task_rows() if row["owner_id"] == str(owner_id)]
            rows.sort(key=self._sort_key, reverse=True)
            return [TaskRecord.model_validate(row) for row in rows]

        return await self._run(work)

    async def create_task(self, *, owner_id: UUID, text: str) -> TaskRecord:
        text = require_text(text, "text")

        def work() -> TaskRecord:
            row = {
                "id": self.storage.allocate_id(),
                "owner_id": str(owner_id),
                "text": text,
                "completed": False,
                "created_at": utcnow().isoformat(),
            }
            rows = self._task_rows()
            rows.append(row)
            self.storage.save_json(TASKS_KEY, rows)
            logger.debug("Created local task %s for %s", row["id"], owner_id)
            return TaskRecord.model_validate(row)

        return await self._run(work)

    async def update_task(
        self,
        *,
        task_id: int,
        changes: TaskChanges,
        owner_id: Optional[UUID] = None,
    ) -> TaskRecord:
        text = require_text(changes.text, "text") if changes.text is not None else None

        def work() -> TaskRecord:
            rows = self._task_rows()
            row = self._find_task(rows, task_id, owner_id)
            if text is not None:
                row["text"] = text
            if changes.completed is not None:
                row["completed"] = bool(changes.completed)
            self.storage.save_json(TASKS_KEY, rows)
            return TaskRecord.model_validate(row)

        return await self._run(work)

    async def delete_task(self, *, task_id: int, owner_id: Optional[UUID] = None) -> bool:
        def work() -> bool:
            rows = self._task_rows()
            row = self._find_task(rows, task_id, owner_id)
            comments = self._comment_rows()
            remaining = [c for c in comments if c["task_id"] != task_id]
            if len(remaining) != len(comments):
                self.storage.save_json(COMMENTS_KEY, remaining)
            rows.remove(row)
            self.storage.save_json(TASKS_KEY, rows)
            return True

        return await self._run(work)

    async def list_comments_for_owner(self, *, owner_id: UUID) -> List[CommentRecord]:
        def work() -> List[CommentRecord]:
            task_ids = {row["id"] for row in self._task_rows() if row["owner_id"] == str(owner_id)}
            if not task_ids:
                return []
            rows = [row for row in self._comment_rows() if row["task_id"] in task_ids]
            rows.sort(key=self._sort_key)
            return [CommentRecord.model_validate(row) for row in rows]

        return await self._run(work)

    async def list_comments(self, *, task_id: int, owner_id: Optional[UUID] = None) -> List[CommentRecord]:
        def work() -> List[CommentRecord]:
            self._find_task(self._task_rows(), task_id, owner_id)
            rows = [row for row in self._comment_rows() if row["task_id"] == task_id]
            rows.sort(key=self._sort_key)
            return [CommentRecord.model_validate(row) for row in rows]

        return await self._run(work)

    async def create_comment(
        self,
        *,
        task_id: int,
        author_id: Optional[UUID],
        content: str,
        owner_id: Optional[UUID] = None,
    ) -> CommentRecord:
        if author_id is None:
            raise UnauthenticatedError("No active user")
        content = require_text(content, "content")

        def work() -> CommentRecord:
            author = next(
                (u for u in self.storage.load_json(USERS_KEY, []) if u["id"] == str(author_id)),
                None,
            )
            if author is None:
                raise UnauthenticatedError(f"No profile for user {author_id}")
            self._find_task(self._task_rows(), task_id, owner_id)

            row = {
                "id": self.storage.allocate_id(),
                "task_id": task_id,
                "author_id": str(author_id),
                "author_name": author["name"],
                "content": content,
                "created_at": utcnow().isoformat(),
            }
            rows = self._comment_rows()
            rows.append(row)
            self.storage.save_json(COMMENTS_KEY, rows)
            return CommentRecord.model_validate(row)

        return await self._run(work)

    async def delete_comment(self, *, comment_id: int, owner_id: Optional[UUID] = None) -> bool:
        def work() -> bool:
            rows = self._comment_rows()
            row = next((c for c in rows if c["id"] == comment_id), None)
            if row is None:
                raise NotFoundError(f"Comment {comment_id} not found")
            if owner_id is not None:
                # Visible only through a task the owner holds.
                try:
                    self._find_task(self._task_rows(), row["task_id"], owner_id)
                except NotFoundError:
                    raise NotFoundError(f"Comment {comment_id} not found") from None
            rows.remove(row)
            self.storage.save_json(COMMENTS_KEY, rows)
            return True

        return await self._run(work)
