"""Persistence adapter over the relational store (SQLAlchemy)."""
from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import asc, delete, desc, select
from sqlalchemy.orm import Session, sessionmaker

from taskboard.core.errors import NotFoundError, UnauthenticatedError, require_text
from taskboard.db.models.comment import Comment
from taskboard.db.models.task import Task
from taskboard.db.models.user import User
from taskboard.db.session import run_db
from taskboard.observability.tracing import traced
from taskboard.services.persistence.base import PersistenceAdapter
from taskboard.services.records import CommentRecord, TaskChanges, TaskRecord, ensure_utc

logger = logging.getLogger(__name__)


def _task_record(task: Task) -> TaskRecord:
    return TaskRecord(
        id=task.id,
        owner_id=task.user_id,
        text=task.text,
        completed=bool(task.completed),
        created_at=ensure_utc(task.created_at),
    )


def _comment_record(comment: Comment) -> CommentRecord:
    return CommentRecord(
        id=comment.id,
        task_id=comment.task_id,
        author_id=comment.user_id,
        author_name=comment.user_name,
        content=comment.content,
        created_at=ensure_utc(comment.created_at),
    )


def _owned_task(db: Session, task_id: int, owner_id: Optional[UUID]) -> Task:
    task = db.get(Task, task_id)
    if task is None or (owner_id is not None and task.user_id != owner_id):
        raise NotFoundError(f"Task {task_id} not found")
    return task


class SqlPersistenceAdapter(PersistenceAdapter):
    """Row access through short-lived sessions from ``session_factory``."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    # -- tasks -------------------------------------------------------------

    @traced("tasks.list")
    async def list_tasks(self, *, owner_id: UUID) -> List[TaskRecord]:
        def work(db: Session) -> List[TaskRecord]:
            rows = db.scalars(
                select(Task)
                .where(Task.user_id == owner_id)
                .order_by(desc(Task.created_at), desc(Task.id))
            ).all()
            return [_task_record(task) for task in rows]

        return await run_db(self._session_factory, work)

    @traced("tasks.create")
    async def create_task(self, *, owner_id: UUID, text: str) -> TaskRecord:
        text = require_text(text, "text")

        def work(db: Session) -> TaskRecord:
            task = Task(user_id=owner_id, text=text, completed=False)
            db.add(task)
            db.commit()
            db.refresh(task)
            return _task_record(task)

        task = await run_db(self._session_factory, work)
        logger.info("Created task %s for %s", task.id, owner_id)
        return task

    @traced("tasks.update")
    async def update_task(
        self,
        *,
        task_id: int,
        changes: TaskChanges,
        owner_id: Optional[UUID] = None,
    ) -> TaskRecord:
        text = require_text(changes.text, "text") if changes.text is not None else None

        def work(db: Session) -> TaskRecord:
            task = _owned_task(db, task_id, owner_id)
            if text is not None:
                task.text = text
            if changes.completed is not None:
                task.completed = bool(changes.completed)
            db.commit()
            db.refresh(task)
            return _task_record(task)

        return await run_db(self._session_factory, work)

    @traced("tasks.delete")
    async def delete_task(self, *, task_id: int, owner_id: Optional[UUID] = None) -> bool:
        def work(db: Session) -> bool:
            task = _owned_task(db, task_id, owner_id)
            # Explicit cascade; the FK also cascades where the backend enforces it.
            removed = db.execute(delete(Comment).where(Comment.task_id == task_id)).rowcount
            db.delete(task)
            db.commit()
            logger.info("Deleted task %s with %s comment(s)", task_id, removed)
            return True

        return await run_db(self._session_factory, work)

    # -- comments ----------------------------------------------------------

    @traced("comments.list_for_owner")
    async def list_comments_for_owner(self, *, owner_id: UUID) -> List[CommentRecord]:
        def work(db: Session) -> List[CommentRecord]:
            task_ids = db.scalars(select(Task.id).where(Task.user_id == owner_id)).all()
            if not task_ids:
                return []
            rows = db.scalars(
                select(Comment)
                .where(Comment.task_id.in_(task_ids))
                .order_by(asc(Comment.created_at), asc(Comment.id))
            ).all()
            return [_comment_record(comment) for comment in rows]

        return await run_db(self._session_factory, work)

    @traced("comments.list")
    async def list_comments(self, *, task_id: int, owner_id: Optional[UUID] = None) -> List[CommentRecord]:
        def work(db: Session) -> List[CommentRecord]:
            _owned_task(db, task_id, owner_id)
            rows = db.scalars(
                select(Comment)
                .where(Comment.task_id == task_id)
                .order_by(asc(Comment.created_at), asc(Comment.id))
            ).all()
            return [_comment_record(comment) for comment in rows]

        return await run_db(self._session_factory, work)

    @traced("comments.create")
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

        def work(db: Session) -> CommentRecord:
            author = db.get(User, author_id)
            if author is None:
                raise UnauthenticatedError(f"No profile for user {author_id}")
            _owned_task(db, task_id, owner_id)
            comment = Comment(task_id=task_id, user_id=author_id, user_name=author.name, content=content)
            db.add(comment)
            db.commit()
            db.refresh(comment)
            return _comment_record(comment)

        return await run_db(self._session_factory, work)

    @traced("comments.delete")
    async def delete_comment(self, *, comment_id: int, owner_id: Optional[UUID] = None) -> bool:
        def work(db: Session) -> bool:
            comment = db.get(Comment, comment_id)
            if comment is None:
                raise NotFoundError(f"Comment {comment_id} not found")
            if owner_id is not None:
                task = db.get(Task, comment.task_id)
                if task is None or task.user_id != owner_id:
                    raise NotFoundError(f"Comment {comment_id} not found")
            db.delete(comment)
            db.commit()
            return True

        return await run_db(self._session_factory, work)
