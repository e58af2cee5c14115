"""Typed records passed between adapters, providers and the store."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from taskboard.core.errors import TaskboardError

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    name: str
    email: str


class TaskRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    owner_id: UUID
    text: str
    completed: bool = False
    created_at: datetime


class CommentRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    task_id: int
    author_id: UUID
    author_name: str
    content: str
    created_at: datetime


class TaskChanges(BaseModel):
    """Partial task update; unset fields are left alone."""

    text: Optional[str] = None
    completed: Optional[bool] = None

    def is_empty(self) -> bool:
        return self.text is None and self.completed is None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: TaskboardError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
