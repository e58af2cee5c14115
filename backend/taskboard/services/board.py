"""Kanban board projection and drag-and-drop handling."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from taskboard.services.records import Result, TaskRecord
from taskboard.services.store import TaskStore

logger = logging.getLogger(__name__)


class BoardColumn(Enum):
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"

    @property
    def completed(self) -> bool:
        """The ``completed`` value a task takes when dropped here."""
        return self is BoardColumn.COMPLETE

    @classmethod
    def for_task(cls, task: TaskRecord) -> "BoardColumn":
        return cls.COMPLETE if task.completed else cls.INCOMPLETE


@dataclass(frozen=True)
class BoardPartition:
    incomplete: Tuple[TaskRecord, ...]
    complete: Tuple[TaskRecord, ...]


def partition(tasks: Iterable[TaskRecord]) -> BoardPartition:
    """Split tasks into the two columns, keeping their relative order."""
    incomplete = []
    complete = []
    for task in tasks:
        (complete if task.completed else incomplete).append(task)
    return BoardPartition(incomplete=tuple(incomplete), complete=tuple(complete))


class BoardController:
    """Derives the board from a :class:`TaskStore` and applies drops to it.

    The columns hold no state of their own; they are recomputed whenever the
    store notifies. Dragging tracks only the picked task id and the hovered
    column.
    """

    def __init__(self, store: TaskStore) -> None:
        self.store = store
        self.dragging: Optional[int] = None
        self.hovered: Optional[BoardColumn] = None
        self._partition = partition(store.tasks)
        self._unsubscribe = store.subscribe(self._refresh)

    def _refresh(self, store: TaskStore) -> None:
        self._partition = partition(store.tasks)
        if self.dragging is not None and store.get_task(self.dragging) is None:
            self.cancel()

    @property
    def incomplete(self) -> Tuple[TaskRecord, ...]:
        return self._partition.incomplete

    @property
    def complete(self) -> Tuple[TaskRecord, ...]:
        return self._partition.complete

    def column_of(self, task_id: int) -> Optional[BoardColumn]:
        task = self.store.get_task(task_id)
        return BoardColumn.for_task(task) if task else None

    def pick(self, task_id: int) -> None:
        if self.store.get_task(task_id) is None:
            logger.debug("Ignoring pick of unknown task %s", task_id)
            return
        self.dragging = task_id
        self.hovered = None

    def hover(self, column: BoardColumn) -> None:
        if self.dragging is not None:
            self.hovered = column

    def cancel(self) -> None:
        self.dragging = None
        self.hovered = None

    async def drop(self, column: BoardColumn) -> Optional[Result[TaskRecord]]:
        """Move the picked task into ``column``.

        Returns the toggle result, or ``None`` when nothing was picked or the
        task already sits in ``column``.
        """
        task_id = self.dragging
        self.cancel()
        if task_id is None:
            return None
        task = self.store.get_task(task_id)
        if task is None or task.completed == column.completed:
            return None
        return await self.store.toggle_task(task_id)

    def close(self) -> None:
        self._unsubscribe()
