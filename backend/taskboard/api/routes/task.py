"""Task and board routes, scoped to the authenticated user."""
from __future__ import annotations

from time import perf_counter
from typing import List

from fastapi import APIRouter, Depends, Response, status

from taskboard.api.deps import get_adapter, get_current_user
from taskboard.api.schemas.task import BoardResponse, TaskCreateRequest, TaskResponse, TaskUpdateRequest
from taskboard.observability.metrics import log_metric
from taskboard.services.board import partition
from taskboard.services.persistence.sql import SqlPersistenceAdapter
from taskboard.services.records import TaskChanges, UserRecord

router = APIRouter(tags=["tasks"])


@router.get("/tasks", response_model=List[TaskResponse])
async def list_tasks(
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> List[TaskResponse]:
    """List the caller's tasks, newest first."""
    tasks = await adapter.list_tasks(owner_id=user.id)
    log_metric("task.list.count", len(tasks), metadata={"owner_id": str(user.id)})
    return [TaskResponse.model_validate(task) for task in tasks]


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreateRequest,
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> TaskResponse:
    task = await adapter.create_task(owner_id=user.id, text=payload.text)
    log_metric("task.create.success", 1, metadata={"owner_id": str(user.id)})
    return TaskResponse.model_validate(task)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    payload: TaskUpdateRequest,
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> TaskResponse:
    """Change a task's text and/or completion in one call."""
    start = perf_counter()
    task = await adapter.update_task(
        task_id=task_id,
        changes=TaskChanges(text=payload.text, completed=payload.completed),
        owner_id=user.id,
    )
    log_metric("task.update.latency_ms", (perf_counter() - start) * 1000, metadata={"task_id": task_id})
    return TaskResponse.model_validate(task)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> Response:
    """Delete a task together with its comments."""
    await adapter.delete_task(task_id=task_id, owner_id=user.id)
    log_metric("task.delete.success", 1, metadata={"owner_id": str(user.id), "task_id": task_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/board", response_model=BoardResponse)
async def read_board(
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> BoardResponse:
    """The caller's tasks split into incomplete and complete columns."""
    board = partition(await adapter.list_tasks(owner_id=user.id))
    return BoardResponse(
        incomplete=[TaskResponse.model_validate(task) for task in board.incomplete],
        complete=[TaskResponse.model_validate(task) for task in board.complete],
    )
