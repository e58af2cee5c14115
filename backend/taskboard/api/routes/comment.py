"""Comment routes."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status

from taskboard.api.deps import get_adapter, get_current_user
from taskboard.api.schemas.comment import CommentCreateRequest, CommentResponse
from taskboard.observability.metrics import log_metric
from taskboard.services.persistence.sql import SqlPersistenceAdapter
from taskboard.services.records import UserRecord

router = APIRouter(tags=["comments"])


@router.get("/comments", response_model=List[CommentResponse])
async def list_owner_comments(
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> List[CommentResponse]:
    """Every comment on the caller's tasks, oldest first."""
    comments = await adapter.list_comments_for_owner(owner_id=user.id)
    return [CommentResponse.model_validate(comment) for comment in comments]


@router.get("/tasks/{task_id}/comments", response_model=List[CommentResponse])
async def list_task_comments(
    task_id: int,
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> List[CommentResponse]:
    comments = await adapter.list_comments(task_id=task_id, owner_id=user.id)
    return [CommentResponse.model_validate(comment) for comment in comments]


@router.post("/tasks/{task_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    task_id: int,
    payload: CommentCreateRequest,
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> CommentResponse:
    comment = await adapter.create_comment(
        task_id=task_id,
        author_id=user.id,
        content=payload.content,
        owner_id=user.id,
    )
    log_metric("comment.create.length", len(comment.content), metadata={"task_id": task_id})
    return CommentResponse.model_validate(comment)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: int,
    user: UserRecord = Depends(get_current_user),
    adapter: SqlPersistenceAdapter = Depends(get_adapter),
) -> Response:
    await adapter.delete_comment(comment_id=comment_id, owner_id=user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
