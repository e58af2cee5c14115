"""Schemas for task endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class TaskCreateRequest(BaseModel):
    text: str


class TaskUpdateRequest(BaseModel):
    text: Optional[str] = None
    completed: Optional[bool] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: UUID
    text: str
    completed: bool
    created_at: datetime


class BoardResponse(BaseModel):
    incomplete: List[TaskResponse]
    complete: List[TaskResponse]
