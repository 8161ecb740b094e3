from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional

from ..models.task import TaskStatus

MAX_TITLE_LENGTH = 200
MAX_OUTCOME_LENGTH = 1000


class TaskTitle(BaseModel):
    """Schema for creating or renaming a task."""
    title: str

    @field_validator("title")
    @classmethod
    def _clean_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        if len(value) > MAX_TITLE_LENGTH:
            raise ValueError(f"Title too long (max {MAX_TITLE_LENGTH} chars)")
        return value


class TaskCreate(TaskTitle):
    pass


class TaskRename(TaskTitle):
    pass


class TaskStatusUpdate(BaseModel):
    """Either flag may be omitted; omitted flags leave that status alone."""
    closed: Optional[bool] = None
    waiting: Optional[bool] = None


class TaskOutcomeUpdate(BaseModel):
    desired_outcome: str

    @field_validator("desired_outcome")
    @classmethod
    def _clean_outcome(cls, value: str) -> Optional[str]:
        value = value.strip()
        if len(value) > MAX_OUTCOME_LENGTH:
            raise ValueError(f"Desired outcome too long (max {MAX_OUTCOME_LENGTH} chars)")
        return value or None


class Task(BaseModel):
    """Complete task schema with all fields."""
    id: int
    title: str
    desired_outcome: Optional[str] = None
    status: TaskStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    waiting_since: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskWithPreview(Task):
    """Task list entry with its latest update."""
    latest_update: Optional[str] = None
    latest_at: Optional[datetime] = None
