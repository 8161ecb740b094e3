from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Literal

from ..models.update import MAX_UPDATE_LENGTH


class UpdateContent(BaseModel):
    """Schema for posting or editing an update."""
    content: str

    @field_validator("content")
    @classmethod
    def _clean_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Content is required")
        if len(value) > MAX_UPDATE_LENGTH:
            raise ValueError(f"Content too long (max {MAX_UPDATE_LENGTH} chars)")
        return value.strip()


class Update(BaseModel):
    id: int
    task_id: int
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class UpdateFeedItem(Update):
    type: Literal["update"] = "update"
