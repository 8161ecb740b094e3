from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional

from ..timeutil import UTCDateTime
from .task import _now


MAX_UPDATE_LENGTH = 65536


class Update(SQLModel, table=True):
    """Free-text note posted against a task."""
    __tablename__ = "updates"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", ondelete="CASCADE", index=True)
    content: str
    created_at: datetime = Field(default_factory=_now, sa_type=UTCDateTime, index=True)

    task: Optional["Task"] = Relationship(back_populates="updates")
