from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional

from ..timeutil import UTCDateTime
from .task import _now


class TimeEntry(SQLModel, table=True):
    """A start/end interval of work on a task; running while ``end_at`` is None."""
    __tablename__ = "time_entries"
    __table_args__ = (
        # One running entry per task.
        Index(
            "uq_time_entries_running_task",
            "task_id",
            unique=True,
            sqlite_where=text("end_at IS NULL"),
            postgresql_where=text("end_at IS NULL"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", ondelete="CASCADE", index=True)
    start_at: datetime = Field(default_factory=_now, sa_type=UTCDateTime, index=True)
    end_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    duration_seconds: Optional[int] = None

    task: Optional["Task"] = Relationship(back_populates="time_entries")

    @property
    def running(self) -> bool:
        return self.end_at is None

    @property
    def sort_at(self) -> datetime:
        return self.end_at or self.start_at
