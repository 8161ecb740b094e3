from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional, List
import enum

from .. import timeutil
from ..timeutil import UTCDateTime


def _now() -> datetime:
    return timeutil.utcnow()


class TaskStatus(str, enum.Enum):
    OPEN = "open"
    WAITING = "waiting"
    CLOSED = "closed"


class Task(SQLModel, table=True):
    """A trackable item with a title and a single tagged status.

    ``status_since`` is when the task entered WAITING or CLOSED and is
    always None while OPEN, so a task can never be closed and waiting at
    the same time.
    """
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    desired_outcome: Optional[str] = Field(default=None, max_length=1000)
    status: TaskStatus = Field(default=TaskStatus.OPEN, index=True)
    status_since: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=_now, sa_type=UTCDateTime)

    updates: List["Update"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )
    time_entries: List["TimeEntry"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )

    @property
    def closed_at(self) -> Optional[datetime]:
        return self.status_since if self.status == TaskStatus.CLOSED else None

    @property
    def waiting_since(self) -> Optional[datetime]:
        return self.status_since if self.status == TaskStatus.WAITING else None

    def transition(self, new_status: TaskStatus, at: datetime) -> None:
        self.status = new_status
        self.status_since = None if new_status == TaskStatus.OPEN else at

    def touch(self, at: Optional[datetime] = None) -> None:
        self.updated_at = at or _now()
