from pydantic import BaseModel
from datetime import datetime
from typing import Literal, Optional

DEFAULT_TRIM_SECONDS = 900


class TrimRequest(BaseModel):
    """Seconds to cut from the end of a completed entry; 0 or missing means 15 minutes."""
    seconds: Optional[float] = None


class TimeEntry(BaseModel):
    type: Literal["time"] = "time"
    id: int
    task_id: int
    start_at: datetime
    end_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    running: bool
    created_at: datetime

    @classmethod
    def from_entry(cls, entry) -> "TimeEntry":
        return cls(
            id=entry.id,
            task_id=entry.task_id,
            start_at=entry.start_at,
            end_at=entry.end_at,
            duration_seconds=entry.duration_seconds,
            running=entry.running,
            created_at=entry.sort_at,
        )


class TimeSummary(BaseModel):
    total_seconds: int = 0
