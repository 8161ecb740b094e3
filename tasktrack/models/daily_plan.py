from sqlalchemy import Index
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional

from ..timeutil import UTCDateTime
from .task import _now


MAX_PLAN_ITEM_LENGTH = 500


class DailyPlanItem(SQLModel, table=True):
    """Checklist entry for a calendar date.

    ``plan_date`` is a plain ``YYYY-MM-DD`` key in the user's local calendar,
    not tied to any task.
    """
    __tablename__ = "daily_plan_items"
    __table_args__ = (Index("idx_daily_plan_date_position", "plan_date", "position"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    plan_date: str = Field(max_length=10)
    content: str = Field(max_length=MAX_PLAN_ITEM_LENGTH)
    done: bool = Field(default=False)
    position: int = Field(default=0)
    created_at: datetime = Field(default_factory=_now, sa_type=UTCDateTime)
    updated_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
