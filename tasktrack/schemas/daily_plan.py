import re
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, StrictBool, StrictInt, field_validator

from ..models.daily_plan import MAX_PLAN_ITEM_LENGTH

_PLAN_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_plan_date(value) -> Optional[date]:
    """The date for a real calendar day written as YYYY-MM-DD, else None."""
    if not isinstance(value, str) or not _PLAN_DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class PlanItemCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _clean_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Content required")
        if len(value) > MAX_PLAN_ITEM_LENGTH:
            raise ValueError(f"Too long (max {MAX_PLAN_ITEM_LENGTH} chars)")
        return value.strip()


class PlanItemPatch(BaseModel):
    """Partial edit; only the fields present are applied."""
    content: Optional[str] = None
    done: Optional[StrictBool] = None
    position: Optional[StrictInt] = None
    plan_date: Optional[str] = None

    @field_validator("content")
    @classmethod
    def _clean_content(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Content cannot be empty")
        if len(value) > MAX_PLAN_ITEM_LENGTH:
            raise ValueError(f"Too long (max {MAX_PLAN_ITEM_LENGTH} chars)")
        return value

    @field_validator("plan_date")
    @classmethod
    def _check_plan_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and parse_plan_date(value) is None:
            raise ValueError("Invalid plan_date")
        return value


class PlanItem(BaseModel):
    id: int
    plan_date: str
    content: str
    done: bool
    position: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DailyPlan(BaseModel):
    date: str
    items: List[PlanItem]
    total: int
    remaining: int


class PlanCounts(BaseModel):
    total: int = 0
    remaining: int = 0


class DailyPlanSummary(BaseModel):
    yesterday: PlanCounts
    today: PlanCounts
    tomorrow: PlanCounts

    @classmethod
    def from_counts(cls, counts: Dict[str, PlanCounts], yesterday: str, today: str, tomorrow: str):
        return cls(
            yesterday=counts.get(yesterday, PlanCounts()),
            today=counts.get(today, PlanCounts()),
            tomorrow=counts.get(tomorrow, PlanCounts()),
        )
