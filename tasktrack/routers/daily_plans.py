import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from .. import timeutil
from ..database import get_db
from ..errors import NotFound, ValidationError
from ..models import DailyPlanItem
from ..schemas.daily_plan import (
    DailyPlan,
    DailyPlanSummary,
    PlanCounts,
    PlanItem,
    PlanItemCreate,
    PlanItemPatch,
    parse_plan_date,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_update_data(payload: PlanItemPatch) -> dict:
    return {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}


def _check_plan_date(plan_date: str) -> date:
    parsed = parse_plan_date(plan_date)
    if parsed is None:
        raise ValidationError("Invalid date")
    return parsed


def _get_item_or_404(db: Session, item_id: int) -> DailyPlanItem:
    item = db.query(DailyPlanItem).filter(DailyPlanItem.id == item_id).first()
    if not item:
        raise NotFound("Not found")
    return item


def next_plan_position(db: Session, plan_date: str) -> int:
    """Position just past the last item of ``plan_date``; 0 for an empty date."""
    max_position = (
        db.query(func.max(DailyPlanItem.position))
        .filter(DailyPlanItem.plan_date == plan_date)
        .scalar()
    )
    return 0 if max_position is None else max_position + 1


# Registered before /daily_plans/{plan_date} so "summary" is not taken for a date.
@router.get("/daily_plans/summary", response_model=DailyPlanSummary)
def get_plan_summary(today: Optional[str] = None, db: Session = Depends(get_db)):
    """Item counts for yesterday, today and tomorrow.

    ``today`` lets the client pass its own local date.
    """
    if today is None:
        today_date = timeutil.local_today()
    else:
        today_date = _check_plan_date(today)

    yesterday = (today_date - timedelta(days=1)).isoformat()
    tomorrow = (today_date + timedelta(days=1)).isoformat()
    today_str = today_date.isoformat()

    rows = (
        db.query(
            DailyPlanItem.plan_date,
            func.count(DailyPlanItem.id),
            func.sum(case((DailyPlanItem.done.is_(False), 1), else_=0)),
        )
        .filter(DailyPlanItem.plan_date.in_([yesterday, today_str, tomorrow]))
        .group_by(DailyPlanItem.plan_date)
        .all()
    )
    counts = {
        plan_date: PlanCounts(total=total, remaining=remaining or 0)
        for plan_date, total, remaining in rows
    }
    return DailyPlanSummary.from_counts(counts, yesterday, today_str, tomorrow)


@router.get("/daily_plans/{plan_date}", response_model=DailyPlan)
def get_daily_plan(plan_date: str, db: Session = Depends(get_db)):
    _check_plan_date(plan_date)

    items = (
        db.query(DailyPlanItem)
        .filter(DailyPlanItem.plan_date == plan_date)
        .order_by(DailyPlanItem.position.asc(), DailyPlanItem.id.asc())
        .all()
    )
    return DailyPlan(
        date=plan_date,
        items=[PlanItem.model_validate(item) for item in items],
        total=len(items),
        remaining=sum(1 for item in items if not item.done),
    )


@router.post("/daily_plans/{plan_date}/items", response_model=PlanItem, status_code=status.HTTP_201_CREATED)
def add_plan_item(plan_date: str, payload: PlanItemCreate, db: Session = Depends(get_db)):
    _check_plan_date(plan_date)

    item = DailyPlanItem(
        plan_date=plan_date,
        content=payload.content,
        position=next_plan_position(db, plan_date),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Added plan item %s on %s", item.id, plan_date)
    return item


@router.patch("/daily_plan_items/{item_id}", response_model=PlanItem)
def edit_plan_item(item_id: int, payload: PlanItemPatch, db: Session = Depends(get_db)):
    """Edit content, done, position, or move the item to another date.

    Moving to a different date puts the item at the end of that date and
    wins over an explicit position in the same request.
    """
    item = _get_item_or_404(db, item_id)
    changes = _get_update_data(payload)
    if not changes:
        raise ValidationError("No fields to update")

    if "content" in changes:
        item.content = changes["content"]
    if "done" in changes:
        item.done = changes["done"]
    if "position" in changes:
        item.position = changes["position"]
    new_date = changes.get("plan_date")
    if new_date and new_date != item.plan_date:
        item.position = next_plan_position(db, new_date)
        item.plan_date = new_date
    item.updated_at = timeutil.utcnow()

    db.commit()
    db.refresh(item)
    return item


@router.post("/daily_plan_items/{item_id}/toggle", response_model=PlanItem)
def toggle_plan_item(item_id: int, db: Session = Depends(get_db)):
    item = _get_item_or_404(db, item_id)
    item.done = not item.done
    item.updated_at = timeutil.utcnow()

    db.commit()
    db.refresh(item)
    return item


@router.delete("/daily_plan_items/{item_id}")
def delete_plan_item(item_id: int, db: Session = Depends(get_db)):
    item = _get_item_or_404(db, item_id)

    db.delete(item)
    db.commit()
    logger.info("Deleted plan item %s", item_id)
    return {"ok": True}
