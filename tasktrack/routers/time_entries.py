import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import config, timeutil
from ..database import get_db
from ..errors import ConflictError, NotFound, ValidationError
from ..models import TimeEntry as TimeEntryModel
from ..schemas.time_entry import DEFAULT_TRIM_SECONDS, TimeEntry as TimeEntrySchema, TimeSummary, TrimRequest
from .tasks import get_task_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


def require_time_tracking() -> None:
    if not config.ENABLE_TIME_TRACKING:
        raise NotFound("Time tracking disabled")


def _running_entry(db: Session, task_id: int) -> Optional[TimeEntryModel]:
    return (
        db.query(TimeEntryModel)
        .filter(TimeEntryModel.task_id == task_id, TimeEntryModel.end_at.is_(None))
        .first()
    )


def _get_entry_or_404(db: Session, entry_id: int) -> TimeEntryModel:
    entry = db.query(TimeEntryModel).filter(TimeEntryModel.id == entry_id).first()
    if not entry:
        raise NotFound("Not found")
    return entry


def _seconds_today(db: Session, task_id: Optional[int] = None) -> int:
    now = timeutil.utcnow()
    day_start, day_end = timeutil.local_day_bounds(now)

    query = db.query(TimeEntryModel).filter(
        TimeEntryModel.start_at < day_end,
        or_(TimeEntryModel.end_at.is_(None), TimeEntryModel.end_at > day_start),
    )
    if task_id is not None:
        query = query.filter(TimeEntryModel.task_id == task_id)

    return timeutil.overlap_seconds(
        ((entry.start_at, entry.end_at) for entry in query.all()),
        day_start,
        day_end,
        now,
    )


@router.post(
    "/tasks/{task_id}/time/start",
    response_model=TimeEntrySchema,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_time_tracking)],
)
def start_timer(task_id: int, response: Response, db: Session = Depends(get_db)):
    """Start a timer on the task, or hand back the one already running."""
    task = get_task_or_404(db, task_id)

    running = _running_entry(db, task.id)
    if running:
        response.status_code = status.HTTP_200_OK
        return TimeEntrySchema.from_entry(running)

    entry = TimeEntryModel(task_id=task.id, start_at=timeutil.utcnow())
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with another start; the unique index kept the winner.
        db.rollback()
        running = _running_entry(db, task.id)
        if running is None:
            raise
        response.status_code = status.HTTP_200_OK
        return TimeEntrySchema.from_entry(running)

    db.refresh(entry)
    logger.info("Started timer %s on task %s", entry.id, task.id)
    return TimeEntrySchema.from_entry(entry)


@router.post(
    "/tasks/{task_id}/time/stop",
    response_model=TimeEntrySchema,
    dependencies=[Depends(require_time_tracking)],
)
def stop_timer(task_id: int, db: Session = Depends(get_db)):
    task = get_task_or_404(db, task_id)

    running = _running_entry(db, task.id)
    if not running:
        raise NotFound("No active timer")

    end = timeutil.utcnow()
    running.end_at = end
    running.duration_seconds = timeutil.whole_seconds(running.start_at, end)

    db.commit()
    db.refresh(running)
    logger.info("Stopped timer %s on task %s after %ss", running.id, task.id, running.duration_seconds)
    return TimeEntrySchema.from_entry(running)


@router.get("/tasks/{task_id}/time/summary/today", response_model=TimeSummary)
def task_time_today(task_id: int, db: Session = Depends(get_db)):
    """Seconds tracked on one task within today's local calendar day."""
    if not config.ENABLE_TIME_TRACKING:
        return TimeSummary()
    task = get_task_or_404(db, task_id)
    return TimeSummary(total_seconds=_seconds_today(db, task.id))


@router.get("/time_entries/summary/today", response_model=TimeSummary)
def time_today(db: Session = Depends(get_db)):
    """Seconds tracked across all tasks within today's local calendar day.

    Entries that began yesterday or are still running only count the part
    that falls inside today.
    """
    if not config.ENABLE_TIME_TRACKING:
        return TimeSummary()
    return TimeSummary(total_seconds=_seconds_today(db))


@router.delete("/time_entries/{entry_id}", dependencies=[Depends(require_time_tracking)])
def delete_time_entry(entry_id: int, db: Session = Depends(get_db)):
    entry = _get_entry_or_404(db, entry_id)

    db.delete(entry)
    db.commit()
    logger.info("Deleted time entry %s", entry_id)
    return {"ok": True}


@router.post(
    "/time_entries/{entry_id}/trim",
    response_model=TimeEntrySchema,
    dependencies=[Depends(require_time_tracking)],
)
def trim_time_entry(entry_id: int, payload: Optional[TrimRequest] = None, db: Session = Depends(get_db)):
    """Pull a finished entry's end back by ``seconds``, never past its start."""
    entry = _get_entry_or_404(db, entry_id)
    if entry.running:
        raise ConflictError("Cannot trim a running time entry")

    seconds = (payload.seconds if payload else None) or DEFAULT_TRIM_SECONDS
    if seconds <= 0:
        raise ValidationError("seconds must be > 0")
    seconds = min(seconds, (entry.end_at - entry.start_at).total_seconds())

    new_end = max(entry.end_at - timedelta(seconds=seconds), entry.start_at)
    entry.end_at = new_end
    entry.duration_seconds = timeutil.whole_seconds(entry.start_at, new_end)

    db.commit()
    db.refresh(entry)
    return TimeEntrySchema.from_entry(entry)
