import logging
from typing import Annotated, List, Union

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import config, timeutil
from ..database import get_db
from ..errors import ConflictError, NotFound, ValidationError
from ..models import Task as TaskModel, TaskStatus, TimeEntry as TimeEntryModel, Update as UpdateModel
from ..schemas.task import (
    Task as TaskSchema,
    TaskCreate,
    TaskOutcomeUpdate,
    TaskRename,
    TaskStatusUpdate,
    TaskWithPreview,
)
from ..schemas.time_entry import TimeEntry as TimeEntrySchema
from ..schemas.update import Update as UpdateSchema, UpdateContent, UpdateFeedItem

logger = logging.getLogger(__name__)

router = APIRouter()

FeedItem = Annotated[Union[UpdateFeedItem, TimeEntrySchema], Field(discriminator="type")]


def get_task_or_404(db: Session, task_id: int) -> TaskModel:
    task = db.query(TaskModel).filter(TaskModel.id == task_id).first()
    if not task:
        raise NotFound("Task not found")
    return task


def latest_update(db: Session, task_id: int):
    return (
        db.query(UpdateModel)
        .filter(UpdateModel.task_id == task_id)
        .order_by(UpdateModel.created_at.desc(), UpdateModel.id.desc())
        .first()
    )


def resolve_status(current: TaskStatus, payload: TaskStatusUpdate) -> TaskStatus:
    """Work out the status a closed/waiting request asks for.

    Clearing a flag only reopens the task when that flag is the current
    status; asking for both at once is refused.
    """
    if payload.closed is None and payload.waiting is None:
        raise ValidationError("No status fields provided")
    if payload.closed and payload.waiting:
        raise ConflictError("Task cannot be both closed and waiting")

    new_status = current
    if payload.closed is not None:
        if payload.closed:
            new_status = TaskStatus.CLOSED
        elif new_status == TaskStatus.CLOSED:
            new_status = TaskStatus.OPEN
    if payload.waiting is not None:
        if payload.waiting:
            new_status = TaskStatus.WAITING
        elif new_status == TaskStatus.WAITING:
            new_status = TaskStatus.OPEN
    return new_status


@router.get("/tasks", response_model=List[TaskWithPreview])
def get_tasks(db: Session = Depends(get_db)):
    """List every task, most recently touched first, with its latest update."""
    tasks = (
        db.query(TaskModel)
        .order_by(
            func.coalesce(TaskModel.updated_at, TaskModel.created_at).desc(),
            TaskModel.id.desc(),
        )
        .all()
    )

    result = []
    for task in tasks:
        latest = latest_update(db, task.id)
        result.append(
            TaskWithPreview.model_validate(task).model_copy(
                update={
                    "latest_update": latest.content if latest else None,
                    "latest_at": latest.created_at if latest else None,
                }
            )
        )
    return result


@router.post("/tasks", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
def create_task(task: TaskCreate, db: Session = Depends(get_db)):
    now = timeutil.utcnow()
    db_task = TaskModel(title=task.title, created_at=now, updated_at=now)
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    logger.info("Created task %s", db_task.id)
    return db_task


@router.put("/tasks/{task_id}", response_model=TaskSchema)
def rename_task(task_id: int, task_update: TaskRename, db: Session = Depends(get_db)):
    task = get_task_or_404(db, task_id)
    task.title = task_update.title
    task.touch()

    db.commit()
    db.refresh(task)
    return task


@router.patch("/tasks/{task_id}/status", response_model=TaskSchema)
def set_task_status(task_id: int, payload: TaskStatusUpdate, db: Session = Depends(get_db)):
    """Close, park as waiting, or reopen a task."""
    task = get_task_or_404(db, task_id)

    new_status = resolve_status(task.status, payload)
    now = timeutil.utcnow()
    # Setting a flag again re-stamps it; clearing one that isn't set is a no-op.
    if new_status != task.status or payload.closed or payload.waiting:
        task.transition(new_status, now)
    task.touch(now)

    db.commit()
    db.refresh(task)
    logger.info("Task %s is now %s", task.id, task.status.value)
    return task


@router.patch("/tasks/{task_id}/outcome", response_model=TaskSchema)
def set_task_outcome(task_id: int, payload: TaskOutcomeUpdate, db: Session = Depends(get_db)):
    task = get_task_or_404(db, task_id)
    task.desired_outcome = payload.desired_outcome
    task.touch()

    db.commit()
    db.refresh(task)
    return task


@router.delete("/tasks/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db)):
    """Delete a task together with its updates and time entries."""
    task = get_task_or_404(db, task_id)

    db.delete(task)
    db.commit()
    logger.info("Deleted task %s", task_id)
    return {"ok": True}


@router.get("/tasks/{task_id}/updates", response_model=List[FeedItem])
def get_task_feed(task_id: int, db: Session = Depends(get_db)):
    """Updates and time entries of a task, newest first.

    Time entries sort by their end, or by their start while still running.
    """
    task = get_task_or_404(db, task_id)

    items = [
        UpdateFeedItem.model_validate(update)
        for update in db.query(UpdateModel).filter(UpdateModel.task_id == task.id).all()
    ]
    if config.ENABLE_TIME_TRACKING:
        items.extend(
            TimeEntrySchema.from_entry(entry)
            for entry in db.query(TimeEntryModel).filter(TimeEntryModel.task_id == task.id).all()
        )

    items.sort(key=lambda item: (item.created_at, item.id), reverse=True)
    return items


@router.post("/tasks/{task_id}/updates", response_model=UpdateSchema, status_code=status.HTTP_201_CREATED)
def add_update(task_id: int, payload: UpdateContent, db: Session = Depends(get_db)):
    task = get_task_or_404(db, task_id)

    now = timeutil.utcnow()
    update = UpdateModel(task_id=task.id, content=payload.content, created_at=now)
    db.add(update)
    task.touch(now)

    db.commit()
    db.refresh(update)
    logger.info("Added update %s to task %s", update.id, task.id)
    return update
