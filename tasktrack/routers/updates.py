import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import timeutil
from ..database import get_db
from ..errors import NotFound
from ..models import Task as TaskModel, Update as UpdateModel
from ..schemas.update import Update as UpdateSchema, UpdateContent

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_update_or_404(db: Session, update_id: int) -> UpdateModel:
    update = db.query(UpdateModel).filter(UpdateModel.id == update_id).first()
    if not update:
        raise NotFound("Update not found")
    return update


def _touch_task(db: Session, task_id: int) -> None:
    task = db.query(TaskModel).filter(TaskModel.id == task_id).first()
    if task:
        task.touch(timeutil.utcnow())


@router.put("/updates/{update_id}", response_model=UpdateSchema)
def edit_update(update_id: int, payload: UpdateContent, db: Session = Depends(get_db)):
    """Replace an update's content; its timestamp stays put."""
    update = _get_update_or_404(db, update_id)
    update.content = payload.content
    _touch_task(db, update.task_id)

    db.commit()
    db.refresh(update)
    return update


@router.delete("/updates/{update_id}")
def delete_update(update_id: int, db: Session = Depends(get_db)):
    update = _get_update_or_404(db, update_id)
    task_id = update.task_id

    db.delete(update)
    _touch_task(db, task_id)
    db.commit()
    logger.info("Deleted update %s from task %s", update_id, task_id)
    return {"ok": True}
