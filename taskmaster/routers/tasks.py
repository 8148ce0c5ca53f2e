# PURPOSE: the caller's task list. Identity comes from the device header;
# updates carry the task id in the body and deletes take it as ?id=.

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db_models import UserDB
from ..exceptions import NotFoundError
from ..models import Task, TaskCreate, TaskUpdate
from ..store_db import (
    get_db,
    list_tasks as db_list_tasks,
    create_task as db_create_task,
    update_task as db_update_task,
    delete_task as db_delete_task,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=List[Task])
def list_tasks(
    db: Session = Depends(get_db),
    user: UserDB = Depends(get_current_user),
):
    return db_list_tasks(db, user.id)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
def create_task(
    item: TaskCreate,
    db: Session = Depends(get_db),
    user: UserDB = Depends(get_current_user),
):
    return db_create_task(db, user.id, item.text, item.due_date, item.reminder_time)


@router.put("", response_model=Task)
def update_task(
    item: TaskUpdate,
    db: Session = Depends(get_db),
    user: UserDB = Depends(get_current_user),
):
    updated = db_update_task(db, item.id, item, user_id=user.id)
    if not updated:
        raise NotFoundError("Task not found")
    return updated


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str = Query(alias="id", min_length=1),
    db: Session = Depends(get_db),
    user: UserDB = Depends(get_current_user),
):
    ok = db_delete_task(db, task_id, user_id=user.id)
    if not ok:
        raise NotFoundError("Task not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
