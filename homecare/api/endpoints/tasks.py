"""
Maintenance Task Endpoints
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from homecare.database import get_db
from homecare.models.user import User
from homecare.models.task import UserTask, TaskHistory
from homecare.schemas.task import (
    TaskCreate,
    TaskCompleteRequest,
    TaskResponse,
    TaskHistoryResponse,
)
from homecare.api.deps import require_homeowner
from homecare.api.endpoints.properties import get_owned_property
from homecare.core.exceptions import NotFoundError
from homecare.services.tasks import complete_task
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _get_owned_task(db: Session, user: User, task_id: str) -> UserTask:
    task = db.query(UserTask).filter(
        UserTask.id == task_id,
        UserTask.user_id == user.id
    ).first()
    if not task:
        raise NotFoundError("Task", task_id)
    return task


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    property_id: Optional[str] = None,
    status: Optional[str] = Query(None, pattern="^(pending|completed)$"),
    due_before: Optional[date] = None,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """The caller's tasks, soonest due first."""
    query = db.query(UserTask).filter(UserTask.user_id == current_user.id)

    if property_id:
        query = query.filter(UserTask.property_id == property_id)
    if status:
        query = query.filter(UserTask.status == status)
    if due_before:
        query = query.filter(UserTask.due_date <= due_before)

    return query.order_by(UserTask.due_date, UserTask.title).all()


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    prop = get_owned_property(db, current_user, task_data.property_id)

    task = UserTask(
        user_id=current_user.id,
        property_id=prop.id,
        title=task_data.title,
        description=task_data.description,
        category="Custom",
        due_date=task_data.due_date,
        status="pending",
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info(f"Custom task created: {task.id} by {current_user.id}")

    return task


@router.get("/history", response_model=list[TaskHistoryResponse])
async def task_history(
    property_id: Optional[str] = None,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    query = db.query(TaskHistory).filter(TaskHistory.user_id == current_user.id)
    if property_id:
        query = query.filter(TaskHistory.property_id == property_id)
    return query.order_by(TaskHistory.completed_at.desc()).all()


@router.post("/{task_id}/complete", response_model=TaskHistoryResponse)
async def complete(
    task_id: str,
    payload: TaskCompleteRequest,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """
    Mark a task done.

    Professional work is recorded as verified (confidence 1.0), DIY work
    at 0.9.
    """
    task = _get_owned_task(db, current_user, task_id)
    history = complete_task(db, task, payload.completed_by, payload.notes)
    db.commit()
    db.refresh(history)

    logger.info(f"Task completed: {task.id} ({payload.completed_by}) by {current_user.id}")

    return history


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    task = _get_owned_task(db, current_user, task_id)
    db.delete(task)
    db.commit()

    logger.info(f"Task deleted: {task_id} by {current_user.id}")
    return None
