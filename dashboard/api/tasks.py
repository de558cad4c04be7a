import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from dashboard.dependencies import get_task_service
from dashboard.schemas import (
    AttachmentIn,
    DeleteResponse,
    ReorderRequest,
    TaskCreate,
    TaskListResponse,
    TaskOut,
    TaskPatch,
)
from models.enums import TaskView
from models.task import Task
from services import TaskService
from utils.datetime_utils import group_tasks_by_month, month_key
from utils.sorting import default_task_sort

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _out(service: TaskService, task: Task) -> TaskOut:
    return TaskOut.from_task(task, is_virtual=task.id not in {t.id for t in service.persisted_tasks})


def _found(task: Optional[Task], task_id: str) -> Task:
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return task


@router.get("/", response_model=TaskListResponse)
async def list_tasks(
    service: TaskService = Depends(get_task_service),
    view: TaskView = Query(TaskView.ALL),
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
):
    """
    Projected task list: stored tasks plus virtual recurring occurrences
    """
    if view == TaskView.ACTIVE:
        tasks = service.get_active_tasks()
    elif view == TaskView.COMPLETED:
        tasks = service.get_completed_tasks()
    else:
        tasks = service.get_tasks()

    if month:
        tasks = [t for t in tasks if month in (month_key(t.draft_due), month_key(t.final_due))]

    tasks = default_task_sort(tasks)
    persisted_ids = {t.id for t in service.persisted_tasks}

    return TaskListResponse(
        tasks=[TaskOut.from_task(t, is_virtual=t.id not in persisted_ids) for t in tasks],
        months={key: [t.id for t in group] for key, group in group_tasks_by_month(tasks).items()},
        total=len(tasks),
        overdue=service.get_overdue_count(),
    )


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)):
    return _out(service, _found(service.get_task(task_id), task_id))


@router.post("/", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(payload: TaskCreate, service: TaskService = Depends(get_task_service)):
    task = await service.create_task(payload.to_data())
    return _out(service, task)


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task(task_id: str, payload: TaskPatch, service: TaskService = Depends(get_task_service)):
    """
    Update a task; patching a virtual occurrence stores it
    """
    task = await service.update_task(task_id, payload.to_patch())
    return _out(service, _found(task, task_id))


@router.delete("/{task_id}", response_model=DeleteResponse)
async def delete_task(task_id: str, service: TaskService = Depends(get_task_service)):
    result = await service.delete_task(task_id)
    if not result.removed and result.completed is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")

    return DeleteResponse(
        removed=result.removed_ids,
        completed=_out(service, result.completed) if result.completed else None,
    )


@router.post("/{task_id}/toggle-draft", response_model=TaskOut)
async def toggle_draft(task_id: str, service: TaskService = Depends(get_task_service)):
    return _out(service, _found(await service.toggle_draft_complete(task_id), task_id))


@router.post("/{task_id}/toggle-final", response_model=TaskOut)
async def toggle_final(task_id: str, service: TaskService = Depends(get_task_service)):
    return _out(service, _found(await service.toggle_final_complete(task_id), task_id))


@router.post("/{task_id}/duplicate", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def duplicate_task(task_id: str, service: TaskService = Depends(get_task_service)):
    return _out(service, _found(await service.duplicate_task(task_id), task_id))


@router.post("/{task_id}/attachments", response_model=TaskOut)
async def add_attachment(task_id: str, payload: AttachmentIn, service: TaskService = Depends(get_task_service)):
    task = await service.add_attachment(task_id, payload.to_attachment())
    return _out(service, _found(task, task_id))


@router.post("/reorder", response_model=dict)
async def reorder_tasks(payload: ReorderRequest, service: TaskService = Depends(get_task_service)):
    updated = await service.update_sort_order(payload.task_ids)
    return {"updated": updated}
