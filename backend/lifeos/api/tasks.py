from typing import Callable, Dict, List
from datetime import date

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from lifeos.core.classification import classify, partition
from lifeos.core.progress import task_xp_breakdown
from lifeos.dependencies.services import get_sync_service, get_today
from lifeos.models.schemas import Quadrant, Task, TaskCreate, TaskUpdate, XPReward
from lifeos.services.sync import SyncService

router = APIRouter()


class ToggleRequest(BaseModel):
    completed: bool


class ClassifiedTask(BaseModel):
    task: Task
    quadrant: Quadrant
    xp: XPReward


@router.get("", response_model=List[ClassifiedTask])
async def list_tasks(
    sync: SyncService = Depends(get_sync_service),
    today: Callable[[], date] = Depends(get_today),
):
    tasks = await sync.load_tasks()
    day = today()
    return [ClassifiedTask(task=t, quadrant=classify(t, day), xp=task_xp_breakdown(t)) for t in tasks]


@router.get("/matrix", response_model=Dict[Quadrant, List[Task]])
async def task_matrix(
    include_completed: bool = False,
    sync: SyncService = Depends(get_sync_service),
    today: Callable[[], date] = Depends(get_today),
):
    tasks = await sync.load_tasks()
    if not include_completed:
        tasks = [t for t in tasks if not t.is_completed]
    return partition(tasks, today())


@router.post("", response_model=Task, status_code=201)
async def create_task(payload: TaskCreate, sync: SyncService = Depends(get_sync_service)):
    return await sync.create_task(payload)


@router.patch("/{task_id}", response_model=Task)
async def update_task(task_id: str, payload: TaskUpdate, sync: SyncService = Depends(get_sync_service)):
    return await sync.update_task(task_id, payload)


@router.post("/{task_id}/toggle", response_model=Task)
async def toggle_task(task_id: str, payload: ToggleRequest, sync: SyncService = Depends(get_sync_service)):
    return await sync.toggle_task(task_id, payload.completed)


@router.delete("/{task_id}", status_code=204)
async def delete_task(task_id: str, sync: SyncService = Depends(get_sync_service)):
    await sync.delete_task(task_id)
    return Response(status_code=204)
