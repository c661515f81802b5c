import asyncio
from datetime import date
from typing import Callable

from fastapi import APIRouter, Depends

from lifeos.config import Settings, get_settings
from lifeos.dependencies.services import get_progress_service, get_sync_service, get_today
from lifeos.models.schemas import Dashboard, Task
from lifeos.services.progress import ProgressService, summarize
from lifeos.services.sync import TASKS, SyncService
from lifeos.storage.base import eq, gte, lte
from lifeos.tools.calendar_tools import day_bounds

router = APIRouter()

PENDING_LIMIT = 5
_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


@router.get("", response_model=Dashboard)
async def get_dashboard(
    sync: SyncService = Depends(get_sync_service),
    progress: ProgressService = Depends(get_progress_service),
    settings: Settings = Depends(get_settings),
    today: Callable[[], date] = Depends(get_today),
):
    uid = sync.auth.require_user()
    day_start, day_end = day_bounds(today(), settings.tz)
    events, pending_rows, done_rows, profile = await asyncio.gather(
        sync.load_events(day_start, day_end),
        sync.store.select(TASKS, [eq("user_id", uid), eq("is_completed", False)], order="created_at", desc=True),
        sync.store.select(
            TASKS,
            [eq("user_id", uid), eq("is_completed", True), gte("updated_at", day_start), lte("updated_at", day_end)],
        ),
        progress.get_profile(),
    )
    pending = sorted((Task.model_validate(r) for r in pending_rows), key=lambda t: _PRIORITY_RANK[t.priority])
    return Dashboard(
        today_events=events,
        pending_tasks=pending[:PENDING_LIMIT],
        completed_today=len(done_rows),
        progress=summarize(profile),
    )
