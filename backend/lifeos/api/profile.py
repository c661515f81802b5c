from fastapi import APIRouter, Depends

from lifeos.dependencies.services import get_progress_service
from lifeos.models.schemas import (
    FocusSession,
    FocusSessionCreate,
    ProfileUpdate,
    ProgressSummary,
    TimerSettings,
    UserProfile,
)
from lifeos.services.progress import ProgressService

router = APIRouter()


@router.get("/me", response_model=UserProfile)
async def get_my_profile(progress: ProgressService = Depends(get_progress_service)):
    return await progress.get_profile()


@router.patch("", response_model=UserProfile)
async def update_profile(payload: ProfileUpdate, progress: ProgressService = Depends(get_progress_service)):
    return await progress.update_profile(payload)


@router.get("/progress", response_model=ProgressSummary)
async def get_progress(progress: ProgressService = Depends(get_progress_service)):
    return await progress.summary()


@router.post("/focus-sessions", response_model=FocusSession, status_code=201)
async def record_focus_session(payload: FocusSessionCreate, progress: ProgressService = Depends(get_progress_service)):
    return await progress.record_focus_session(payload)


@router.get("/timer-settings", response_model=TimerSettings)
async def get_timer_settings(progress: ProgressService = Depends(get_progress_service)):
    return await progress.get_timer_settings()


@router.put("/timer-settings", response_model=TimerSettings)
async def save_timer_settings(payload: TimerSettings, progress: ProgressService = Depends(get_progress_service)):
    return await progress.save_timer_settings(payload)
