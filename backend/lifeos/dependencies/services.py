from datetime import date
from typing import Callable

from fastapi import Depends

from lifeos.config import Settings, get_settings, local_today
from lifeos.dependencies.auth import AuthContext, get_auth_context, get_store
from lifeos.integrations.google_calendar import GoogleCalendarClient
from lifeos.services.goals import GoalService
from lifeos.services.habits import HabitService
from lifeos.services.progress import ProgressService
from lifeos.services.sync import SyncService
from lifeos.services.workouts import WorkoutService
from lifeos.storage.base import PrimaryStore


def get_today(settings: Settings = Depends(get_settings)) -> Callable[[], date]:
    """Clock for "today" in the configured timezone."""
    tz = settings.tz
    return lambda: local_today(tz)


def get_calendar(
    auth: AuthContext = Depends(get_auth_context),
    settings: Settings = Depends(get_settings),
) -> GoogleCalendarClient:
    return GoogleCalendarClient(auth.provider_token, settings.google_calendar_id)


def get_progress_service(
    store: PrimaryStore = Depends(get_store),
    auth: AuthContext = Depends(get_auth_context),
    today: Callable[[], date] = Depends(get_today),
) -> ProgressService:
    return ProgressService(store, auth, today=today)


def get_sync_service(
    store: PrimaryStore = Depends(get_store),
    auth: AuthContext = Depends(get_auth_context),
    calendar: GoogleCalendarClient = Depends(get_calendar),
    progress: ProgressService = Depends(get_progress_service),
) -> SyncService:
    return SyncService(store, auth, calendar, listeners=[progress])


def get_goal_service(
    store: PrimaryStore = Depends(get_store),
    auth: AuthContext = Depends(get_auth_context),
    today: Callable[[], date] = Depends(get_today),
) -> GoalService:
    return GoalService(store, auth, today=today)


def get_habit_service(
    store: PrimaryStore = Depends(get_store),
    auth: AuthContext = Depends(get_auth_context),
    today: Callable[[], date] = Depends(get_today),
) -> HabitService:
    return HabitService(store, auth.owner_id, today=today)


def get_workout_service(
    store: PrimaryStore = Depends(get_store),
    auth: AuthContext = Depends(get_auth_context),
) -> WorkoutService:
    return WorkoutService(store, auth.owner_id)
