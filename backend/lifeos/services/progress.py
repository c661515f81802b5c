import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from lifeos.core.progress import focus_xp, level_from_xp, level_title, task_xp, xp_for_next_level
from lifeos.dependencies.auth import AuthContext
from lifeos.models.schemas import (
    FocusSession,
    FocusSessionCreate,
    ProfileUpdate,
    ProgressSummary,
    TimerSettings,
    UserProfile,
)
from lifeos.services.goals import GoalService
from lifeos.services.sync import TaskChange
from lifeos.storage.base import PrimaryStore, eq

logger = logging.getLogger(__name__)

PROFILES = "user_profiles"
FOCUS_SESSIONS = "focus_sessions"
TIMER_SETTINGS = "pomodoro_settings"


def summarize(profile: UserProfile) -> ProgressSummary:
    return ProgressSummary(
        xp=profile.xp,
        level=profile.level,
        level_title=level_title(profile.level),
        xp_for_next_level=xp_for_next_level(profile.level),
        tasks_completed=profile.tasks_completed,
        focus_minutes=profile.focus_minutes,
    )


class ProgressService:
    """Keeps goals and the user profile in step with task changes.

    Register an instance as a ``SyncService`` listener. Goal counters are
    recomputed for the old and new goal of every change; XP is awarded on
    completion and never taken back when a task is reopened.
    """

    def __init__(self, store: PrimaryStore, auth: AuthContext, today: Optional[Callable[[], date]] = None) -> None:
        self.store = store
        self.auth = auth
        self.goals = GoalService(store, auth, today=today)

    async def __call__(self, change: TaskChange) -> None:
        goal_ids = {change.task.goal_id}
        if change.previous is not None:
            goal_ids.add(change.previous.goal_id)
        for goal_id in sorted(g for g in goal_ids if g):
            await self.goals.recompute(goal_id)
        if change.kind == "completed":
            await self.award_task(change)

    async def award_task(self, change: TaskChange) -> UserProfile:
        xp = task_xp(change.task)
        profile = await self.get_profile()
        total = profile.xp + xp
        logger.info("[progress] +%s XP for task %s", xp, change.task.id)
        return await self._write_profile(
            {"xp": total, "level": level_from_xp(total), "tasks_completed": profile.tasks_completed + 1}
        )

    # --- profile -------------------------------------------------------------

    async def get_profile(self) -> UserProfile:
        """The caller's profile, created with defaults the first time it is needed."""
        uid = self.auth.require_user()
        row = await self.store.select_one(PROFILES, [eq("id", uid)])
        if row is not None:
            return UserProfile.model_validate(row)
        fresh = UserProfile(id=uid, email=self.auth.email, member_since=datetime.now(timezone.utc))
        logger.info("[progress] creating profile for %s", uid)
        created = await self.store.insert(
            PROFILES, fresh.model_dump(mode="json", exclude={"created_at", "updated_at"})
        )
        return UserProfile.model_validate(created)

    async def _write_profile(self, values: dict) -> UserProfile:
        uid = self.auth.require_user()
        await self.get_profile()
        rows = await self.store.update(PROFILES, [eq("id", uid)], values)
        if rows:
            return UserProfile.model_validate(rows[0])
        return await self.get_profile()

    async def update_profile(self, changes: ProfileUpdate) -> UserProfile:
        values = changes.changes()
        if not values:
            return await self.get_profile()
        return await self._write_profile(values)

    async def summary(self) -> ProgressSummary:
        return summarize(await self.get_profile())

    # --- focus ---------------------------------------------------------------

    async def record_focus_session(self, data: FocusSessionCreate) -> FocusSession:
        """Store a finished session; pomodoros also earn focus XP and minutes."""
        uid = self.auth.require_user()
        earned = focus_xp(data.duration_minutes)
        now = datetime.now(timezone.utc)
        row = {
            **data.model_dump(mode="json", exclude_none=True),
            "user_id": uid,
            "started_at": (data.started_at or now).isoformat(),
            "completed_at": now.isoformat(),
        }
        session = FocusSession.model_validate(await self.store.insert(FOCUS_SESSIONS, row))
        if data.mode == "pomodoro":
            profile = await self.get_profile()
            total = profile.xp + earned
            await self._write_profile(
                {
                    "xp": total,
                    "level": level_from_xp(total),
                    "focus_minutes": profile.focus_minutes + data.duration_minutes,
                }
            )
        return session

    async def get_timer_settings(self) -> TimerSettings:
        uid = self.auth.require_user()
        row = await self.store.select_one(TIMER_SETTINGS, [eq("user_id", uid)])
        return TimerSettings.model_validate(row) if row else TimerSettings()

    async def save_timer_settings(self, settings: TimerSettings) -> TimerSettings:
        uid = self.auth.require_user()
        values = settings.model_dump(mode="json")
        rows = await self.store.update(TIMER_SETTINGS, [eq("user_id", uid)], values)
        if not rows:
            rows = [await self.store.insert(TIMER_SETTINGS, {**values, "user_id": uid})]
        return TimerSettings.model_validate(rows[0])
