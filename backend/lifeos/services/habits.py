from collections import defaultdict
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Set

from lifeos.core.progress import MAX_STREAK_DAYS, habit_streak
from lifeos.errors import NotFound
from lifeos.models.schemas import Habit, HabitCreate, HabitLog
from lifeos.storage.base import PrimaryStore, eq, gte, in_

HABITS = "habits"
HABIT_LOGS = "habit_logs"


class HabitService:
    """Daily habits. A log row for (habit, day) means the habit was done that day.

    Works on whichever store the caller's auth context selected, so
    ``owner_id`` is the Supabase user id or the local anonymous owner.
    """

    def __init__(self, store: PrimaryStore, owner_id: str, today: Optional[Callable[[], date]] = None) -> None:
        self.store = store
        self.owner_id = owner_id
        self._today = today or date.today

    async def _require_habit(self, habit_id: str) -> dict:
        row = await self.store.select_one(HABITS, [eq("id", habit_id), eq("user_id", self.owner_id)])
        if row is None:
            raise NotFound("habit", habit_id)
        return row

    async def list_habits(self) -> List[Habit]:
        rows = await self.store.select(HABITS, [eq("user_id", self.owner_id)], order="created_at")
        if not rows:
            return []
        today = self._today()
        since = today - timedelta(days=MAX_STREAK_DAYS + 1)
        logs = await self.store.select(
            HABIT_LOGS, [in_("habit_id", [r["id"] for r in rows]), gte("completed_at", since)]
        )
        days: Dict[str, Set[date]] = defaultdict(set)
        for log in logs:
            days[log["habit_id"]].add(HabitLog.model_validate(log).completed_at)
        habits = []
        for row in rows:
            done = days.get(row["id"], set())
            habits.append(
                Habit.model_validate(
                    {**row, "completed_today": today in done, "streak": habit_streak(done, today)}
                )
            )
        return habits

    async def create_habit(self, data: HabitCreate) -> Habit:
        row = await self.store.insert(HABITS, {**data.model_dump(), "user_id": self.owner_id})
        return Habit.model_validate(row)

    async def toggle(self, habit_id: str, day: Optional[date] = None) -> bool:
        """Flip completion for ``day`` (today by default); returns the new state."""
        await self._require_habit(habit_id)
        day = day or self._today()
        filters = [eq("habit_id", habit_id), eq("completed_at", day)]
        if await self.store.delete(HABIT_LOGS, filters):
            return False
        await self.store.insert(HABIT_LOGS, {"habit_id": habit_id, "completed_at": day.isoformat()})
        return True

    async def delete_habit(self, habit_id: str) -> None:
        rows = await self.store.delete(HABITS, [eq("id", habit_id), eq("user_id", self.owner_id)])
        if rows:
            # Supabase cascades; the local store does not
            await self.store.delete(HABIT_LOGS, [eq("habit_id", habit_id)])
