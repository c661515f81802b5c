import logging
from collections import defaultdict
from datetime import date
from typing import Callable, Dict, List, Optional

from lifeos.core.progress import goal_progress, goal_status
from lifeos.dependencies.auth import AuthContext
from lifeos.errors import NotFound
from lifeos.models.schemas import Goal, GoalCreate, GoalUpdate
from lifeos.storage.base import PrimaryStore, eq

logger = logging.getLogger(__name__)

GOALS = "goals"
TASKS = "tasks"


class GoalService:
    """Goal CRUD. ``progress``, ``status`` and the task counters are derived
    from linked tasks and only ever written by ``recompute``."""

    def __init__(self, store: PrimaryStore, auth: AuthContext, today: Optional[Callable[[], date]] = None) -> None:
        self.store = store
        self.auth = auth
        self._today = today or date.today

    def _owned(self, goal_id: str):
        return [eq("id", goal_id), eq("user_id", self.auth.require_user())]

    async def _linked_ids(self, uid: str) -> Dict[str, List[str]]:
        rows = await self.store.select(TASKS, [eq("user_id", uid)], order="created_at")
        linked: Dict[str, List[str]] = defaultdict(list)
        for row in rows:
            if row.get("goal_id"):
                linked[row["goal_id"]].append(row["id"])
        return linked

    async def list_goals(self) -> List[Goal]:
        uid = self.auth.require_user()
        rows = await self.store.select(GOALS, [eq("user_id", uid)], order="created_at", desc=True)
        linked = await self._linked_ids(uid)
        return [Goal.model_validate({**r, "linked_task_ids": linked.get(r["id"], [])}) for r in rows]

    async def get_goal(self, goal_id: str) -> Goal:
        row = await self.store.select_one(GOALS, self._owned(goal_id))
        if row is None:
            raise NotFound("goal", goal_id)
        linked = await self._linked_ids(self.auth.require_user())
        return Goal.model_validate({**row, "linked_task_ids": linked.get(goal_id, [])})

    async def create_goal(self, data: GoalCreate) -> Goal:
        row = {
            **data.model_dump(mode="json"),
            "user_id": self.auth.require_user(),
            "status": "on-track",
            "progress": 0,
            "total_tasks": 0,
            "completed_tasks": 0,
        }
        return Goal.model_validate(await self.store.insert(GOALS, row))

    async def update_goal(self, goal_id: str, changes: GoalUpdate) -> Goal:
        filters = self._owned(goal_id)
        values = changes.changes()
        if "target_date" in values:
            existing = await self.store.select_one(GOALS, filters)
            if existing is None:
                raise NotFound("goal", goal_id)
            if existing.get("status") != "archived":
                values["status"] = goal_status(existing.get("progress") or 0, changes.target_date, self._today())
        rows = await self.store.update(GOALS, filters, values) if values else await self.store.select(GOALS, filters)
        if not rows:
            raise NotFound("goal", goal_id)
        return Goal.model_validate(rows[0])

    async def delete_goal(self, goal_id: str) -> None:
        uid = self.auth.require_user()
        # unlink first; tasks outlive their goal
        await self.store.update(TASKS, [eq("goal_id", goal_id), eq("user_id", uid)], {"goal_id": None})
        await self.store.delete(GOALS, self._owned(goal_id))

    async def recompute(self, goal_id: str) -> Optional[Goal]:
        """Recount the goal's linked tasks and store progress, counters and status."""
        uid = self.auth.require_user()
        existing = await self.store.select_one(GOALS, self._owned(goal_id))
        if existing is None:
            logger.info("[goals] skip recompute, goal %s is gone", goal_id)
            return None
        tasks = await self.store.select(TASKS, [eq("goal_id", goal_id), eq("user_id", uid)])
        total = len(tasks)
        completed = sum(1 for t in tasks if t.get("is_completed"))
        progress = goal_progress(completed, total)
        stored = Goal.model_validate(existing)
        values = {"total_tasks": total, "completed_tasks": completed, "progress": progress}
        if stored.status != "archived":
            values["status"] = goal_status(progress, stored.target_date, self._today())
        rows = await self.store.update(GOALS, self._owned(goal_id), values)
        row = rows[0] if rows else {**existing, **values}
        return Goal.model_validate({**row, "linked_task_ids": [t["id"] for t in tasks]})
