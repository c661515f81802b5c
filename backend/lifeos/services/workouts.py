from typing import List

from lifeos.errors import NotFound
from lifeos.models.schemas import Workout, WorkoutCreate, WorkoutUpdate
from lifeos.storage.base import PrimaryStore, eq

WORKOUTS = "workouts"


class WorkoutService:
    """Weekly workout notes, newest first."""

    def __init__(self, store: PrimaryStore, owner_id: str) -> None:
        self.store = store
        self.owner_id = owner_id

    def _owned(self, workout_id: str):
        return [eq("id", workout_id), eq("user_id", self.owner_id)]

    async def list_workouts(self) -> List[Workout]:
        rows = await self.store.select(WORKOUTS, [eq("user_id", self.owner_id)], order="created_at", desc=True)
        return [Workout.model_validate(r) for r in rows]

    async def create_workout(self, data: WorkoutCreate) -> Workout:
        row = await self.store.insert(WORKOUTS, {**data.model_dump(), "user_id": self.owner_id})
        return Workout.model_validate(row)

    async def update_workout(self, workout_id: str, changes: WorkoutUpdate) -> Workout:
        values = changes.changes()
        if values:
            rows = await self.store.update(WORKOUTS, self._owned(workout_id), values)
        else:
            rows = await self.store.select(WORKOUTS, self._owned(workout_id), limit=1)
        if not rows:
            raise NotFound("workout", workout_id)
        return Workout.model_validate(rows[0])

    async def delete_workout(self, workout_id: str) -> None:
        await self.store.delete(WORKOUTS, self._owned(workout_id))
