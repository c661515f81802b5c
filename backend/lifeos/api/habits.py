from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from lifeos.dependencies.services import get_habit_service
from lifeos.models.schemas import Habit, HabitCreate
from lifeos.services.habits import HabitService

router = APIRouter()


class ToggleHabitRequest(BaseModel):
    day: Optional[date] = None


class ToggleHabitResponse(BaseModel):
    habit_id: str
    completed: bool


@router.get("", response_model=List[Habit])
async def list_habits(habits: HabitService = Depends(get_habit_service)):
    return await habits.list_habits()


@router.post("", response_model=Habit, status_code=201)
async def create_habit(payload: HabitCreate, habits: HabitService = Depends(get_habit_service)):
    return await habits.create_habit(payload)


@router.post("/{habit_id}/toggle", response_model=ToggleHabitResponse)
async def toggle_habit(
    habit_id: str,
    payload: Optional[ToggleHabitRequest] = None,
    habits: HabitService = Depends(get_habit_service),
):
    completed = await habits.toggle(habit_id, payload.day if payload else None)
    return ToggleHabitResponse(habit_id=habit_id, completed=completed)


@router.delete("/{habit_id}", status_code=204)
async def delete_habit(habit_id: str, habits: HabitService = Depends(get_habit_service)):
    await habits.delete_habit(habit_id)
    return Response(status_code=204)
