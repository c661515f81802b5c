from typing import List

from fastapi import APIRouter, Depends, Response

from lifeos.dependencies.services import get_workout_service
from lifeos.models.schemas import Workout, WorkoutCreate, WorkoutUpdate
from lifeos.services.workouts import WorkoutService

router = APIRouter()


@router.get("", response_model=List[Workout])
async def list_workouts(workouts: WorkoutService = Depends(get_workout_service)):
    return await workouts.list_workouts()


@router.post("", response_model=Workout, status_code=201)
async def create_workout(payload: WorkoutCreate, workouts: WorkoutService = Depends(get_workout_service)):
    return await workouts.create_workout(payload)


@router.patch("/{workout_id}", response_model=Workout)
async def update_workout(workout_id: str, payload: WorkoutUpdate, workouts: WorkoutService = Depends(get_workout_service)):
    return await workouts.update_workout(workout_id, payload)


@router.delete("/{workout_id}", status_code=204)
async def delete_workout(workout_id: str, workouts: WorkoutService = Depends(get_workout_service)):
    await workouts.delete_workout(workout_id)
    return Response(status_code=204)
