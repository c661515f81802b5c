from typing import List

from fastapi import APIRouter, Depends, Response

from lifeos.dependencies.services import get_goal_service
from lifeos.models.schemas import Goal, GoalCreate, GoalUpdate
from lifeos.services.goals import GoalService

router = APIRouter()


@router.get("", response_model=List[Goal])   # no trailing slash
async def list_goals(goals: GoalService = Depends(get_goal_service)):
    return await goals.list_goals()


@router.get("/{goal_id}", response_model=Goal)
async def get_goal(goal_id: str, goals: GoalService = Depends(get_goal_service)):
    return await goals.get_goal(goal_id)


@router.post("", response_model=Goal, status_code=201)
async def create_goal(payload: GoalCreate, goals: GoalService = Depends(get_goal_service)):
    return await goals.create_goal(payload)


@router.patch("/{goal_id}", response_model=Goal)
async def update_goal(goal_id: str, payload: GoalUpdate, goals: GoalService = Depends(get_goal_service)):
    return await goals.update_goal(goal_id, payload)


@router.post("/{goal_id}/recompute", response_model=Goal)
async def recompute_goal(goal_id: str, goals: GoalService = Depends(get_goal_service)):
    goal = await goals.recompute(goal_id)
    if goal is None:
        return await goals.get_goal(goal_id)
    return goal


@router.delete("/{goal_id}", status_code=204)
async def delete_goal(goal_id: str, goals: GoalService = Depends(get_goal_service)):
    await goals.delete_goal(goal_id)
    return Response(status_code=204)
