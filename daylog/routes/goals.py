from __future__ import annotations

from fastapi import APIRouter, Depends

from daylog.auth import require_owner_id
from daylog import repositories
from daylog.core.feedback import GOAL_LABELS, Goal
from daylog.core.feedback_source import fetch_feedback
from daylog.schemas import FeedbackResponse, GoalPayload, GoalResponse
from daylog.settings import get_settings

router = APIRouter()


def _goal_payload(goal: Goal) -> dict:
    label, helper = GOAL_LABELS[goal]
    return {"goal": goal, "label": label, "helper": helper}


@router.get("/v1/settings/goals", response_model=list[GoalResponse])
async def list_goals():
    return [_goal_payload(goal) for goal in GOAL_LABELS]


@router.get("/v1/settings/goal", response_model=GoalResponse)
async def get_goal(owner_id: str = Depends(require_owner_id)):
    return _goal_payload(await repositories.get_goal(owner_id))


@router.put("/v1/settings/goal", response_model=GoalResponse)
async def set_goal(payload: GoalPayload, owner_id: str = Depends(require_owner_id)):
    await repositories.set_goal(owner_id, payload.goal)
    return _goal_payload(payload.goal)


@router.get("/v1/feedback", response_model=FeedbackResponse)
async def get_feedback(owner_id: str = Depends(require_owner_id)):
    yesterday = get_settings().yesterday()
    goal = await repositories.get_goal(owner_id)
    feedback = await fetch_feedback(repositories.get_store(), owner_id, yesterday)
    return {
        "date": yesterday.isoformat(),
        "goal": goal,
        "feedback": {category: result.as_dict() for category, result in feedback.items()},
    }
