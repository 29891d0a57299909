from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_ai_client, get_current_owner
from ..gemini_client import GeminiClient
from ..schemas import FitnessPlanRead, PlanGenerateRequest
from ..services import activate_plan, generate_fitness_plan, get_active_plan, list_plans


router = APIRouter(prefix="/api/plans", tags=["Plans"])


@router.post("/generate", response_model=FitnessPlanRead, status_code=status.HTTP_201_CREATED)
async def generate_plan(
    payload: PlanGenerateRequest,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    client: GeminiClient = Depends(get_ai_client),
):
    return await generate_fitness_plan(db, client, owner_id, payload.model_dump())


@router.get("", response_model=list[FitnessPlanRead])
def get_plans(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    return list_plans(db, owner_id)


@router.get("/active", response_model=FitnessPlanRead)
def get_current_plan(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    plan = get_active_plan(db, owner_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active plan")
    return plan


@router.post("/{plan_id}/activate", response_model=FitnessPlanRead)
def set_active_plan(
    plan_id: int,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    plan = activate_plan(db, owner_id, plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    return plan
