from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.plan import PlanResponse
from app.services.plan_catalog import get_plan, list_active_plans


router = APIRouter()


@router.get("/subscription-plans", response_model=List[PlanResponse])
async def subscription_plans(db: Session = Depends(get_db)):
    return list_active_plans(db)


@router.get("/subscription-plans/{plan_id}", response_model=PlanResponse)
async def subscription_plan(plan_id: str, db: Session = Depends(get_db)):
    plan = get_plan(db, plan_id)
    if plan is None:
        raise HTTPException(status_code=404, detail="Subscription plan not found")
    return plan
