"""
Plan catalogue (public).
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from homecare.database import get_db
from homecare.models.plan import Plan
from homecare.schemas.plan import PlanResponse

router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("", response_model=list[PlanResponse])
async def list_plans(db: Session = Depends(get_db)):
    return db.query(Plan).order_by(Plan.id).all()
