"""
Reminders API Router
Reminder plan for the current day
"""

from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_current_user_id, services
from api.schemas.adherence import ReminderPlanResponse


router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("/user/{user_id}", response_model=ReminderPlanResponse)
async def get_reminder_plan(
    user_id: int = Depends(get_current_user_id),
    lead_minutes: Optional[int] = Query(None, ge=0, description="Override each medication's reminder window"),
    db: Session = Depends(get_db)
):
    """
    Reminders that should fire now and those scheduled for later today
    """
    reminder_service = services.get_reminder_service()
    medication_service = services.get_medication_service()
    now = datetime.now()

    plan = await reminder_service.get_reminder_plan(user_id, now=now, lead_minutes=lead_minutes, db=db)
    refills = await medication_service.get_refills_needed(user_id, db=db)

    return {
        "user_id": user_id,
        "generated_at": now,
        **plan.to_dict(),
        "refills_needed": [m.id for m in refills],
    }
