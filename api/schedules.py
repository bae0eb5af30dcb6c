"""
Schedules API Router
Endpoints for medication recurrence rules
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_medication_or_404, services
from api.schemas.medication import ScheduleReplace, ScheduleResponse


router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.put("/medication/{medication_id}", response_model=List[ScheduleResponse])
async def replace_schedules(
    medication_id: int,
    payload: ScheduleReplace,
    db: Session = Depends(get_db)
):
    """
    Replace every schedule of a medication with the submitted set
    """
    schedule_service = services.get_schedule_service()
    get_medication_or_404(medication_id, db)

    try:
        return await schedule_service.replace_schedules(
            medication_id,
            [s.model_dump() for s in payload.schedules],
            db=db
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/medication/{medication_id}", response_model=List[ScheduleResponse])
async def get_medication_schedules(
    medication_id: int,
    active_only: bool = Query(False),
    db: Session = Depends(get_db)
):
    """
    Get the schedules of a medication
    """
    schedule_service = services.get_schedule_service()
    get_medication_or_404(medication_id, db)

    return await schedule_service.get_medication_schedules(
        medication_id,
        active_only=active_only,
        db=db
    )
