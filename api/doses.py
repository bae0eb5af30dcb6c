"""
Doses API Router
Derived dose lists and take / skip / snooze actions
"""

from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.deps import get_db, get_current_user_id, services
from api.schemas.dose import DoseActionRequest, DoseActionResponse, DoseDayResponse
from services.dose_action_service import (
    DoseLogWriteError,
    InvalidDoseActionError,
    MedicationInactiveError,
    MedicationNotFoundError,
    ScheduleNotFoundError,
)
from tools.dose_types import DoseStatus


router = APIRouter(prefix="/doses", tags=["doses"])


def _day_response(user_id: int, target: date, doses) -> DoseDayResponse:
    return DoseDayResponse(
        user_id=user_id,
        date=target,
        doses=[d.to_dict() for d in doses],
        total=len(doses),
        taken=sum(1 for d in doses if d.status == DoseStatus.TAKEN),
        pending=sum(
            1 for d in doses
            if d.status in (DoseStatus.UPCOMING, DoseStatus.DUE, DoseStatus.OVERDUE, DoseStatus.SNOOZED)
        ),
    )


@router.get("/user/{user_id}/today", response_model=DoseDayResponse)
async def get_todays_doses(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Today's doses with their current status, ordered by time
    """
    schedule_service = services.get_schedule_service()
    now = datetime.now()

    doses = await schedule_service.get_doses_for_date(user_id, now.date(), now=now, db=db)
    return _day_response(user_id, now.date(), doses)


@router.get("/user/{user_id}/date/{target_date}", response_model=DoseDayResponse)
async def get_doses_for_date(
    target_date: date,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Doses for any date, classified against the current time
    """
    schedule_service = services.get_schedule_service()

    doses = await schedule_service.get_doses_for_date(user_id, target_date, db=db)
    return _day_response(user_id, target_date, doses)


@router.post("/action", response_model=DoseActionResponse)
async def record_dose_action(
    action: DoseActionRequest,
    db: Session = Depends(get_db)
):
    """
    Mark a dose taken, skipped or snoozed

    - **status**: taken, skipped or snoozed
    - **snooze_minutes**: Snooze length (snoozed only)

    Taking a dose that is already taken returns the existing record.
    """
    dose_action_service = services.get_dose_action_service()

    try:
        result = await dose_action_service.record_action(
            medication_id=action.medication_id,
            schedule_id=action.schedule_id,
            scheduled_instant=action.scheduled_time,
            status=action.status,
            snooze_minutes=action.snooze_minutes,
            notes=action.notes,
            db=db
        )
    except (MedicationNotFoundError, ScheduleNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except MedicationInactiveError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except InvalidDoseActionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DoseLogWriteError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return result.to_dict()
