"""
Adherence API Router
Endpoints for adherence snapshots, streaks and calendars
"""

from typing import Optional
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_current_user_id, services
from api.schemas.adherence import (
    AdherenceSnapshotResponse,
    CalendarResponse,
    StreakResponse,
)


router = APIRouter(prefix="/adherence", tags=["adherence"])


@router.get("/user/{user_id}/snapshot", response_model=AdherenceSnapshotResponse)
async def get_adherence_snapshot(
    user_id: int = Depends(get_current_user_id),
    start: Optional[date] = Query(None, description="Range start (default: 30 days ago)"),
    end: Optional[date] = Query(None, description="Range end (default: today)"),
    medication_id: Optional[int] = Query(None, description="Restrict to one medication"),
    db: Session = Depends(get_db)
):
    """
    Adherence percentage, counts and the current streak over a date range
    """
    adherence_service = services.get_adherence_service()

    try:
        snapshot = await adherence_service.get_snapshot(
            user_id,
            start=start,
            end=end,
            medication_id=medication_id,
            db=db
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return {"user_id": user_id, **snapshot.to_dict()}


@router.get("/user/{user_id}/streak", response_model=StreakResponse)
async def get_streak(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Consecutive days with every dose taken, ending today
    """
    adherence_service = services.get_adherence_service()
    now = datetime.now()

    streak = await adherence_service.get_streak(user_id, now=now, db=db)
    return StreakResponse(user_id=user_id, streak=streak, as_of=now.date())


@router.get("/user/{user_id}/calendar", response_model=CalendarResponse)
async def get_calendar(
    user_id: int = Depends(get_current_user_id),
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db)
):
    """
    Per-day adherence state for a month (default: current month)
    """
    adherence_service = services.get_adherence_service()
    today = date.today()
    year = year or today.year
    month = month or today.month

    days = await adherence_service.get_calendar(user_id, year, month, db=db)
    return {
        "user_id": user_id,
        "year": year,
        "month": month,
        "days": [d.to_dict() for d in days],
    }
