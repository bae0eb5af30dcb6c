"""
Schedule Service
Schedule persistence and derivation of classified doses
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import datetime, date, time, timedelta
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import and_

from database import get_db_context
import models
from tools.dose_types import ClassifiedDose, DoseLogEntry, ScheduleRule
from tools.schedule_expander import expand_range, sort_occurrences
from tools.dose_classifier import LogIndex, classify_all


logger = logging.getLogger(__name__)


def _normalize_days(days: Optional[List[int]]) -> Optional[List[int]]:
    """Sorted unique Sunday-indexed weekdays; None/empty means every day"""
    if not days:
        return None
    normalized = sorted(set(int(d) for d in days))
    if any(d < 0 or d > 6 for d in normalized):
        raise ValueError(f"days_of_week must be within 0-6 (Sunday = 0), got {days}")
    return normalized


def _day_bounds(start: date, end: date):
    """[start of start, start of the day after end)"""
    return (
        datetime.combine(start, time.min),
        datetime.combine(end + timedelta(days=1), time.min),
    )


def load_rules(
    session: Session,
    user_id: int,
    medication_id: Optional[int] = None
) -> List[ScheduleRule]:
    """Active schedules of the user's active medications"""
    query = session.query(models.Schedule).join(models.Medication).options(
        joinedload(models.Schedule.medication)
    ).filter(
        and_(
            models.Medication.user_id == user_id,
            models.Medication.active == True,  # noqa: E712
            models.Schedule.active == True,  # noqa: E712
        )
    )
    if medication_id:
        query = query.filter(models.Schedule.medication_id == medication_id)

    return [ScheduleRule.from_model(s, s.medication) for s in query.all()]


def load_logs(
    session: Session,
    user_id: int,
    start: datetime,
    end: datetime,
    medication_id: Optional[int] = None
) -> List[DoseLogEntry]:
    """Dose logs whose scheduled time falls in [start, end)"""
    query = session.query(models.DoseLog).join(models.Medication).filter(
        and_(
            models.Medication.user_id == user_id,
            models.DoseLog.scheduled_time >= start,
            models.DoseLog.scheduled_time < end,
        )
    )
    if medication_id:
        query = query.filter(models.DoseLog.medication_id == medication_id)

    return [DoseLogEntry.from_model(log) for log in query.all()]


def derive_doses(
    session: Session,
    user_id: int,
    start: date,
    end: date,
    now: datetime,
    medication_id: Optional[int] = None
) -> List[ClassifiedDose]:
    """Expand and classify every dose in [start, end] for a user"""
    rules = load_rules(session, user_id, medication_id)
    occurrences = sort_occurrences(expand_range(rules, start, end))
    window_start, window_end = _day_bounds(start, end)
    logs = LogIndex(load_logs(session, user_id, window_start, window_end, medication_id))
    return classify_all(occurrences, logs, now)


class ScheduleService:
    """
    Service for medication schedules and the doses they produce
    """

    async def replace_schedules(
        self,
        medication_id: int,
        schedules: List[Dict[str, Any]],
        db: Optional[Session] = None
    ) -> List[models.Schedule]:
        """
        Replace all schedules of a medication.

        Prior rows are deleted and the new set inserted, so re-submitting
        the same edit always yields the same rule set.

        Args:
            medication_id: Medication ID
            schedules: Dicts with time_of_day, days_of_week, with_food,
                special_instructions, active
            db: Database session

        Returns:
            The newly inserted Schedule rows
        """
        def _replace(session: Session) -> List[models.Schedule]:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
            if not medication:
                raise ValueError(f"Medication {medication_id} not found")

            replace_medication_schedules(session, medication, schedules)
            session.commit()
            session.refresh(medication)
            return list(medication.schedules)

        if db:
            return _replace(db)

        with get_db_context() as session:
            return _replace(session)

    async def get_medication_schedules(
        self,
        medication_id: int,
        active_only: bool = False,
        db: Optional[Session] = None
    ) -> List[models.Schedule]:
        """Get schedules for a medication"""
        def _get(session: Session) -> List[models.Schedule]:
            query = session.query(models.Schedule).filter(
                models.Schedule.medication_id == medication_id
            )
            if active_only:
                query = query.filter(models.Schedule.active == True)  # noqa: E712
            return query.order_by(models.Schedule.time_of_day, models.Schedule.id).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_doses_for_date(
        self,
        user_id: int,
        target_date: Optional[date] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> List[ClassifiedDose]:
        """Classified doses for one day, ordered by scheduled time"""
        target = target_date or date.today()
        return await self.get_doses_for_range(user_id, target, target, now=now, db=db)

    async def get_doses_for_range(
        self,
        user_id: int,
        start: date,
        end: date,
        now: Optional[datetime] = None,
        medication_id: Optional[int] = None,
        db: Optional[Session] = None
    ) -> List[ClassifiedDose]:
        """Classified doses for every day in [start, end]"""
        if end < start:
            raise ValueError(f"Range end {end} is before start {start}")
        now = now or datetime.now()

        def _get(session: Session) -> List[ClassifiedDose]:
            return derive_doses(session, user_id, start, end, now, medication_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)


def replace_medication_schedules(
    session: Session,
    medication: models.Medication,
    schedules: List[Dict[str, Any]]
) -> None:
    """Delete every schedule of a medication and insert the given set (no commit)"""
    new_rows = [
        models.Schedule(
            medication_id=medication.id,
            time_of_day=item["time_of_day"],
            days_of_week=_normalize_days(item.get("days_of_week")),
            with_food=bool(item.get("with_food", False)),
            special_instructions=item.get("special_instructions"),
            active=item.get("active", True),
        )
        for item in schedules
    ]

    removed = len(medication.schedules)
    medication.schedules.clear()
    session.flush()
    medication.schedules.extend(new_rows)
    session.flush()

    logger.info(
        f"Replaced {removed} schedule(s) with {len(new_rows)} for medication {medication.id}"
    )


# Singleton instance
schedule_service = ScheduleService()
