"""
Adherence Service
Adherence snapshots, streaks and calendar summaries for a user
"""

import calendar
import logging
from typing import List, Optional
from datetime import datetime, date, timedelta
from sqlalchemy.orm import Session

from config import settings, timing_config
from database import get_db_context
from services.schedule_service import derive_doses
from tools.adherence_aggregator import (
    AdherenceSnapshot,
    DaySummary,
    LateTakenPolicy,
    aggregate,
    compute_streak,
    daily_breakdown,
)


logger = logging.getLogger(__name__)


def configured_policy() -> LateTakenPolicy:
    """Late-taken policy from settings, defaulting to count-as-missed"""
    try:
        return LateTakenPolicy(settings.LATE_TAKEN_POLICY)
    except ValueError:
        logger.warning(
            f"Unknown LATE_TAKEN_POLICY {settings.LATE_TAKEN_POLICY!r}, using count_as_missed"
        )
        return LateTakenPolicy.COUNT_AS_MISSED


class AdherenceService:
    """
    Service for adherence tracking and analysis
    """

    async def get_snapshot(
        self,
        user_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
        medication_id: Optional[int] = None,
        now: Optional[datetime] = None,
        policy: Optional[LateTakenPolicy] = None,
        db: Optional[Session] = None
    ) -> AdherenceSnapshot:
        """
        Adherence over [start, end] plus the current streak

        Args:
            user_id: User ID
            start: Range start (default: 30 days before today)
            end: Range end (default: today)
            medication_id: Restrict to one medication
            now: Evaluation instant
            policy: Late-taken policy (default from settings)
            db: Database session

        Returns:
            AdherenceSnapshot
        """
        now = now or datetime.now()
        today = now.date()
        end = end or today
        start = start or (end - timedelta(days=29))
        if end < start:
            raise ValueError(f"Range end {end} is before start {start}")
        policy = policy or configured_policy()

        # The streak walks back from today regardless of the requested range
        streak_start = today - timedelta(days=timing_config.STREAK_MAX_DAYS - 1)
        load_start = min(start, streak_start)
        load_end = max(end, today)

        def _get(session: Session) -> AdherenceSnapshot:
            doses = derive_doses(session, user_id, load_start, load_end, now, medication_id)
            return aggregate(doses, start, end, today=today, policy=policy)

        if db:
            snapshot = _get(db)
        else:
            with get_db_context() as session:
                snapshot = _get(session)

        logger.info(
            f"Adherence for user {user_id} {start}..{end}: "
            f"{snapshot.percentage}% of {snapshot.total}, streak {snapshot.streak}"
        )
        return snapshot

    async def get_streak(
        self,
        user_id: int,
        now: Optional[datetime] = None,
        policy: Optional[LateTakenPolicy] = None,
        db: Optional[Session] = None
    ) -> int:
        """Current streak in days"""
        now = now or datetime.now()
        today = now.date()
        policy = policy or configured_policy()
        start = today - timedelta(days=timing_config.STREAK_MAX_DAYS - 1)

        def _get(session: Session) -> int:
            doses = derive_doses(session, user_id, start, today, now)
            return compute_streak(doses, today, policy)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_calendar(
        self,
        user_id: int,
        year: int,
        month: int,
        now: Optional[datetime] = None,
        policy: Optional[LateTakenPolicy] = None,
        db: Optional[Session] = None
    ) -> List[DaySummary]:
        """One summary per day of the month"""
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month {month}")
        now = now or datetime.now()
        policy = policy or configured_policy()
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])

        def _get(session: Session) -> List[DaySummary]:
            doses = derive_doses(session, user_id, first, last, now)
            return daily_breakdown(doses, first, last, policy)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)


# Singleton instance
adherence_service = AdherenceService()
