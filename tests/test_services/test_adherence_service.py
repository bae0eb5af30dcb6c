"""
Tests for Adherence Service
Snapshots, streaks and calendars derived from stored schedules and logs
"""

import calendar
import pytest
from datetime import datetime, date, time, timedelta

from config import settings
from models import DoseLogStatus
from services.adherence_service import AdherenceService, configured_policy
from tools.adherence_aggregator import DayState, LateTakenPolicy


TODAY = date.today()


def _at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))


@pytest.fixture
def adherence_service():
    """Create adherence service instance"""
    return AdherenceService()


@pytest.fixture
def three_day_history(test_schedule, make_dose_log):
    """08:00 dose taken on time for the three days before today"""
    return [
        make_dose_log(test_schedule, _at(TODAY - timedelta(days=n), 8), taken_at=_at(TODAY - timedelta(days=n), 8, 10))
        for n in (1, 2, 3)
    ]


class TestSnapshot:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_recent_range(self, adherence_service, db_session, test_user, three_day_history):
        snapshot = await adherence_service.get_snapshot(
            test_user.id,
            start=TODAY - timedelta(days=3),
            end=TODAY - timedelta(days=1),
            now=_at(TODAY, 7),
            db=db_session
        )

        assert snapshot.total == 3
        assert snapshot.taken == 3
        assert snapshot.percentage == 100
        assert snapshot.streak == 3
        assert snapshot.counts.on_time == 3

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_unlogged_past_doses_are_missed(self, adherence_service, db_session, test_user, three_day_history):
        snapshot = await adherence_service.get_snapshot(
            test_user.id,
            start=TODAY - timedelta(days=5),
            end=TODAY - timedelta(days=1),
            now=_at(TODAY, 7),
            db=db_session
        )

        assert snapshot.total == 5
        assert snapshot.missed == 2
        assert snapshot.percentage == 60

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_today_pending_counts_but_keeps_streak(self, adherence_service, db_session, test_user, three_day_history):
        snapshot = await adherence_service.get_snapshot(
            test_user.id,
            start=TODAY,
            end=TODAY,
            now=_at(TODAY, 7),
            db=db_session
        )

        assert snapshot.total == 1
        assert snapshot.counts.pending == 1
        assert snapshot.percentage == 0
        assert snapshot.streak == 3

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_default_range_is_last_thirty_days(self, adherence_service, db_session, test_user, test_schedule):
        snapshot = await adherence_service.get_snapshot(test_user.id, now=_at(TODAY, 7), db=db_session)

        assert snapshot.range_end == TODAY
        assert snapshot.range_start == TODAY - timedelta(days=29)

    @pytest.mark.asyncio
    async def test_reversed_range_rejected(self, adherence_service, db_session, test_user):
        with pytest.raises(ValueError):
            await adherence_service.get_snapshot(
                test_user.id, start=TODAY, end=TODAY - timedelta(days=1), db=db_session
            )

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_inactive_medication_excluded(self, adherence_service, db_session, test_user, test_medication, three_day_history):
        test_medication.active = False
        db_session.commit()

        snapshot = await adherence_service.get_snapshot(
            test_user.id,
            start=TODAY - timedelta(days=3),
            end=TODAY,
            now=_at(TODAY, 7),
            db=db_session
        )

        assert snapshot.total == 0
        assert snapshot.percentage == 0


class TestLateTakenPolicy:

    @pytest.fixture
    def very_late_dose(self, test_schedule, make_dose_log):
        day = TODAY - timedelta(days=1)
        return make_dose_log(test_schedule, _at(day, 8), taken_at=_at(day, 13))

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_count_as_missed(self, adherence_service, db_session, test_user, very_late_dose):
        day = TODAY - timedelta(days=1)

        snapshot = await adherence_service.get_snapshot(
            test_user.id, start=day, end=day, now=_at(TODAY, 7),
            policy=LateTakenPolicy.COUNT_AS_MISSED, db=db_session
        )

        assert snapshot.missed == 1
        assert snapshot.percentage == 0

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_count_as_taken(self, adherence_service, db_session, test_user, very_late_dose):
        day = TODAY - timedelta(days=1)

        snapshot = await adherence_service.get_snapshot(
            test_user.id, start=day, end=day, now=_at(TODAY, 7),
            policy=LateTakenPolicy.COUNT_AS_TAKEN, db=db_session
        )

        assert snapshot.taken == 1
        assert snapshot.percentage == 100

    @pytest.mark.unit
    def test_policy_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "LATE_TAKEN_POLICY", "count_as_taken")
        assert configured_policy() == LateTakenPolicy.COUNT_AS_TAKEN

    @pytest.mark.unit
    def test_unknown_policy_falls_back(self, monkeypatch):
        monkeypatch.setattr(settings, "LATE_TAKEN_POLICY", "lenient")
        assert configured_policy() == LateTakenPolicy.COUNT_AS_MISSED


class TestStreak:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_streak(self, adherence_service, db_session, test_user, three_day_history):
        assert await adherence_service.get_streak(test_user.id, now=_at(TODAY, 12), db=db_session) == 3

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_second_schedule_breaks_streak(
        self, adherence_service, db_session, test_user, three_day_history, evening_schedule
    ):
        """The 20:00 dose was never logged, so no day is complete"""
        assert await adherence_service.get_streak(test_user.id, now=_at(TODAY, 7), db=db_session) == 0

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_no_medications(self, adherence_service, db_session, test_user):
        assert await adherence_service.get_streak(test_user.id, db=db_session) == 0


class TestCalendar:

    @pytest.mark.asyncio
    @pytest.mark.database
    async def test_one_summary_per_day(self, adherence_service, db_session, test_user, three_day_history):
        yesterday = TODAY - timedelta(days=1)

        days = await adherence_service.get_calendar(
            test_user.id, yesterday.year, yesterday.month, now=_at(TODAY, 7), db=db_session
        )

        assert len(days) == calendar.monthrange(yesterday.year, yesterday.month)[1]
        by_day = {d.day: d for d in days}
        assert by_day[yesterday].state == DayState.COMPLETE
        if TODAY.month == yesterday.month:
            assert by_day[TODAY].state == DayState.PENDING

    @pytest.mark.asyncio
    async def test_invalid_month(self, adherence_service, db_session, test_user):
        with pytest.raises(ValueError):
            await adherence_service.get_calendar(test_user.id, 2024, 13, db=db_session)
