"""
Tests for Adherence and Reminders API
=====================================

Snapshot, streak, calendar and reminder plan endpoints.
"""

import calendar
import pytest
from datetime import datetime, date, time, timedelta
from fastapi import status
from fastapi.testclient import TestClient


TODAY = date.today()


@pytest.fixture
def adherence_history(test_schedule, make_dose_log):
    """08:00 dose taken on time on each of the three previous days"""
    logs = []
    for n in (1, 2, 3):
        scheduled = datetime.combine(TODAY - timedelta(days=n), time(8, 0))
        logs.append(make_dose_log(test_schedule, scheduled, taken_at=scheduled + timedelta(minutes=5)))
    return logs


class TestSnapshot:

    @pytest.mark.api
    def test_snapshot_for_range(self, client: TestClient, test_user, adherence_history):
        response = client.get(
            f"/api/v1/adherence/user/{test_user.id}/snapshot",
            params={
                "start": (TODAY - timedelta(days=3)).isoformat(),
                "end": (TODAY - timedelta(days=1)).isoformat(),
            }
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user_id"] == test_user.id
        assert data["percentage"] == 100
        assert data["taken"] == 3
        assert data["total"] == 3
        assert data["streak"] == 3
        assert data["policy"] == "count_as_missed"
        assert len(data["by_day"]) == 3
        assert data["by_medication"][0]["medication_name"] == "Metformin"

    @pytest.mark.api
    def test_snapshot_default_range(self, client: TestClient, test_user, adherence_history):
        response = client.get(f"/api/v1/adherence/user/{test_user.id}/snapshot")

        data = response.json()
        assert data["range_end"] == TODAY.isoformat()
        assert data["range_start"] == (TODAY - timedelta(days=29)).isoformat()

    @pytest.mark.api
    def test_snapshot_without_doses(self, client: TestClient, test_user):
        data = client.get(f"/api/v1/adherence/user/{test_user.id}/snapshot").json()

        assert data["total"] == 0
        assert data["percentage"] == 0
        assert data["streak"] == 0

    @pytest.mark.api
    def test_reversed_range(self, client: TestClient, test_user):
        response = client.get(
            f"/api/v1/adherence/user/{test_user.id}/snapshot",
            params={"start": TODAY.isoformat(), "end": (TODAY - timedelta(days=1)).isoformat()}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.api
    def test_unknown_user(self, client: TestClient):
        response = client.get("/api/v1/adherence/user/99999/snapshot")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestStreakAndCalendar:

    @pytest.mark.api
    def test_streak(self, client: TestClient, test_user, adherence_history):
        response = client.get(f"/api/v1/adherence/user/{test_user.id}/streak")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["streak"] == 3
        assert response.json()["as_of"] == TODAY.isoformat()

    @pytest.mark.api
    def test_calendar(self, client: TestClient, test_user, adherence_history):
        yesterday = TODAY - timedelta(days=1)

        response = client.get(
            f"/api/v1/adherence/user/{test_user.id}/calendar",
            params={"year": yesterday.year, "month": yesterday.month}
        )

        assert response.status_code == status.HTTP_200_OK
        days = response.json()["days"]
        assert len(days) == calendar.monthrange(yesterday.year, yesterday.month)[1]
        states = {d["date"]: d["state"] for d in days}
        assert states[yesterday.isoformat()] == "complete"

    @pytest.mark.api
    def test_calendar_invalid_month(self, client: TestClient, test_user):
        response = client.get(f"/api/v1/adherence/user/{test_user.id}/calendar", params={"month": 13})

        assert response.status_code == 422


class TestReminders:

    @pytest.mark.api
    def test_reminder_plan(self, client: TestClient, test_user, test_schedule):
        response = client.get(f"/api/v1/reminders/user/{test_user.id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user_id"] == test_user.id
        assert "fire_now" in data and "schedule_later" in data
        assert data["refills_needed"] == []

    @pytest.mark.api
    def test_reminder_plan_flags_low_supply(self, client: TestClient, db_session, test_user, test_medication):
        test_medication.pills_remaining = 2
        db_session.commit()

        data = client.get(f"/api/v1/reminders/user/{test_user.id}").json()

        assert data["refills_needed"] == [test_medication.id]


class TestHealth:

    @pytest.mark.api
    def test_root(self, client: TestClient):
        assert client.get("/").json()["status"] == "healthy"

    @pytest.mark.api
    def test_health(self, client: TestClient):
        data = client.get("/health").json()
        assert data["checks"]["database"]["status"] == "up"
        assert data["config"]["due_window_minutes"] == 30
        assert data["config"]["late_taken_policy"] == "count_as_missed"

    @pytest.mark.api
    def test_health_reports_table_counts(self, client: TestClient):
        tables = client.get("/health").json()["checks"]["database"]["tables"]
        assert {"users", "medications", "medication_schedules", "dose_logs"} <= set(tables)
