"""
Adherence Schemas
Pydantic models for adherence and reminder API responses
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel


# ==================== ADHERENCE SCHEMAS ====================

class AdherenceCounts(BaseModel):
    """Dose counts and the resulting percentage"""
    taken: int
    skipped: int
    missed: int
    pending: int
    total: int
    on_time: int
    late: int
    percentage: int


class MedicationAdherenceResponse(AdherenceCounts):
    """Counts for one medication"""
    medication_id: int
    medication_name: str


class DaySummaryResponse(AdherenceCounts):
    """Counts and calendar state for one date"""
    date: date
    state: str


class AdherenceSnapshotResponse(AdherenceCounts):
    """Adherence over a date range"""
    user_id: int
    range_start: date
    range_end: date
    streak: int
    policy: str
    by_medication: List[MedicationAdherenceResponse]
    by_day: List[DaySummaryResponse]


class StreakResponse(BaseModel):
    """Current streak"""
    user_id: int
    streak: int
    as_of: date


class CalendarResponse(BaseModel):
    """One summary per day of a month"""
    user_id: int
    year: int
    month: int
    days: List[DaySummaryResponse]


# ==================== REMINDER SCHEMAS ====================

class NotificationResponse(BaseModel):
    """A reminder ready for delivery"""
    schedule_id: int
    scheduled_time: datetime
    reminder_type: str
    title: str
    body: str
    trigger_at: datetime


class ScheduledReminderResponse(NotificationResponse):
    """A reminder to deliver later"""
    when: datetime


class ReminderPlanResponse(BaseModel):
    """Reminders due now and later today"""
    user_id: int
    generated_at: datetime
    fire_now: List[NotificationResponse]
    schedule_later: List[ScheduledReminderResponse]
    refills_needed: Optional[List[int]] = None
