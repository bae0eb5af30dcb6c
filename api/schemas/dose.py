"""
Dose Schemas
Pydantic models for derived doses and dose actions
"""

from typing import Optional, List, Literal
from datetime import datetime, date
from pydantic import BaseModel, Field


# ==================== REQUEST SCHEMAS ====================

class DoseActionRequest(BaseModel):
    """Take, skip or snooze one dose occurrence"""
    medication_id: int
    schedule_id: int
    scheduled_time: datetime = Field(..., description="Scheduled instant of the occurrence")
    status: Literal["taken", "skipped", "snoozed"]
    snooze_minutes: Optional[int] = Field(None, ge=1, le=24 * 60)
    notes: Optional[str] = Field(None, max_length=1000)


# ==================== RESPONSE SCHEMAS ====================

class DoseResponse(BaseModel):
    """One classified dose"""
    schedule_id: int
    medication_id: int
    medication_name: Optional[str] = None
    dosage: Optional[str] = None
    scheduled_time: datetime
    time_of_day: str
    with_food: bool = False
    special_instructions: Optional[str] = None
    status: str
    timeliness: Optional[str] = None
    minutes_late: Optional[int] = None
    log_id: Optional[int] = None
    taken_at: Optional[datetime] = None
    snooze_until: Optional[datetime] = None
    notes: Optional[str] = None
    grace_period_minutes: int
    reminder_window_minutes: int
    missed_dose_cutoff_minutes: int


class DoseDayResponse(BaseModel):
    """Doses for one date"""
    user_id: int
    date: date
    doses: List[DoseResponse]
    total: int
    taken: int
    pending: int


class DoseActionResponse(BaseModel):
    """Result of a dose action"""
    success: bool
    already_recorded: bool
    message: str
    log_id: Optional[int] = None
    medication_id: int
    schedule_id: Optional[int] = None
    scheduled_time: datetime
    status: str
    timeliness: Optional[str] = None
    taken_at: Optional[datetime] = None
    snooze_until: Optional[datetime] = None
    pills_remaining: Optional[int] = None
