"""
Medication Schemas
Pydantic models for medication and schedule requests and responses
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, Field, ConfigDict, field_validator

from models import MedicationForm


TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"


# ==================== SCHEDULE SCHEMAS ====================

class ScheduleInput(BaseModel):
    """One recurrence rule"""
    time_of_day: str = Field(..., pattern=TIME_OF_DAY_PATTERN, description="Local time, HH:MM")
    days_of_week: Optional[List[int]] = Field(
        None, description="Weekdays 0-6 with Sunday = 0; omit for every day"
    )
    with_food: bool = False
    special_instructions: Optional[str] = None
    active: bool = True

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value is None:
            return None
        if any(d < 0 or d > 6 for d in value):
            raise ValueError("days_of_week values must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(value)) or None


class ScheduleReplace(BaseModel):
    """Full replacement set of rules for a medication"""
    schedules: List[ScheduleInput]


class ScheduleResponse(BaseModel):
    """Schema for schedule response"""
    id: int
    medication_id: int
    time_of_day: str
    days_of_week: Optional[List[int]] = None
    with_food: bool
    special_instructions: Optional[str] = None
    active: bool

    model_config = ConfigDict(from_attributes=True)


# ==================== MEDICATION SCHEMAS ====================

class MedicationBase(BaseModel):
    """Base medication schema"""
    name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(..., min_length=1, max_length=100)
    form: MedicationForm = MedicationForm.PILL


class MedicationCreate(MedicationBase):
    """Schema for creating a new medication"""
    user_id: int
    instructions: Optional[str] = None
    frequency_type: Optional[str] = Field(None, max_length=100)
    grace_period_minutes: Optional[int] = Field(None, ge=0)
    reminder_window_minutes: Optional[int] = Field(None, ge=0)
    missed_dose_cutoff_minutes: Optional[int] = Field(None, ge=0)
    pills_remaining: Optional[int] = Field(None, ge=0)
    total_pills: Optional[int] = Field(None, ge=0)
    refill_reminder_threshold: Optional[int] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedules: List[ScheduleInput] = Field(default_factory=list)


class MedicationUpdate(BaseModel):
    """Schema for updating medication; schedules, when present, replace all rules"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    dosage: Optional[str] = Field(None, min_length=1, max_length=100)
    form: Optional[MedicationForm] = None
    instructions: Optional[str] = None
    frequency_type: Optional[str] = Field(None, max_length=100)
    grace_period_minutes: Optional[int] = Field(None, ge=0)
    reminder_window_minutes: Optional[int] = Field(None, ge=0)
    missed_dose_cutoff_minutes: Optional[int] = Field(None, ge=0)
    pills_remaining: Optional[int] = Field(None, ge=0)
    total_pills: Optional[int] = Field(None, ge=0)
    refill_reminder_threshold: Optional[int] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    active: Optional[bool] = None
    schedules: Optional[List[ScheduleInput]] = None


class RefillRequest(BaseModel):
    """Schema for adding pills to the supply"""
    quantity: int = Field(..., ge=1)


class MedicationResponse(MedicationBase):
    """Schema for medication response"""
    id: int
    user_id: int
    instructions: Optional[str] = None
    frequency_type: Optional[str] = None
    grace_period_minutes: Optional[int] = None
    reminder_window_minutes: Optional[int] = None
    missed_dose_cutoff_minutes: Optional[int] = None
    pills_remaining: Optional[int] = None
    total_pills: Optional[int] = None
    refill_reminder_threshold: Optional[int] = None
    needs_refill: bool = False
    active: bool
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedules: List[ScheduleResponse] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicationList(BaseModel):
    """List of medications"""
    medications: List[MedicationResponse]
    total: int
    active_count: int

    model_config = ConfigDict(from_attributes=True)
