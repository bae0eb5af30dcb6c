"""
Database Models
SQLAlchemy ORM models for DoseKeeper
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Date, Enum, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum

from database import Base


# ==================== ENUMS ====================

class MedicationForm(str, PyEnum):
    """Physical form of a medication"""
    PILL = "pill"
    CAPSULE = "capsule"
    LIQUID = "liquid"
    CREAM = "cream"
    INHALER = "inhaler"
    SPRAY = "spray"
    DROP = "drop"
    SYRINGE = "syringe"
    OTHER = "other"


class DoseLogStatus(str, PyEnum):
    """Action recorded against a dose occurrence"""
    TAKEN = "taken"
    SKIPPED = "skipped"
    SNOOZED = "snoozed"


# ==================== MODELS ====================

class User(Base):
    """Owner of medications; authentication lives outside this service"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(100), unique=True, index=True)  # auth provider id

    display_name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    medications = relationship("Medication", back_populates="user", cascade="all, delete-orphan")


class Medication(Base):
    """A treatment the user is tracking, with its timing overrides"""
    __tablename__ = "medications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=False)  # e.g., "500mg"
    form = Column(Enum(MedicationForm), default=MedicationForm.PILL)
    instructions = Column(Text)

    # Timing overrides; NULL falls back to the frequency preset, then defaults
    frequency_type = Column(String(100))  # "Twice daily", "With meals", ...
    grace_period_minutes = Column(Integer)
    reminder_window_minutes = Column(Integer)
    missed_dose_cutoff_minutes = Column(Integer)

    # Supply tracking
    pills_remaining = Column(Integer)
    total_pills = Column(Integer)
    refill_reminder_threshold = Column(Integer)

    active = Column(Boolean, default=True)
    start_date = Column(Date)
    end_date = Column(Date)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="medications")
    schedules = relationship(
        "Schedule",
        back_populates="medication",
        cascade="all, delete-orphan",
        order_by="Schedule.time_of_day"
    )
    dose_logs = relationship("DoseLog", back_populates="medication", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_medications_user_active", "user_id", "active"),
    )

    @property
    def needs_refill(self) -> bool:
        if self.pills_remaining is None or self.refill_reminder_threshold is None:
            return False
        return self.pills_remaining <= self.refill_reminder_threshold


class Schedule(Base):
    """Recurrence rule: a local time of day, optionally restricted to weekdays"""
    __tablename__ = "medication_schedules"

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)

    time_of_day = Column(String(8), nullable=False)  # "08:00"
    days_of_week = Column(JSON)  # [0..6], Sunday = 0; NULL means every day
    with_food = Column(Boolean, default=False)
    special_instructions = Column(Text)

    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    medication = relationship("Medication", back_populates="schedules")

    __table_args__ = (
        Index("ix_schedules_medication_active", "medication_id", "active"),
    )


class DoseLog(Base):
    """Action taken on a dose occurrence, keyed by (schedule_id, scheduled_time)"""
    __tablename__ = "dose_logs"

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)
    # Schedules are replaced wholesale on edit; history survives with a NULL schedule
    schedule_id = Column(Integer, ForeignKey("medication_schedules.id", ondelete="SET NULL"))

    scheduled_time = Column(DateTime, nullable=False)
    status = Column(Enum(DoseLogStatus), nullable=False)
    taken_at = Column(DateTime)
    snooze_until = Column(DateTime)
    timeliness = Column(String(20))  # on_time / late / missed, set when taken
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    medication = relationship("Medication", back_populates="dose_logs")

    __table_args__ = (
        Index("ix_dose_logs_key", "schedule_id", "scheduled_time"),
        Index("ix_dose_logs_medication_time", "medication_id", "scheduled_time"),
    )
