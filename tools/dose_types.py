"""
Dose Types
Shared data structures for schedule expansion, classification and adherence
"""

import logging
from typing import Dict, List, Optional, Any, Tuple
from dataclasses import dataclass, field
from datetime import datetime, date, time
from enum import Enum

from config import timing_config


logger = logging.getLogger(__name__)


OccurrenceKey = Tuple[int, datetime]


class LogStatus(str, Enum):
    """Action recorded against an occurrence"""
    TAKEN = "taken"
    SKIPPED = "skipped"
    SNOOZED = "snoozed"


class DoseStatus(str, Enum):
    """Derived status of an occurrence at a point in time"""
    UPCOMING = "upcoming"
    DUE = "due"
    OVERDUE = "overdue"
    MISSED = "missed"
    SKIPPED = "skipped"
    SNOOZED = "snoozed"
    TAKEN = "taken"


class Timeliness(str, Enum):
    """How late a taken dose was"""
    ON_TIME = "on_time"
    LATE = "late"
    MISSED = "missed"


def minutes_or_default(value: Any, default: int) -> int:
    """Coerce a configured minute value, falling back on anything unusable"""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric timing value {value!r}, using {default}")
        return default


@dataclass(frozen=True)
class TimingConfig:
    """Per-medication timing windows, all in minutes"""
    grace_period_minutes: int = timing_config.DEFAULT_GRACE_PERIOD_MINUTES
    reminder_window_minutes: int = timing_config.DEFAULT_REMINDER_WINDOW_MINUTES
    missed_dose_cutoff_minutes: int = timing_config.DEFAULT_MISSED_DOSE_CUTOFF_MINUTES

    @classmethod
    def resolve(
        cls,
        frequency_type: Optional[str] = None,
        grace_period_minutes: Any = None,
        reminder_window_minutes: Any = None,
        missed_dose_cutoff_minutes: Any = None
    ) -> "TimingConfig":
        """
        Build a config from defaults, then the frequency preset, then explicit values.

        Any value that is missing or not numeric falls through to the layer below.
        """
        preset = timing_config.FREQUENCY_PRESETS.get(frequency_type or "", {})
        grace = minutes_or_default(
            preset.get("grace_period_minutes"),
            timing_config.DEFAULT_GRACE_PERIOD_MINUTES
        )
        lead = minutes_or_default(
            preset.get("reminder_window_minutes"),
            timing_config.DEFAULT_REMINDER_WINDOW_MINUTES
        )
        cutoff = minutes_or_default(
            preset.get("missed_dose_cutoff_minutes"),
            timing_config.DEFAULT_MISSED_DOSE_CUTOFF_MINUTES
        )
        return cls(
            grace_period_minutes=minutes_or_default(grace_period_minutes, grace),
            reminder_window_minutes=minutes_or_default(reminder_window_minutes, lead),
            missed_dose_cutoff_minutes=minutes_or_default(missed_dose_cutoff_minutes, cutoff),
        )

    @classmethod
    def for_medication(cls, medication: Any) -> "TimingConfig":
        return cls.resolve(
            frequency_type=getattr(medication, "frequency_type", None),
            grace_period_minutes=getattr(medication, "grace_period_minutes", None),
            reminder_window_minutes=getattr(medication, "reminder_window_minutes", None),
            missed_dose_cutoff_minutes=getattr(medication, "missed_dose_cutoff_minutes", None),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "grace_period_minutes": self.grace_period_minutes,
            "reminder_window_minutes": self.reminder_window_minutes,
            "missed_dose_cutoff_minutes": self.missed_dose_cutoff_minutes,
        }


@dataclass
class ScheduleRule:
    """A recurrence rule as seen by the expander"""
    id: int
    medication_id: int
    time_of_day: Any  # "HH:MM" string or datetime.time
    days_of_week: Optional[List[int]] = None  # Sunday = 0
    active: bool = True
    with_food: bool = False
    special_instructions: Optional[str] = None
    medication_name: str = ""
    dosage: str = ""
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None
    timing: TimingConfig = field(default_factory=TimingConfig)

    @classmethod
    def from_model(cls, schedule: Any, medication: Any = None) -> "ScheduleRule":
        """Build a rule from a Schedule row and (optionally) its Medication"""
        medication = medication or getattr(schedule, "medication", None)
        return cls(
            id=schedule.id,
            medication_id=schedule.medication_id,
            time_of_day=schedule.time_of_day,
            days_of_week=schedule.days_of_week,
            active=bool(schedule.active) and bool(getattr(medication, "active", True)),
            with_food=bool(schedule.with_food),
            special_instructions=schedule.special_instructions,
            medication_name=getattr(medication, "name", "") or "",
            dosage=getattr(medication, "dosage", "") or "",
            starts_on=getattr(medication, "start_date", None),
            ends_on=getattr(medication, "end_date", None),
            timing=TimingConfig.for_medication(medication) if medication is not None else TimingConfig(),
        )


@dataclass
class DoseOccurrence:
    """One concrete (schedule, date) instance of a dose; never persisted"""
    schedule_id: int
    medication_id: int
    scheduled_instant: datetime
    medication_name: str = ""
    dosage: str = ""
    with_food: bool = False
    special_instructions: Optional[str] = None
    timing: TimingConfig = field(default_factory=TimingConfig)

    @property
    def key(self) -> OccurrenceKey:
        return (self.schedule_id, self.scheduled_instant)

    @property
    def scheduled_date(self) -> date:
        return self.scheduled_instant.date()

    @property
    def time_of_day(self) -> time:
        return self.scheduled_instant.time()


@dataclass
class DoseLogEntry:
    """A recorded action, detached from the ORM"""
    medication_id: int
    schedule_id: Optional[int]
    scheduled_instant: datetime
    status: LogStatus
    taken_at: Optional[datetime] = None
    snooze_until: Optional[datetime] = None
    notes: Optional[str] = None
    id: Optional[int] = None
    recorded_at: Optional[datetime] = None

    @property
    def key(self) -> OccurrenceKey:
        return (self.schedule_id, self.scheduled_instant)

    @classmethod
    def from_model(cls, log: Any) -> "DoseLogEntry":
        return cls(
            id=log.id,
            medication_id=log.medication_id,
            schedule_id=log.schedule_id,
            scheduled_instant=log.scheduled_time,
            status=LogStatus(getattr(log.status, "value", log.status)),
            taken_at=log.taken_at,
            snooze_until=log.snooze_until,
            notes=log.notes,
            recorded_at=log.updated_at or log.created_at,
        )


@dataclass
class ClassifiedDose:
    """An occurrence paired with its authoritative log entry and derived status"""
    occurrence: DoseOccurrence
    status: DoseStatus
    log: Optional[DoseLogEntry] = None
    timeliness: Optional[Timeliness] = None
    minutes_late: Optional[int] = None

    @property
    def key(self) -> OccurrenceKey:
        return self.occurrence.key

    @property
    def scheduled_instant(self) -> datetime:
        return self.occurrence.scheduled_instant

    @property
    def scheduled_date(self) -> date:
        return self.occurrence.scheduled_date

    @property
    def medication_id(self) -> int:
        return self.occurrence.medication_id

    @property
    def snooze_until(self) -> Optional[datetime]:
        return self.log.snooze_until if self.log else None

    def to_dict(self) -> Dict[str, Any]:
        occ = self.occurrence
        return {
            "schedule_id": occ.schedule_id,
            "medication_id": occ.medication_id,
            "medication_name": occ.medication_name,
            "dosage": occ.dosage,
            "scheduled_time": occ.scheduled_instant.isoformat(),
            "time_of_day": occ.scheduled_instant.strftime("%H:%M"),
            "with_food": occ.with_food,
            "special_instructions": occ.special_instructions,
            "status": self.status.value,
            "timeliness": self.timeliness.value if self.timeliness else None,
            "minutes_late": self.minutes_late,
            "log_id": self.log.id if self.log else None,
            "taken_at": self.log.taken_at.isoformat() if self.log and self.log.taken_at else None,
            "snooze_until": self.snooze_until.isoformat() if self.snooze_until else None,
            "notes": self.log.notes if self.log else None,
            **occ.timing.to_dict(),
        }
