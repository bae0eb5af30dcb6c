"""
Builders for in-memory dose objects used across the tool and action tests
"""

from datetime import datetime, date
from typing import Any, List, Optional

from tools.dose_types import (
    ClassifiedDose,
    DoseLogEntry,
    DoseOccurrence,
    DoseStatus,
    LogStatus,
    ScheduleRule,
    Timeliness,
    TimingConfig,
)


# A Monday, so weekday filters are deterministic
MONDAY = date(2024, 3, 4)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


def make_rule(
    rule_id: int = 1,
    medication_id: int = 1,
    time_of_day: Any = "08:00",
    days_of_week: Optional[List[int]] = None,
    **kwargs
) -> ScheduleRule:
    """Build a ScheduleRule with sensible defaults"""
    kwargs.setdefault("medication_name", "Metformin")
    kwargs.setdefault("dosage", "500mg")
    return ScheduleRule(
        id=rule_id,
        medication_id=medication_id,
        time_of_day=time_of_day,
        days_of_week=days_of_week,
        **kwargs
    )


def make_occurrence(
    scheduled: datetime,
    schedule_id: int = 1,
    medication_id: int = 1,
    timing: Optional[TimingConfig] = None,
    **kwargs
) -> DoseOccurrence:
    """Build a DoseOccurrence at a given instant"""
    kwargs.setdefault("medication_name", "Metformin")
    kwargs.setdefault("dosage", "500mg")
    return DoseOccurrence(
        schedule_id=schedule_id,
        medication_id=medication_id,
        scheduled_instant=scheduled,
        timing=timing or TimingConfig(),
        **kwargs
    )


def make_log(
    scheduled: datetime,
    status: LogStatus = LogStatus.TAKEN,
    schedule_id: Optional[int] = 1,
    medication_id: int = 1,
    **kwargs
) -> DoseLogEntry:
    """Build a DoseLogEntry for an occurrence"""
    return DoseLogEntry(
        medication_id=medication_id,
        schedule_id=schedule_id,
        scheduled_instant=scheduled,
        status=status,
        **kwargs
    )


def make_dose(
    scheduled: datetime,
    status: DoseStatus,
    timeliness: Optional[Timeliness] = None,
    medication_id: int = 1,
    schedule_id: int = 1,
    log: Optional[DoseLogEntry] = None,
    **kwargs
) -> ClassifiedDose:
    """Build an already-classified dose"""
    return ClassifiedDose(
        occurrence=make_occurrence(scheduled, schedule_id, medication_id, **kwargs),
        status=status,
        log=log,
        timeliness=timeliness,
    )
