"""
Dose Classifier
Timeliness state machine for dose occurrences
"""

import logging
from typing import Dict, Iterable, List, Optional, Any, Tuple
from datetime import datetime, timedelta

from config import timing_config
from tools.dose_types import (
    ClassifiedDose,
    DoseLogEntry,
    DoseOccurrence,
    DoseStatus,
    LogStatus,
    OccurrenceKey,
    Timeliness,
    minutes_or_default,
)


logger = logging.getLogger(__name__)


DUE_WINDOW = timedelta(minutes=timing_config.DUE_WINDOW_MINUTES)


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def _recency(entry: DoseLogEntry) -> Tuple[datetime, int]:
    return (entry.recorded_at or datetime.min, entry.id or 0)


class LogIndex:
    """
    Authoritative log entry per occurrence key.

    Several rows may exist for one key; the most recently recorded one wins
    and the rest are dead history. Rows whose schedule was since replaced
    (schedule_id NULL) are matched on (medication_id, scheduled instant).
    """

    def __init__(self, entries: Iterable[DoseLogEntry] = ()):
        self._by_key: Dict[OccurrenceKey, DoseLogEntry] = {}
        self._orphans: Dict[Tuple[int, datetime], DoseLogEntry] = {}
        for entry in entries:
            self.add(entry)

    def add(self, entry: DoseLogEntry):
        if entry.schedule_id is None:
            index, key = self._orphans, (entry.medication_id, entry.scheduled_instant)
        else:
            index, key = self._by_key, entry.key
        current = index.get(key)
        if current is None or _recency(entry) >= _recency(current):
            index[key] = entry

    def lookup(self, occurrence: DoseOccurrence) -> Optional[DoseLogEntry]:
        entry = self._by_key.get(occurrence.key)
        if entry is not None:
            return entry
        return self._orphans.get((occurrence.medication_id, occurrence.scheduled_instant))

    def __len__(self) -> int:
        return len(self._by_key) + len(self._orphans)


def select_latest_logs(entries: Iterable[DoseLogEntry]) -> Dict[OccurrenceKey, DoseLogEntry]:
    """Most recent entry per (schedule_id, scheduled_instant)"""
    latest: Dict[OccurrenceKey, DoseLogEntry] = {}
    for entry in entries:
        current = latest.get(entry.key)
        if current is None or _recency(entry) >= _recency(current):
            latest[entry.key] = entry
    return latest


def _pending_status(reference: datetime, now: datetime, cutoff: int) -> DoseStatus:
    """Status of a dose with no effective action, measured from reference"""
    if now < reference:
        return DoseStatus.UPCOMING
    elapsed = now - reference
    if elapsed < DUE_WINDOW:
        return DoseStatus.DUE
    if elapsed < timedelta(minutes=cutoff):
        return DoseStatus.OVERDUE
    return DoseStatus.MISSED


def taken_timeliness(
    scheduled_instant: datetime,
    taken_at: datetime,
    grace_period_minutes: Any = None,
    missed_cutoff_minutes: Any = None
) -> Timeliness:
    """Lateness tier of a dose taken at taken_at; early doses are on time"""
    grace = minutes_or_default(grace_period_minutes, timing_config.DEFAULT_GRACE_PERIOD_MINUTES)
    cutoff = minutes_or_default(missed_cutoff_minutes, timing_config.DEFAULT_MISSED_DOSE_CUTOFF_MINUTES)

    delta = taken_at - scheduled_instant
    if delta <= timedelta(minutes=grace):
        return Timeliness.ON_TIME
    if delta <= timedelta(minutes=cutoff):
        return Timeliness.LATE
    return Timeliness.MISSED


def classify(
    occurrence: DoseOccurrence,
    log_entry: Optional[DoseLogEntry],
    now: datetime,
    grace_period_minutes: Any = None,
    missed_cutoff_minutes: Any = None
) -> ClassifiedDose:
    """
    Classify one occurrence.

    Args:
        occurrence: The dose occurrence
        log_entry: Authoritative log entry for the occurrence, if any
        now: Evaluation instant (local, naive)
        grace_period_minutes: Lateness allowed for a taken dose to count as on time
        missed_cutoff_minutes: Minutes after which an unlogged dose is missed

    Returns:
        ClassifiedDose with status and, for taken doses, timeliness
    """
    grace = minutes_or_default(grace_period_minutes, timing_config.DEFAULT_GRACE_PERIOD_MINUTES)
    cutoff = minutes_or_default(missed_cutoff_minutes, timing_config.DEFAULT_MISSED_DOSE_CUTOFF_MINUTES)
    scheduled = occurrence.scheduled_instant

    if log_entry is None:
        return ClassifiedDose(
            occurrence=occurrence,
            status=_pending_status(scheduled, now, cutoff),
            minutes_late=_minutes(now - scheduled),
        )

    if log_entry.status == LogStatus.SKIPPED:
        return ClassifiedDose(occurrence=occurrence, status=DoseStatus.SKIPPED, log=log_entry)

    if log_entry.status == LogStatus.SNOOZED:
        resume = log_entry.snooze_until or scheduled
        if now < resume:
            return ClassifiedDose(occurrence=occurrence, status=DoseStatus.SNOOZED, log=log_entry)
        return ClassifiedDose(
            occurrence=occurrence,
            status=_pending_status(resume, now, cutoff),
            log=log_entry,
            minutes_late=_minutes(now - resume),
        )

    taken_at = log_entry.taken_at
    if taken_at is None:
        logger.warning(
            f"Taken log {log_entry.id} for schedule {occurrence.schedule_id} has no taken_at; "
            f"using its record time"
        )
        taken_at = log_entry.recorded_at or scheduled

    return ClassifiedDose(
        occurrence=occurrence,
        status=DoseStatus.TAKEN,
        log=log_entry,
        timeliness=taken_timeliness(scheduled, taken_at, grace, cutoff),
        minutes_late=_minutes(taken_at - scheduled),
    )


def classify_all(
    occurrences: Iterable[DoseOccurrence],
    logs: Iterable[DoseLogEntry],
    now: datetime
) -> List[ClassifiedDose]:
    """Classify a batch, each occurrence against its own medication's timing"""
    index = logs if isinstance(logs, LogIndex) else LogIndex(logs)
    return [
        classify(
            occ,
            index.lookup(occ),
            now,
            occ.timing.grace_period_minutes,
            occ.timing.missed_dose_cutoff_minutes,
        )
        for occ in occurrences
    ]
