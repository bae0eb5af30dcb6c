"""
Adherence Aggregator
Folds classified doses into counts, percentages, streaks and breakdowns
"""

import logging
import math
from typing import Dict, Iterable, List, Optional, Any
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from collections import defaultdict

from config import timing_config
from tools.dose_types import ClassifiedDose, DoseStatus, Timeliness


logger = logging.getLogger(__name__)


class LateTakenPolicy(str, Enum):
    """Where a dose taken after the missed-dose cutoff is counted"""
    COUNT_AS_MISSED = "count_as_missed"
    COUNT_AS_TAKEN = "count_as_taken"


class DayState(str, Enum):
    """Calendar state of one day"""
    COMPLETE = "complete"   # every dose taken
    PARTIAL = "partial"     # some taken, some not
    MISSED = "missed"       # nothing taken, nothing pending
    PENDING = "pending"     # nothing taken yet, doses still open
    NONE = "none"           # no doses scheduled


PENDING_STATUSES = {
    DoseStatus.UPCOMING,
    DoseStatus.DUE,
    DoseStatus.OVERDUE,
    DoseStatus.SNOOZED,
}


def percentage(part: int, total: int) -> int:
    """Whole-number percentage rounded half up; 0 when total is 0"""
    if total <= 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


def counts_as_taken(dose: ClassifiedDose, policy: LateTakenPolicy = LateTakenPolicy.COUNT_AS_MISSED) -> bool:
    if dose.status != DoseStatus.TAKEN:
        return False
    if dose.timeliness == Timeliness.MISSED:
        return policy == LateTakenPolicy.COUNT_AS_TAKEN
    return True


def counts_as_missed(dose: ClassifiedDose, policy: LateTakenPolicy = LateTakenPolicy.COUNT_AS_MISSED) -> bool:
    if dose.status == DoseStatus.MISSED:
        return True
    return (
        dose.status == DoseStatus.TAKEN
        and dose.timeliness == Timeliness.MISSED
        and policy == LateTakenPolicy.COUNT_AS_MISSED
    )


@dataclass
class AdherenceCounts:
    """Counts over a set of doses"""
    taken: int = 0
    skipped: int = 0
    missed: int = 0
    pending: int = 0
    total: int = 0
    on_time: int = 0
    late: int = 0

    @property
    def percentage(self) -> int:
        return percentage(self.taken, self.total)

    def add(self, dose: ClassifiedDose, policy: LateTakenPolicy):
        self.total += 1
        if counts_as_taken(dose, policy):
            self.taken += 1
            if dose.timeliness == Timeliness.ON_TIME:
                self.on_time += 1
            elif dose.timeliness == Timeliness.LATE:
                self.late += 1
        elif counts_as_missed(dose, policy):
            self.missed += 1
        elif dose.status == DoseStatus.SKIPPED:
            self.skipped += 1
        elif dose.status in PENDING_STATUSES:
            self.pending += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taken": self.taken,
            "skipped": self.skipped,
            "missed": self.missed,
            "pending": self.pending,
            "total": self.total,
            "on_time": self.on_time,
            "late": self.late,
            "percentage": self.percentage,
        }


@dataclass
class MedicationAdherence:
    """Counts for one medication"""
    medication_id: int
    medication_name: str
    counts: AdherenceCounts = field(default_factory=AdherenceCounts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "medication_name": self.medication_name,
            **self.counts.to_dict(),
        }


@dataclass
class DaySummary:
    """Counts and calendar state for one date"""
    day: date
    counts: AdherenceCounts = field(default_factory=AdherenceCounts)

    @property
    def state(self) -> DayState:
        c = self.counts
        if c.total == 0:
            return DayState.NONE
        if c.taken == c.total:
            return DayState.COMPLETE
        if c.taken > 0:
            return DayState.PARTIAL
        if c.pending > 0:
            return DayState.PENDING
        return DayState.MISSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "state": self.state.value,
            **self.counts.to_dict(),
        }


@dataclass
class AdherenceSnapshot:
    """Aggregate over a date range"""
    range_start: date
    range_end: date
    counts: AdherenceCounts
    streak: int
    by_medication: List[MedicationAdherence] = field(default_factory=list)
    by_day: List[DaySummary] = field(default_factory=list)
    policy: LateTakenPolicy = LateTakenPolicy.COUNT_AS_MISSED

    @property
    def percentage(self) -> int:
        return self.counts.percentage

    @property
    def taken(self) -> int:
        return self.counts.taken

    @property
    def skipped(self) -> int:
        return self.counts.skipped

    @property
    def missed(self) -> int:
        return self.counts.missed

    @property
    def total(self) -> int:
        return self.counts.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range_start": self.range_start.isoformat(),
            "range_end": self.range_end.isoformat(),
            **self.counts.to_dict(),
            "streak": self.streak,
            "policy": self.policy.value,
            "by_medication": [m.to_dict() for m in self.by_medication],
            "by_day": [d.to_dict() for d in self.by_day],
        }


def _group_by_day(doses: Iterable[ClassifiedDose]) -> Dict[date, List[ClassifiedDose]]:
    days: Dict[date, List[ClassifiedDose]] = defaultdict(list)
    for dose in doses:
        days[dose.scheduled_date].append(dose)
    return days


def compute_streak(
    doses: Iterable[ClassifiedDose],
    today: date,
    policy: LateTakenPolicy = LateTakenPolicy.COUNT_AS_MISSED,
    max_days: int = timing_config.STREAK_MAX_DAYS
) -> int:
    """
    Consecutive fully-taken days, walking backward from today.

    A day counts only if it has at least one dose and every dose was taken.
    Today may be incomplete without breaking a streak earned on prior days;
    any earlier failing day ends the walk.
    """
    days = _group_by_day(doses)
    streak = 0
    for offset in range(max_days):
        day_doses = days.get(today - timedelta(days=offset), [])
        perfect = bool(day_doses) and all(counts_as_taken(d, policy) for d in day_doses)
        if perfect:
            streak += 1
        elif offset == 0:
            continue
        else:
            break
    return streak


def aggregate(
    doses: Iterable[ClassifiedDose],
    range_start: date,
    range_end: date,
    today: Optional[date] = None,
    policy: LateTakenPolicy = LateTakenPolicy.COUNT_AS_MISSED,
    medication_id: Optional[int] = None
) -> AdherenceSnapshot:
    """
    Aggregate classified doses over [range_start, range_end].

    The streak is measured from today, not from range_end, over every dose
    supplied (doses outside the range still feed the streak).
    """
    today = today or date.today()
    doses = [d for d in doses if medication_id is None or d.medication_id == medication_id]
    in_range = [d for d in doses if range_start <= d.scheduled_date <= range_end]

    counts = AdherenceCounts()
    per_med: Dict[int, MedicationAdherence] = {}
    per_day: Dict[date, DaySummary] = {}

    for dose in in_range:
        counts.add(dose, policy)

        med = per_med.get(dose.medication_id)
        if med is None:
            med = per_med[dose.medication_id] = MedicationAdherence(
                medication_id=dose.medication_id,
                medication_name=dose.occurrence.medication_name,
            )
        med.counts.add(dose, policy)

        day = per_day.get(dose.scheduled_date)
        if day is None:
            day = per_day[dose.scheduled_date] = DaySummary(day=dose.scheduled_date)
        day.counts.add(dose, policy)

    return AdherenceSnapshot(
        range_start=range_start,
        range_end=range_end,
        counts=counts,
        streak=compute_streak(doses, today, policy),
        by_medication=sorted(per_med.values(), key=lambda m: m.medication_id),
        by_day=[per_day[d] for d in sorted(per_day)],
        policy=policy,
    )


def daily_breakdown(
    doses: Iterable[ClassifiedDose],
    range_start: date,
    range_end: date,
    policy: LateTakenPolicy = LateTakenPolicy.COUNT_AS_MISSED
) -> List[DaySummary]:
    """One summary per date in the range, including days with no doses"""
    days = _group_by_day(doses)
    summaries = []
    day = range_start
    while day <= range_end:
        summary = DaySummary(day=day)
        for dose in days.get(day, []):
            summary.counts.add(dose, policy)
        summaries.append(summary)
        day += timedelta(days=1)
    return summaries
