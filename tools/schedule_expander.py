"""
Schedule Expander
Turns recurring schedule rules into the concrete dose occurrences for a date
"""

import logging
from typing import Iterable, List, Optional, Any
from datetime import datetime, date, time, timedelta

from tools.dose_types import ScheduleRule, DoseOccurrence


logger = logging.getLogger(__name__)


def parse_time_of_day(value: Any) -> Optional[time]:
    """Parse "HH:MM" / "HH:MM:SS" (or pass through a time); None if unusable"""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    return None


def sunday_weekday(day: date) -> int:
    """Weekday number with Sunday = 0 ... Saturday = 6"""
    return (day.weekday() + 1) % 7


def rule_applies_on(rule: ScheduleRule, day: date) -> bool:
    """Whether an active rule fires on the given date"""
    if not rule.active:
        return False
    if rule.starts_on and day < rule.starts_on:
        return False
    if rule.ends_on and day > rule.ends_on:
        return False
    if rule.days_of_week and sunday_weekday(day) not in rule.days_of_week:
        return False
    return True


def expand(schedules: Iterable[ScheduleRule], day: date) -> List[DoseOccurrence]:
    """
    Produce the dose occurrences due on a date.

    Rules with an unparseable time of day are skipped so that one bad row
    does not blank the whole day. Output order follows the input; use
    sort_occurrences for display order.
    """
    occurrences = []
    for rule in schedules:
        if not rule_applies_on(rule, day):
            continue

        tod = parse_time_of_day(rule.time_of_day)
        if tod is None:
            logger.warning(
                f"Skipping schedule {rule.id}: malformed time of day {rule.time_of_day!r}"
            )
            continue

        occurrences.append(DoseOccurrence(
            schedule_id=rule.id,
            medication_id=rule.medication_id,
            scheduled_instant=datetime.combine(day, tod.replace(second=0, microsecond=0)),
            medication_name=rule.medication_name,
            dosage=rule.dosage,
            with_food=rule.with_food,
            special_instructions=rule.special_instructions,
            timing=rule.timing,
        ))

    return occurrences


def expand_range(
    schedules: Iterable[ScheduleRule],
    start: date,
    end: date
) -> List[DoseOccurrence]:
    """Expand every date in [start, end], inclusive"""
    rules = list(schedules)
    occurrences = []
    day = start
    while day <= end:
        occurrences.extend(expand(rules, day))
        day += timedelta(days=1)
    return occurrences


def sort_occurrences(occurrences: Iterable[DoseOccurrence]) -> List[DoseOccurrence]:
    """Order by scheduled instant, ties broken by schedule id"""
    return sorted(occurrences, key=lambda o: (o.scheduled_instant, o.schedule_id))
