"""
Tools Package
Schedule expansion, dose classification and adherence aggregation
"""

from .dose_types import (
    OccurrenceKey,
    LogStatus,
    DoseStatus,
    Timeliness,
    TimingConfig,
    ScheduleRule,
    DoseOccurrence,
    DoseLogEntry,
    ClassifiedDose,
)

from .schedule_expander import (
    parse_time_of_day,
    expand,
    expand_range,
    sort_occurrences,
)

from .dose_classifier import (
    LogIndex,
    classify,
    classify_all,
    select_latest_logs,
)

from .adherence_aggregator import (
    LateTakenPolicy,
    DayState,
    AdherenceCounts,
    AdherenceSnapshot,
    DaySummary,
    aggregate,
    compute_streak,
    daily_breakdown,
    percentage,
)


__all__ = [
    # Types
    "OccurrenceKey",
    "LogStatus",
    "DoseStatus",
    "Timeliness",
    "TimingConfig",
    "ScheduleRule",
    "DoseOccurrence",
    "DoseLogEntry",
    "ClassifiedDose",
    # Expansion
    "parse_time_of_day",
    "expand",
    "expand_range",
    "sort_occurrences",
    # Classification
    "LogIndex",
    "classify",
    "classify_all",
    "select_latest_logs",
    # Aggregation
    "LateTakenPolicy",
    "DayState",
    "AdherenceCounts",
    "AdherenceSnapshot",
    "DaySummary",
    "aggregate",
    "compute_streak",
    "daily_breakdown",
    "percentage",
]
