"""
Tests for the Dose Classifier
Status derivation for occurrences against logs and the clock
"""

import pytest
from datetime import datetime, timedelta

from tools.dose_classifier import (
    LogIndex,
    classify,
    classify_all,
    select_latest_logs,
    taken_timeliness,
)
from tools.dose_types import DoseStatus, LogStatus, Timeliness, TimingConfig
from tests.builders import MONDAY, at, make_log, make_occurrence


EIGHT = at(MONDAY, 8)


@pytest.fixture
def occurrence():
    """08:00 dose with grace 60 and cutoff 180"""
    return make_occurrence(EIGHT, timing=TimingConfig(60, 15, 180))


def _classify(occurrence, log, now):
    return classify(occurrence, log, now, 60, 180)


# =============================================================================
# Unlogged doses
# =============================================================================

class TestPendingStatuses:

    @pytest.mark.unit
    @pytest.mark.parametrize("now,expected", [
        (at(MONDAY, 7), DoseStatus.UPCOMING),
        (at(MONDAY, 8, 5), DoseStatus.DUE),
        (at(MONDAY, 8, 45), DoseStatus.OVERDUE),
        (at(MONDAY, 11, 5), DoseStatus.MISSED),
    ])
    def test_timeline(self, occurrence, now, expected):
        assert _classify(occurrence, None, now).status == expected

    @pytest.mark.unit
    def test_due_window_boundaries(self, occurrence):
        assert _classify(occurrence, None, EIGHT).status == DoseStatus.DUE
        assert _classify(occurrence, None, at(MONDAY, 8, 29)).status == DoseStatus.DUE
        assert _classify(occurrence, None, at(MONDAY, 8, 30)).status == DoseStatus.OVERDUE

    @pytest.mark.unit
    def test_cutoff_boundary(self, occurrence):
        assert _classify(occurrence, None, at(MONDAY, 10, 59)).status == DoseStatus.OVERDUE
        assert _classify(occurrence, None, at(MONDAY, 11)).status == DoseStatus.MISSED

    @pytest.mark.unit
    def test_short_cutoff_skips_overdue(self, occurrence):
        """The due window is checked first; a cutoff inside it goes straight to missed"""
        assert classify(occurrence, None, at(MONDAY, 8, 25), 60, 20).status == DoseStatus.DUE
        assert classify(occurrence, None, at(MONDAY, 8, 30), 60, 20).status == DoseStatus.MISSED

    @pytest.mark.unit
    def test_minutes_late_reported(self, occurrence):
        assert _classify(occurrence, None, at(MONDAY, 8, 45)).minutes_late == 45


# =============================================================================
# Taken doses
# =============================================================================

class TestTakenDoses:

    @pytest.mark.unit
    @pytest.mark.parametrize("taken_at,expected", [
        (at(MONDAY, 8, 30), Timeliness.ON_TIME),
        (at(MONDAY, 9, 30), Timeliness.LATE),
        (at(MONDAY, 12), Timeliness.MISSED),
    ])
    def test_timeliness_tiers(self, occurrence, taken_at, expected):
        log = make_log(EIGHT, LogStatus.TAKEN, taken_at=taken_at)

        dose = _classify(occurrence, log, at(MONDAY, 13))

        assert dose.status == DoseStatus.TAKEN
        assert dose.timeliness == expected

    @pytest.mark.unit
    def test_grace_boundary_is_inclusive(self, occurrence):
        on_time = make_log(EIGHT, taken_at=EIGHT + timedelta(minutes=60))
        late = make_log(EIGHT, taken_at=EIGHT + timedelta(minutes=61))

        assert _classify(occurrence, on_time, at(MONDAY, 12)).timeliness == Timeliness.ON_TIME
        assert _classify(occurrence, late, at(MONDAY, 12)).timeliness == Timeliness.LATE

    @pytest.mark.unit
    def test_early_dose_is_on_time(self, occurrence):
        log = make_log(EIGHT, taken_at=at(MONDAY, 7, 15))

        dose = _classify(occurrence, log, at(MONDAY, 7, 30))

        assert dose.status == DoseStatus.TAKEN
        assert dose.timeliness == Timeliness.ON_TIME
        assert dose.minutes_late == -45

    @pytest.mark.unit
    def test_missing_taken_at_uses_record_time(self, occurrence):
        log = make_log(EIGHT, taken_at=None, recorded_at=at(MONDAY, 9, 30), id=5)

        dose = _classify(occurrence, log, at(MONDAY, 12))

        assert dose.status == DoseStatus.TAKEN
        assert dose.timeliness == Timeliness.LATE

    @pytest.mark.unit
    def test_timeliness_helper_falls_back_on_bad_config(self):
        """Non-numeric windows fall back to the 60 / 180 defaults"""
        assert taken_timeliness(EIGHT, at(MONDAY, 9), "soon", None) == Timeliness.ON_TIME
        assert taken_timeliness(EIGHT, at(MONDAY, 10), "soon", "later") == Timeliness.LATE
        assert taken_timeliness(EIGHT, at(MONDAY, 11, 1), None, None) == Timeliness.MISSED


# =============================================================================
# Skipped and snoozed doses
# =============================================================================

class TestSkipAndSnooze:

    @pytest.mark.unit
    def test_skip_overrides_timing(self, occurrence):
        log = make_log(EIGHT, LogStatus.SKIPPED)

        assert _classify(occurrence, log, at(MONDAY, 4)).status == DoseStatus.SKIPPED
        assert _classify(occurrence, log, at(MONDAY, 23)).status == DoseStatus.SKIPPED

    @pytest.mark.unit
    def test_snoozed_until_resume(self, occurrence):
        log = make_log(EIGHT, LogStatus.SNOOZED, snooze_until=at(MONDAY, 8, 20))

        assert _classify(occurrence, log, at(MONDAY, 8, 10)).status == DoseStatus.SNOOZED

    @pytest.mark.unit
    def test_snooze_reevaluated_from_resume(self, occurrence):
        log = make_log(EIGHT, LogStatus.SNOOZED, snooze_until=at(MONDAY, 8, 20))

        dose = _classify(occurrence, log, at(MONDAY, 8, 25))

        assert dose.status == DoseStatus.DUE
        assert dose.minutes_late == 5

    @pytest.mark.unit
    def test_elapsed_snooze_can_become_missed(self, occurrence):
        log = make_log(EIGHT, LogStatus.SNOOZED, snooze_until=at(MONDAY, 8, 20))

        assert _classify(occurrence, log, at(MONDAY, 9)).status == DoseStatus.OVERDUE
        assert _classify(occurrence, log, at(MONDAY, 11, 20)).status == DoseStatus.MISSED


# =============================================================================
# Log authority
# =============================================================================

class TestLogIndex:

    @pytest.mark.unit
    def test_latest_entry_wins(self):
        older = make_log(EIGHT, LogStatus.SNOOZED, id=1, recorded_at=at(MONDAY, 8, 5))
        newer = make_log(EIGHT, LogStatus.TAKEN, id=2, recorded_at=at(MONDAY, 8, 30),
                         taken_at=at(MONDAY, 8, 30))

        index = LogIndex([newer, older])

        assert index.lookup(make_occurrence(EIGHT)) is newer
        assert len(index) == 1

    @pytest.mark.unit
    def test_id_breaks_ties(self):
        first = make_log(EIGHT, LogStatus.SKIPPED, id=1, recorded_at=at(MONDAY, 9))
        second = make_log(EIGHT, LogStatus.TAKEN, id=2, recorded_at=at(MONDAY, 9))

        latest = select_latest_logs([second, first])

        assert latest[(1, EIGHT)] is second

    @pytest.mark.unit
    def test_orphaned_log_matches_by_medication(self):
        """A log whose schedule row was replaced still applies to the new rule"""
        orphan = make_log(EIGHT, LogStatus.TAKEN, schedule_id=None, taken_at=EIGHT)
        replacement = make_occurrence(EIGHT, schedule_id=42)

        assert LogIndex([orphan]).lookup(replacement) is orphan

    @pytest.mark.unit
    def test_keyed_log_preferred_over_orphan(self):
        orphan = make_log(EIGHT, LogStatus.TAKEN, schedule_id=None, taken_at=EIGHT)
        keyed = make_log(EIGHT, LogStatus.SKIPPED, schedule_id=42)

        index = LogIndex([orphan, keyed])

        assert index.lookup(make_occurrence(EIGHT, schedule_id=42)) is keyed

    @pytest.mark.unit
    def test_other_day_does_not_match(self):
        log = make_log(EIGHT, LogStatus.TAKEN, taken_at=EIGHT)
        tomorrow = make_occurrence(EIGHT + timedelta(days=1))

        assert LogIndex([log]).lookup(tomorrow) is None


class TestClassifyAll:

    @pytest.mark.unit
    def test_uses_each_occurrence_timing(self):
        strict = make_occurrence(EIGHT, schedule_id=1, timing=TimingConfig(15, 10, 60))
        relaxed = make_occurrence(EIGHT, schedule_id=2, medication_id=2,
                                  timing=TimingConfig(120, 30, 360))

        doses = classify_all([strict, relaxed], [], at(MONDAY, 9, 30))

        assert doses[0].status == DoseStatus.MISSED
        assert doses[1].status == DoseStatus.OVERDUE

    @pytest.mark.unit
    def test_preserves_order_and_attaches_logs(self):
        occs = [make_occurrence(EIGHT, schedule_id=1), make_occurrence(at(MONDAY, 20), schedule_id=2)]
        logs = [make_log(EIGHT, LogStatus.TAKEN, schedule_id=1, taken_at=EIGHT)]

        doses = classify_all(occs, logs, at(MONDAY, 12))

        assert [d.key for d in doses] == [o.key for o in occs]
        assert doses[0].log is logs[0]
        assert doses[1].status == DoseStatus.UPCOMING


class TestTimingConfig:

    @pytest.mark.unit
    def test_defaults(self):
        timing = TimingConfig.resolve()
        assert timing == TimingConfig(60, 15, 180)

    @pytest.mark.unit
    def test_frequency_preset(self):
        assert TimingConfig.resolve("Four times daily") == TimingConfig(15, 10, 60)

    @pytest.mark.unit
    def test_explicit_values_win_over_preset(self):
        timing = TimingConfig.resolve("Once daily", grace_period_minutes=45)
        assert timing == TimingConfig(45, 30, 360)

    @pytest.mark.unit
    def test_non_numeric_values_fall_back(self):
        timing = TimingConfig.resolve(None, "abc", "15", None)
        assert timing == TimingConfig(60, 15, 180)
