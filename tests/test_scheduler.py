"""Tests for the public entry points in calsched/scheduler.py and the
DataFrame exports in calsched/frames.py.
"""

from datetime import timedelta

from loguru import logger
from prometheus_client import REGISTRY

from calsched import log, scheduler
from calsched.config import EngineSettings
from calsched.frames import (CONFLICT_COLUMNS, RESULT_COLUMNS, SLOT_COLUMNS,
                             conflicts_frame, results_frame, slots_frame)
from calsched.log import setup_logging
from calsched.models import RescheduleConstraints, Strategy
from calsched.timeutil import add_days, format_slot_time, start_of_day

from conftest import at, make_event


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


# ─────────────────────────────────────────────────────────────────────────────
# Entry points
# ─────────────────────────────────────────────────────────────────────────────


class TestDetectConflicts:
    def test_counts_detected_conflicts(self, settings):
        a = make_event("a", at(10), at(11))
        b = make_event("b", at(10, 30), at(11, 30))
        before = _sample("calsched_conflicts_detected_total")

        conflicts = scheduler.detect_conflicts([a, b], settings=settings)

        assert len(conflicts) == 1
        assert _sample("calsched_conflicts_detected_total") == before + 1

    def test_malformed_events_dropped(self, settings):
        bad = make_event("bad", at(12), at(9))
        a = make_event("a", at(10), at(11))
        assert scheduler.detect_conflicts([bad, a], settings=settings) == []


class TestFindTimeSlots:
    def test_defaults_constraints(self, now, settings):
        event = make_event("a", at(9), at(10))
        slots = scheduler.find_time_slots(event, all_events=[event], search_days=1, now=now,
                                          settings=settings)
        assert slots
        assert all(s.duration == timedelta(hours=1) for s in slots)

    def test_reads_clock_when_now_omitted(self, settings):
        event = make_event("a", at(9), at(10))
        slots = scheduler.find_time_slots(event, RescheduleConstraints(), [event], 1,
                                          settings=settings)
        assert 0 < len(slots) <= 20

    def test_malformed_event(self, now, settings):
        bad = make_event("bad", at(10), at(9))
        assert scheduler.find_time_slots(bad, now=now, settings=settings) == []


class TestBulkReschedule:
    def test_empty(self, now, settings):
        op = scheduler.bulk_reschedule([], Strategy.SEQUENTIAL, None, [], now=now,
                                       settings=settings)
        assert op.results == []
        assert op.success_rate == 0
        assert op.has_conflicts is False

    def test_records_outcomes(self, now, settings):
        event = make_event("a", at(9), at(10))
        labels = {"strategy": "parallel", "outcome": "success"}
        before = _sample("calsched_reschedule_results_total", labels)

        op = scheduler.bulk_reschedule([event], "parallel", all_events=[event], now=now,
                                       settings=settings)

        assert op.strategy is Strategy.PARALLEL
        assert op.results[0].success
        assert _sample("calsched_reschedule_results_total", labels) == before + 1
        assert _sample("calsched_bulk_reschedule_seconds_count", {"strategy": "parallel"}) >= 1


class TestCheckConflicts:
    def test_inverted_window(self, settings):
        busy = make_event("busy", at(9), at(12))
        assert not scheduler.check_conflicts(at(11), at(10), [busy], settings=settings).has_conflict

    def test_clash(self, settings):
        busy = make_event("busy", at(10), at(11))
        check = scheduler.check_conflicts(at(10), at(11), [busy], settings=settings)
        assert check.has_conflict
        assert len(check.alternative_times) == 3


def test_generate_suggestions_entry_point(settings):
    a = make_event("a", at(10), at(11))
    b = make_event("b", at(10, 30), at(11, 30))
    conflict = scheduler.detect_conflicts([a, b], settings=settings)[0]
    assert len(scheduler.generate_suggestions(conflict, [a, b])) == 3


class TestAdvisories:
    def test_scheduling_warnings(self, settings):
        event = make_event("e", at(19), at(20))
        bad = make_event("bad", at(12), at(9))
        warnings = scheduler.predict_scheduling_issues(event, [event, bad], settings)
        assert [w.type.value for w in warnings] == ["outside_working_hours"]

    def test_alternatives(self, settings):
        event = make_event("e", at(10), at(11))
        found = scheduler.suggest_alternatives(event, [event], count=1, settings=settings)
        assert [a.start for a in found] == [at(9)]

    def test_malformed_event(self, settings):
        bad = make_event("bad", at(12), at(9))
        assert scheduler.predict_scheduling_issues(bad, [], settings) == []
        assert scheduler.suggest_alternatives(bad, [], settings=settings) == []


# ─────────────────────────────────────────────────────────────────────────────
# Frames
# ─────────────────────────────────────────────────────────────────────────────


class TestFrames:
    def test_conflicts_frame(self, settings):
        events = [make_event("a", at(14), at(15)), make_event("b", at(14, 30), at(15, 30)),
                  make_event("c", at(9), at(10)), make_event("d", at(9, 15), at(10))]
        df = conflicts_frame(scheduler.detect_conflicts(events, settings=settings))

        assert list(df.columns) == CONFLICT_COLUMNS
        assert len(df) == 2
        assert df.loc[0, "overlap_minutes"] == 45
        assert df.loc[1, "severity"] == "High"

    def test_empty_frames_have_columns(self):
        assert list(conflicts_frame([]).columns) == CONFLICT_COLUMNS
        assert list(slots_frame([]).columns) == SLOT_COLUMNS
        assert list(results_frame([]).columns) == RESULT_COLUMNS

    def test_slots_frame_keeps_ranking(self, now, settings):
        event = make_event("a", at(9), at(10))
        slots = scheduler.find_time_slots(event, all_events=[event], search_days=3, now=now,
                                          settings=settings)
        df = slots_frame(slots)

        assert len(df) == len(slots)
        assert df["score"].is_monotonic_decreasing

    def test_results_frame(self, now, settings):
        event = make_event("a", at(9), at(10))
        constraints = RescheduleConstraints(preferred_days_of_week=(6,))
        op = scheduler.bulk_reschedule([event], Strategy.SEQUENTIAL, constraints, [event],
                                       now=now, settings=settings.model_copy(
                                           update={"search_days": 2}))
        df = results_frame(op.results)

        assert df.loc[0, "success"] == False  # noqa: E712
        assert df["new_start"].isna().all()


# ─────────────────────────────────────────────────────────────────────────────
# Helpers and settings
# ─────────────────────────────────────────────────────────────────────────────


class TestTimeUtil:
    def test_start_of_day_and_add_days(self):
        assert start_of_day(at(15, 42)) == at(0)
        assert add_days(at(0), 3) == at(0, day_offset=3)

    def test_format_slot_time(self):
        assert format_slot_time(at(9)) == "Mon, Nov 3 at 9:00 AM"
        assert format_slot_time(at(13, 5, day_offset=1)) == "Tue, Nov 4 at 1:05 PM"
        assert format_slot_time(at(0)) == "Mon, Nov 3 at 12:00 AM"


def test_settings_override():
    custom = EngineSettings(work_start_hour=10, work_end_hour=16, max_slots=5)
    assert (custom.work_start_hour, custom.work_end_hour, custom.max_slots) == (10, 16, 5)


def test_setup_logging_level(capsys, monkeypatch):
    setup_logging("INFO")
    logger.info("calsched sink installed")
    assert "calsched sink installed" in capsys.readouterr().err

    # no argument falls back to the configured level
    monkeypatch.setattr(log.settings, "log_level", "ERROR")
    setup_logging()
    logger.info("below threshold")
    assert "below threshold" not in capsys.readouterr().err
    logger.remove()
