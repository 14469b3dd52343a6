"""Tests for calsched/optimizer.py (CP-SAT joint placement)."""

from datetime import timedelta

import pandas as pd
import pytest

from calsched.bulk import bulk_reschedule, reschedule_sequential
from calsched.models import RescheduleConstraints, Strategy, TimeRange
from calsched.optimizer import build_candidates, clashing_pairs, optimize_placements

from conftest import at, make_event


@pytest.fixture
def twins():
    return [make_event("a", at(10), at(11)), make_event("b", at(10), at(11))]


@pytest.fixture
def one_hour_only():
    """Only Monday 09:00 is ever tried."""
    return RescheduleConstraints(
        preferred_days_of_week=(0,),
        preferred_time_range=TimeRange(at(9), at(9, 30)),
    )


class TestClashingPairs:
    def test_buffer_and_ownership(self):
        cand = pd.DataFrame({
            "event_idx": [0, 0, 1, 1],
            "slot_idx": [0, 1, 0, 1],
            "start": [0.0, 7200.0, 3600.0, 3600.0 + 600],
            "end": [3600.0, 10800.0, 7200.0, 7200.0 + 600],
            "score": [100.0, 90.0, 100.0, 80.0],
        })
        no_pad = clashing_pairs(cand, timedelta(0)).tolist()
        padded = clashing_pairs(cand, timedelta(minutes=15)).tolist()

        # back-to-back windows only clash once a buffer is required
        assert [0, 2] not in no_pad
        assert [0, 2] in padded
        # same-event candidates never clash with each other
        assert [2, 3] not in padded
        assert [1, 3] in no_pad

    def test_empty(self):
        cand = pd.DataFrame(columns=["event_idx", "slot_idx", "start", "end", "score"])
        assert clashing_pairs(cand, timedelta(0)).shape == (0, 2)


def test_build_candidates_ignores_moving_events(twins, now, default_constraints, settings):
    cand, slots_by_event = build_candidates(twins, default_constraints, twins, now, settings)

    assert list(cand.columns) == ["event_idx", "slot_idx", "start", "end", "score"]
    assert len(cand) == sum(len(s) for s in slots_by_event)
    # the twins' original hour is free once both are moving
    assert all(not s.conflicts for slots in slots_by_event for s in slots)


class TestOptimizePlacements:
    def test_places_both_apart(self, twins, now, default_constraints, settings):
        chosen = optimize_placements(twins, default_constraints, twins, now, settings)

        assert set(chosen) == {0, 1}
        first, second = chosen[0], chosen[1]
        gap = timedelta(minutes=15)
        assert first.end + gap <= second.start or second.end + gap <= first.start

    def test_infeasible_returns_none(self, twins, now, one_hour_only, settings):
        short = settings.model_copy(update={"search_days": 0})
        assert optimize_placements(twins, one_hour_only, twins, now, short) is None

    def test_no_candidates(self, now, settings):
        holiday = make_event("h", at(0), at(0, day_offset=1), is_all_day=True)
        assert optimize_placements([holiday], RescheduleConstraints(), [holiday], now,
                                   settings) == {}


class TestOptimizedStrategyWithSolver:
    def test_results_in_input_order(self, twins, now, default_constraints, settings):
        op = bulk_reschedule(twins, Strategy.OPTIMIZED, default_constraints, twins, now,
                             use_solver=True, settings=settings)

        assert [r.original_event.id for r in op.results] == ["a", "b"]
        assert op.success_rate == 100
        a, b = (r.updated_event for r in op.results)
        assert a.end <= b.start or b.end <= a.start

    def test_falls_back_to_sequential(self, twins, now, one_hour_only, settings):
        short = settings.model_copy(update={"search_days": 0})
        op = bulk_reschedule(twins, Strategy.OPTIMIZED, one_hour_only, twins, now,
                             use_solver=True, settings=short)
        expected = reschedule_sequential(twins, one_hour_only, twins, now, short)

        assert op.results == expected
