# calsched/bulk.py
from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger

from .config import EngineSettings, settings as default_settings
from .models import (BulkRescheduleOperation, Event, RescheduleConstraints,
                     RescheduleResult, Strategy, TimeSlot)
from .optimizer import optimize_placements
from .slots import find_time_slots
from .timeutil import add_days, format_slot_time, start_of_day

NO_SLOTS = "No suitable time slots found"
NO_COMPACT = "Could not compact schedule"
NO_SPREAD = "Could not spread schedule"


def _placed(event: Event, slot: TimeSlot, verb: str, conflicts=None) -> RescheduleResult:
    return RescheduleResult(
        success=True,
        original_event=event,
        new_time_slot=slot,
        updated_event=event.with_times(slot.start, slot.end),
        conflicts=slot.conflicts if conflicts is None else conflicts,
        message=f"{verb} to {format_slot_time(slot.start)}",
    )


def _failed(event: Event, message: str) -> RescheduleResult:
    return RescheduleResult(
        success=False,
        original_event=event,
        new_time_slot=None,
        updated_event=None,
        conflicts=(),
        message=message,
    )


def _replace_in(snapshot: List[Event], updated: Event) -> List[Event]:
    return [e for e in snapshot if e.id != updated.id] + [updated]


def reschedule_sequential(events: Sequence[Event],
                          constraints: RescheduleConstraints,
                          all_events: Sequence[Event],
                          now: datetime,
                          settings: EngineSettings) -> List[RescheduleResult]:
    """Place events in order; each placement becomes an obstacle for the next."""
    results = []
    working = list(all_events)

    for event in events:
        slots = find_time_slots(event, constraints, working, now, settings.search_days, settings)
        best = next((s for s in slots if not s.conflicts), slots[0] if slots else None)
        if best is None:
            results.append(_failed(event, NO_SLOTS))
            continue
        result = _placed(event, best, "Rescheduled")
        working = _replace_in(working, result.updated_event)
        results.append(result)

    return results


def reschedule_parallel(events: Sequence[Event],
                        constraints: RescheduleConstraints,
                        all_events: Sequence[Event],
                        now: datetime,
                        settings: EngineSettings) -> List[RescheduleResult]:
    """Top slot for each event against the untouched snapshot."""
    results = []
    for event in events:
        slots = find_time_slots(event, constraints, all_events, now, settings.search_days, settings)
        if slots:
            results.append(_placed(event, slots[0], "Rescheduled"))
        else:
            results.append(_failed(event, NO_SLOTS))
    return results


def reschedule_optimized(events: Sequence[Event],
                         constraints: RescheduleConstraints,
                         all_events: Sequence[Event],
                         now: datetime,
                         settings: EngineSettings,
                         use_solver: bool = False) -> List[RescheduleResult]:
    """
    Sequential placement unless `use_solver` asks for the CP-SAT joint plan.

    The joint plan falls back to sequential when the model is infeasible.
    """
    if not use_solver:
        return reschedule_sequential(events, constraints, all_events, now, settings)

    chosen = optimize_placements(events, constraints, all_events, now, settings)
    if chosen is None:
        logger.info("Falling back to sequential placement for {} event(s)", len(events))
        return reschedule_sequential(events, constraints, all_events, now, settings)

    return [
        _placed(event, chosen[i], "Rescheduled") if i in chosen else _failed(event, NO_SLOTS)
        for i, event in enumerate(events)
    ]


def reschedule_compact(events: Sequence[Event],
                       constraints: RescheduleConstraints,
                       all_events: Sequence[Event],
                       now: datetime,
                       settings: EngineSettings) -> List[RescheduleResult]:
    """Longest events first, conflict-free slots only, one week ahead."""
    order = sorted(range(len(events)), key=lambda i: events[i].duration, reverse=True)
    results: List[Optional[RescheduleResult]] = [None] * len(events)
    working = list(all_events)

    for i in order:
        event = events[i]
        slots = find_time_slots(event, constraints, working, now,
                                settings.compact_search_days, settings)
        clean = next((s for s in slots if not s.conflicts), None)
        if clean is None:
            results[i] = _failed(event, NO_COMPACT)
            continue
        results[i] = _placed(event, clean, "Compacted", conflicts=())
        working = _replace_in(working, results[i].updated_event)

    return results


def reschedule_spread(events: Sequence[Event],
                      constraints: RescheduleConstraints,
                      all_events: Sequence[Event],
                      now: datetime,
                      settings: EngineSettings) -> List[RescheduleResult]:
    """
    Earliest events first, handing out consecutive days from today.

    Every `events_per_day` events the target day moves forward by one; a
    slot on the target day wins, otherwise the overall best slot is used.
    """
    order = sorted(range(len(events)), key=lambda i: events[i].start)
    results: List[Optional[RescheduleResult]] = [None] * len(events)
    events_per_day = max(1, len(events) // settings.spread_days)
    today = start_of_day(now)

    day_offset = 0
    for position, i in enumerate(order):
        if position > 0 and position % events_per_day == 0:
            day_offset += 1

        event = events[i]
        slots = find_time_slots(event, constraints, all_events, now, settings.search_days, settings)
        target_day = add_days(today, day_offset).date()
        chosen = next((s for s in slots if s.start.date() == target_day),
                      slots[0] if slots else None)
        if chosen is None:
            results[i] = _failed(event, NO_SPREAD)
        else:
            results[i] = _placed(event, chosen, "Spread")

    return results


def bulk_reschedule(events: Sequence[Event],
                    strategy: Strategy,
                    constraints: RescheduleConstraints,
                    all_events: Sequence[Event],
                    now: datetime,
                    use_solver: bool = False,
                    settings: Optional[EngineSettings] = None) -> BulkRescheduleOperation:
    """One RescheduleResult per input event, in input order."""
    settings = settings or default_settings
    strategy = Strategy(strategy)
    events = list(events)
    operation = BulkRescheduleOperation(events=events, strategy=strategy, constraints=constraints)

    if strategy is Strategy.SEQUENTIAL:
        operation.results = reschedule_sequential(events, constraints, all_events, now, settings)
    elif strategy is Strategy.PARALLEL:
        operation.results = reschedule_parallel(events, constraints, all_events, now, settings)
    elif strategy is Strategy.OPTIMIZED:
        operation.results = reschedule_optimized(events, constraints, all_events, now, settings,
                                                 use_solver=use_solver)
    elif strategy is Strategy.COMPACT:
        operation.results = reschedule_compact(events, constraints, all_events, now, settings)
    elif strategy is Strategy.SPREAD:
        operation.results = reschedule_spread(events, constraints, all_events, now, settings)

    logger.debug("Bulk {} over {} event(s): {:.0f}% placed",
                 strategy.value, len(events), operation.success_rate)
    return operation
