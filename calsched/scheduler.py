# calsched/scheduler.py
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set
from zoneinfo import ZoneInfo

from loguru import logger

from . import bulk, conflicts, slots, suggestions
from .config import EngineSettings, settings as default_settings
from .metrics import BULK_RESCHEDULE_TIME, CONFLICTS_DETECTED, RESCHEDULE_RESULTS
from .models import (AlternativeSlot, BulkRescheduleOperation, Conflict, ConflictCheck, Event,
                     RescheduleConstraints, SchedulingWarning, Strategy, Suggestion,
                     TimeSlot)


def _now(now: Optional[datetime], settings: EngineSettings) -> datetime:
    # the only place the wall clock is read
    if now is not None:
        return now
    return datetime.now(ZoneInfo(settings.timezone))


def _well_formed(events: Iterable[Event]) -> List[Event]:
    kept = []
    for e in events:
        if not e.is_valid:
            logger.warning("Ignoring event {} ({!r}): ends before it starts", e.id, e.title)
            continue
        kept.append(e)
    return kept


def detect_conflicts(events: Iterable[Event],
                     approved: Optional[Set[str]] = None,
                     severity_of: Optional[conflicts.SeverityPolicy] = None,
                     settings: Optional[EngineSettings] = None) -> List[Conflict]:
    """
    Pairwise conflicts among `events`.

    Three mutually overlapping events are reported as three pairs, never as
    one grouped record. The caller bounds the date window.
    """
    found = conflicts.detect_conflicts(
        _well_formed(events), severity_of=severity_of, approved=approved, settings=settings,
    )
    CONFLICTS_DETECTED.inc(len(found))
    return found


def check_conflicts(start: datetime,
                    end: datetime,
                    all_events: Sequence[Event],
                    exclude_id: Optional[str] = None,
                    settings: Optional[EngineSettings] = None) -> ConflictCheck:
    if end < start:
        logger.warning("Proposed window ends before it starts; nothing to check")
        return ConflictCheck(has_conflict=False)
    return conflicts.check_conflicts(start, end, _well_formed(all_events), exclude_id, settings)


def find_time_slots(event: Event,
                    constraints: Optional[RescheduleConstraints] = None,
                    all_events: Sequence[Event] = (),
                    search_days: Optional[int] = None,
                    now: Optional[datetime] = None,
                    settings: Optional[EngineSettings] = None) -> List[TimeSlot]:
    settings = settings or default_settings
    if not event.is_valid:
        logger.warning("Cannot search slots for event {}: ends before it starts", event.id)
        return []
    return slots.find_time_slots(
        event,
        constraints or RescheduleConstraints.default(),
        _well_formed(all_events),
        _now(now, settings),
        search_days,
        settings,
    )


def bulk_reschedule(events: Sequence[Event],
                    strategy: Strategy = Strategy.SEQUENTIAL,
                    constraints: Optional[RescheduleConstraints] = None,
                    all_events: Sequence[Event] = (),
                    now: Optional[datetime] = None,
                    use_solver: bool = False,
                    settings: Optional[EngineSettings] = None) -> BulkRescheduleOperation:
    """
    Propose new times for `events`. Nothing is applied; the caller commits
    the returned `updated_event`s.
    """
    settings = settings or default_settings
    strategy = Strategy(strategy)

    with BULK_RESCHEDULE_TIME.labels(strategy.value).time():
        operation = bulk.bulk_reschedule(
            list(events),
            strategy,
            constraints or RescheduleConstraints.default(),
            _well_formed(all_events),
            _now(now, settings),
            use_solver=use_solver,
            settings=settings,
        )

    for result in operation.results:
        outcome = "success" if result.success else "failure"
        RESCHEDULE_RESULTS.labels(strategy.value, outcome).inc()
    logger.info("Bulk {} reschedule: {}/{} placed", strategy.value,
                sum(1 for r in operation.results if r.success), len(operation.results))
    return operation


def generate_suggestions(conflict: Conflict,
                         all_events: Sequence[Event] = ()) -> List[Suggestion]:
    return suggestions.generate_suggestions(conflict, all_events)


def predict_scheduling_issues(event: Event,
                              all_events: Sequence[Event] = (),
                              settings: Optional[EngineSettings] = None) -> List[SchedulingWarning]:
    if not event.is_valid:
        logger.warning("Cannot assess event {}: ends before it starts", event.id)
        return []
    return conflicts.predict_scheduling_issues(event, _well_formed(all_events), settings)


def suggest_alternatives(event: Event,
                         all_events: Sequence[Event] = (),
                         count: int = 5,
                         settings: Optional[EngineSettings] = None) -> List[AlternativeSlot]:
    """Free gaps on the event's day and the next one, best first."""
    if not event.is_valid:
        logger.warning("Cannot suggest alternatives for event {}: ends before it starts", event.id)
        return []
    return conflicts.suggest_alternatives(event, _well_formed(all_events), count, settings)
