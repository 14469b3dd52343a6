# calsched/conflicts.py
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np
from loguru import logger

from .config import EngineSettings, settings as default_settings
from .models import (AlternativeSlot, Conflict, ConflictCheck, Event, SchedulingWarning,
                     Severity, WarningType)
from .timeutil import add_days, day_start, start_of_day

SeverityPolicy = Callable[[timedelta, timedelta], Severity]


def severity_by_overlap(overlap: timedelta,
                        shorter_duration: timedelta,
                        settings: Optional[EngineSettings] = None) -> Severity:
    """
    Default severity bands.

    Short overlaps are LOW regardless of ratio; otherwise the overlap is
    measured against the shorter event. Full containment is CRITICAL.
    """
    settings = settings or default_settings
    if overlap < timedelta(minutes=settings.low_overlap_minutes):
        return Severity.LOW
    if shorter_duration <= timedelta(0):
        return Severity.CRITICAL
    ratio = overlap / shorter_duration
    if ratio < settings.medium_ratio:
        return Severity.MEDIUM
    if ratio < settings.high_ratio:
        return Severity.HIGH
    return Severity.CRITICAL


def _overlap_mask(events: Sequence[Event]) -> np.ndarray:
    """Upper-triangle boolean matrix: True where events i < j intersect."""
    starts = np.array([e.start.timestamp() for e in events])
    ends = np.array([e.end.timestamp() for e in events])
    mask = (starts[:, None] < ends[None, :]) & (starts[None, :] < ends[:, None])
    return np.triu(mask, k=1)


def detect_conflicts(events: Iterable[Event],
                     severity_of: Optional[SeverityPolicy] = None,
                     approved: Optional[Set[str]] = None,
                     settings: Optional[EngineSettings] = None) -> List[Conflict]:
    """
    Report one Conflict per overlapping pair of timed events.

    Overlapping clusters are not merged: three mutually overlapping events
    give three pairwise conflicts. All-day and malformed events are ignored.
    Conflicts whose key is in `approved` are dropped. Sorted by overlap start.
    """
    settings = settings or default_settings
    if severity_of is None:
        def severity_of(overlap, shorter):
            return severity_by_overlap(overlap, shorter, settings)

    timed = [e for e in events if not e.is_all_day and e.is_valid]
    if len(timed) < 2:
        return []

    conflicts: List[Conflict] = []
    rows, cols = np.nonzero(_overlap_mask(timed))
    for i, j in zip(rows.tolist(), cols.tolist()):
        a, b = timed[i], timed[j]
        overlap_start = max(a.start, b.start)
        overlap_end = min(a.end, b.end)
        # zero-length events pass the intersection test but share no time
        if not overlap_start < overlap_end:
            continue
        shorter = min(a.duration, b.duration)
        conflict = Conflict(
            events=(a, b),
            overlap_start=overlap_start,
            overlap_end=overlap_end,
            severity=severity_of(overlap_end - overlap_start, shorter),
        )
        if approved and conflict.key in approved:
            logger.debug("Skipping approved conflict {}", conflict.key)
            continue
        conflicts.append(conflict)

    conflicts.sort(key=lambda c: c.overlap_start)
    logger.debug("Detected {} conflict(s) among {} timed events", len(conflicts), len(timed))
    return conflicts


def conflicts_on_date(conflicts: Iterable[Conflict], day: date) -> List[Conflict]:
    """Conflicts whose overlap window touches the given calendar day."""
    out = []
    for c in conflicts:
        lo = day_start(day, c.overlap_start)
        hi = day_start(day + timedelta(days=1), c.overlap_start)
        if c.overlap_start < hi and c.overlap_end > lo:
            out.append(c)
    return out


def overlapping_events(start: datetime,
                       end: datetime,
                       events: Iterable[Event],
                       exclude_id: Optional[str] = None) -> List[Event]:
    """Timed events intersecting [start, end), other than `exclude_id`."""
    return [
        e for e in events
        if e.id != exclude_id
        and not e.is_all_day
        and e.start < end
        and e.end > start
    ]


def find_duplicates(event: Event, events: Iterable[Event]) -> List[Event]:
    """Other events with the same title and the same times to the minute."""
    def minute(dt: datetime) -> datetime:
        return dt.replace(second=0, microsecond=0)

    return [
        e for e in events
        if e.id != event.id
        and e.title == event.title
        and minute(e.start) == minute(event.start)
        and minute(e.end) == minute(event.end)
    ]


def find_alternative_times(duration: timedelta,
                           around: datetime,
                           events: Sequence[Event],
                           count: int = 3,
                           exclude_id: Optional[str] = None,
                           days: int = 7,
                           settings: Optional[EngineSettings] = None) -> List[datetime]:
    """
    Conflict-free start times on weekdays inside the alternative-time band,
    probing every 30 minutes from the start of `around`'s day.
    """
    settings = settings or default_settings
    step = timedelta(minutes=30)
    found: List[datetime] = []
    first_day = start_of_day(around)

    for offset in range(days):
        day = add_days(first_day, offset)
        if day.weekday() >= 5:
            continue
        slot_start = day.replace(hour=settings.alt_start_hour)
        day_end = day.replace(hour=settings.alt_end_hour)
        while slot_start + duration <= day_end:
            if not overlapping_events(slot_start, slot_start + duration, events, exclude_id):
                found.append(slot_start)
                if len(found) >= count:
                    return found
            slot_start += step
    return found


def check_conflicts(start: datetime,
                    end: datetime,
                    events: Sequence[Event],
                    exclude_id: Optional[str] = None,
                    settings: Optional[EngineSettings] = None) -> ConflictCheck:
    """Check a proposed window; offer up to three alternatives when it clashes."""
    clashing = overlapping_events(start, end, events, exclude_id)
    if not clashing:
        return ConflictCheck(has_conflict=False)

    alternatives = find_alternative_times(
        end - start, start, events, count=3, exclude_id=exclude_id, settings=settings,
    )
    logger.debug("Proposed window clashes with {} event(s); {} alternative(s)",
                 len(clashing), len(alternatives))
    return ConflictCheck(
        has_conflict=True,
        conflicting_events=tuple(clashing),
        alternative_times=tuple(alternatives),
    )


def severity_by_minutes(overlap: timedelta, shorter_duration: timedelta) -> Severity:
    """
    Alternative policy that ignores event lengths and only bands the overlap.

    Points: one for the pair, then +1 at 15 min, +2 at 30 min, +3 at an hour.
    1-2 points is MEDIUM, 3-4 is HIGH. A pair alone never reaches CRITICAL.
    """
    minutes = int(overlap.total_seconds()) // 60
    points = 1
    if minutes >= 60:
        points += 3
    elif minutes >= 30:
        points += 2
    elif minutes >= 15:
        points += 1

    return Severity.HIGH if points >= 3 else Severity.MEDIUM


# ─── Scheduling warnings ──────────────────────────────────────────────────────

BACK_TO_BACK_GAP = timedelta(minutes=5)
TRAVEL_TIME = timedelta(minutes=30)
LUNCH_HOUR = 12
OVERBOOKED_EVENTS = 6


def _previous_event(event: Event, others: Sequence[Event]) -> Optional[Event]:
    """The same-day event that ends last at or before `event` starts."""
    before = [e for e in others
              if e.end <= event.start and e.end.date() == event.start.date()]
    return max(before, key=lambda e: e.end, default=None)


def predict_scheduling_issues(event: Event,
                              events: Sequence[Event],
                              settings: Optional[EngineSettings] = None) -> List[SchedulingWarning]:
    """
    Rule-based warnings about how `event` sits in its day.

    Looks at the gap after the previous event (buffer and travel between
    different locations), long lunch-hour meetings, starts outside working
    hours, how full the day already is, and exact duplicates.
    """
    settings = settings or default_settings
    if event.is_all_day:
        return []

    others = [e for e in events if e.id != event.id and not e.is_all_day and e.is_valid]
    warnings: List[SchedulingWarning] = []

    previous = _previous_event(event, others)
    if previous is not None:
        gap = event.start - previous.end
        if gap < BACK_TO_BACK_GAP:
            warnings.append(SchedulingWarning(
                WarningType.BACK_TO_BACK, Severity.MEDIUM,
                "Back-to-back meeting with no buffer time",
                "Add 15-minute buffer for preparation",
            ))
        moving = previous.location and event.location and previous.location != event.location
        if moving and gap < TRAVEL_TIME:
            warnings.append(SchedulingWarning(
                WarningType.INSUFFICIENT_TRAVEL_TIME, Severity.HIGH,
                "Insufficient travel time between locations",
                f"Need {TRAVEL_TIME.seconds // 60} minutes to travel, "
                f"only {int(gap.total_seconds()) // 60} available",
            ))

    hour = event.start.hour
    if hour == LUNCH_HOUR and event.duration > timedelta(hours=1):
        warnings.append(SchedulingWarning(
            WarningType.LUNCH_TIME_CONFLICT, Severity.LOW,
            "Long meeting during lunch hour",
            "Consider scheduling before 12pm or after 1pm",
        ))

    if hour >= settings.work_end_hour or hour < settings.work_start_hour:
        warnings.append(SchedulingWarning(
            WarningType.OUTSIDE_WORKING_HOURS, Severity.MEDIUM,
            "Meeting scheduled outside typical working hours",
            "Ensure all participants are available",
        ))

    same_day = sum(1 for e in others if e.start.date() == event.start.date())
    if same_day >= OVERBOOKED_EVENTS:
        warnings.append(SchedulingWarning(
            WarningType.OVERBOOKED, Severity.MEDIUM,
            f"Already {same_day} events scheduled today",
            "Consider moving to a less busy day",
        ))

    duplicates = find_duplicates(event, others)
    if duplicates:
        warnings.append(SchedulingWarning(
            WarningType.DUPLICATE, Severity.LOW,
            f"Looks like a duplicate of {len(duplicates)} other event(s)",
            "Delete the extra copy",
        ))

    logger.debug("{} warning(s) for event {}", len(warnings), event.id)
    return warnings


# ─── Gap-based alternatives ───────────────────────────────────────────────────

OPTIMAL_HOURS = (9, 10, 11, 14, 15, 16)
SAME_DAY_WEIGHT = 1.2
NEXT_DAY_WEIGHT = 0.9


def _gap_score(start: datetime, duration: timedelta) -> float:
    score = 0.5
    if start.hour in OPTIMAL_HOURS:
        score += 0.3
    if start.hour == LUNCH_HOUR:
        score -= 0.2
    # long meetings fit better in the morning
    if duration > timedelta(hours=1) and start.hour < 12:
        score += 0.2
    return min(max(score, 0.0), 1.0)


def find_gaps(day: datetime,
              duration: timedelta,
              busy: Iterable[Event],
              settings: Optional[EngineSettings] = None) -> List[Tuple[datetime, str]]:
    """
    Start times at the head of each free gap of `day` that fits `duration`.

    Walks the day's busy events in start order from the alternative band's
    first hour; the tail of the band is checked last.
    """
    settings = settings or default_settings
    midnight = start_of_day(day)
    work_start = midnight.replace(hour=settings.alt_start_hour)
    work_end = midnight.replace(hour=settings.alt_end_hour)

    todays = sorted((e for e in busy if e.start.date() == midnight.date() and not e.is_all_day),
                    key=lambda e: e.start)

    gaps = []
    current = work_start
    for e in todays:
        if e.start > current and e.start - current >= duration:
            gaps.append((current, f"Available slot before {e.title or 'event'}"))
        current = max(current, e.end)

    if current < work_end and work_end - current >= duration:
        gaps.append((current, "End of day availability"))
    return gaps


def suggest_alternatives(event: Event,
                         busy: Sequence[Event],
                         count: int = 5,
                         settings: Optional[EngineSettings] = None) -> List[AlternativeSlot]:
    """
    Free gaps on the event's own day and the next, best first.

    Same-day gaps are weighted up and next-day gaps down, so a same-day
    option wins a tie on hour quality.
    """
    busy = [e for e in busy if e.id != event.id]
    duration = event.duration
    first_day = start_of_day(event.start)

    alternatives: List[AlternativeSlot] = []
    for day, label, weight in ((first_day, "Same day", SAME_DAY_WEIGHT),
                               (add_days(first_day, 1), "Tomorrow", NEXT_DAY_WEIGHT)):
        for start, why in find_gaps(day, duration, busy, settings):
            alternatives.append(AlternativeSlot(
                start=start,
                end=start + duration,
                reason=f"{label}, {why}",
                score=_gap_score(start, duration) * weight,
            ))

    alternatives.sort(key=lambda a: a.score, reverse=True)
    return alternatives[:count]
