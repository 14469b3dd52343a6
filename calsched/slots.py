# calsched/slots.py
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from loguru import logger

from .config import EngineSettings, settings as default_settings
from .conflicts import overlapping_events
from .models import Event, RescheduleConstraints, TimeSlot
from .scoring import score_slot
from .timeutil import add_days, start_of_day


def search_days(now: datetime, days: int) -> List[datetime]:
    """Midnights from today's up to (not including) now + days."""
    search_end = now + timedelta(days=days)
    out = []
    day = start_of_day(now)
    while day < search_end:
        out.append(day)
        day = add_days(day, 1)
    return out


def available_hours(day: datetime,
                    constraints: RescheduleConstraints,
                    settings: Optional[EngineSettings] = None) -> List[int]:
    """
    Start hours to try on `day`.

    A preferred time range replaces the working-hour band rather than
    narrowing it. Days outside the preferred weekdays get nothing.
    """
    settings = settings or default_settings
    preferred_days = constraints.preferred_days_of_week
    if preferred_days and day.weekday() not in preferred_days:
        return []

    start_hour, end_hour = settings.work_start_hour, settings.work_end_hour
    if constraints.preferred_time_range is not None:
        start_hour = constraints.preferred_time_range.start.hour
        end_hour = constraints.preferred_time_range.end.hour

    return list(range(start_hour, end_hour + 1))


def find_time_slots(event: Event,
                    constraints: RescheduleConstraints,
                    all_events: Sequence[Event],
                    now: datetime,
                    days: Optional[int] = None,
                    settings: Optional[EngineSettings] = None) -> List[TimeSlot]:
    """
    Rank candidate windows for moving `event`, best first.

    Every tried hour of every searched day becomes a candidate of the
    event's own length. Conflicts are counted against `all_events` minus the
    event itself. Returns at most `settings.max_slots` slots; an empty list
    means nothing could be proposed.
    """
    settings = settings or default_settings
    days = settings.search_days if days is None else days

    if event.is_all_day or not event.is_valid:
        logger.debug("Not searching slots for event {} (all-day or malformed)", event.id)
        return []

    duration = event.duration
    deadline = constraints.must_reschedule_before
    slots: List[TimeSlot] = []

    for day in search_days(now, days):
        for hour in available_hours(day, constraints, settings):
            start = day + timedelta(hours=hour)
            end = start + duration
            if deadline is not None and end > deadline:
                continue

            conflicts = overlapping_events(start, end, all_events, exclude_id=event.id)
            score, reasons = score_slot(
                start, end, event, conflicts, constraints, all_events, settings,
            )
            slots.append(TimeSlot(
                start=start,
                end=end,
                score=score,
                conflicts=tuple(conflicts),
                reasons=tuple(reasons),
            ))

    # stable: equal scores stay in chronological order
    ranked = sorted(slots, key=lambda s: s.score, reverse=True)
    logger.debug("Event {}: {} candidate(s), keeping {}", event.id, len(ranked),
                 min(len(ranked), settings.max_slots))
    return ranked[:settings.max_slots]
