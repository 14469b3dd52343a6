# calsched/scoring.py
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from .config import EngineSettings, settings as default_settings
from .conflicts import overlapping_events
from .models import Event, RescheduleConstraints

CONFLICT_PENALTY = 30.0
DAY_DISTANCE_PENALTY = 5.0        # per day away from the original start
MAX_DISTANCE_PENALTY = 30.0
PREFERRED_TIME_BONUS = 10.0
SAME_WEEKDAY_BONUS = 5.0
OFF_HOURS_PENALTY = 20.0
BUFFER_BONUS = 10.0


def _matches_preferred_hour(start: datetime, constraints: RescheduleConstraints) -> bool:
    if constraints.preferred_time_range is None:
        return False
    preferred_hour = constraints.preferred_time_range.start.hour
    return abs(start.hour - preferred_hour) <= 1


def _in_working_hours(start: datetime, settings: EngineSettings) -> bool:
    return settings.work_start_hour <= start.hour <= settings.work_end_hour


def _in_core_hours(start: datetime, settings: EngineSettings) -> bool:
    return settings.alt_start_hour <= start.hour <= settings.alt_end_hour


def _has_buffer(start: datetime,
                end: datetime,
                buffer: timedelta,
                moving_id: str,
                all_events: Sequence[Event]) -> bool:
    before = overlapping_events(start - buffer, start, all_events, moving_id)
    after = overlapping_events(end, end + buffer, all_events, moving_id)
    return not before and not after


def slot_score(start: datetime,
               end: datetime,
               original_event: Event,
               conflicts: Sequence[Event],
               constraints: RescheduleConstraints,
               all_events: Sequence[Event],
               settings: Optional[EngineSettings] = None) -> float:
    """
    Desirability of moving `original_event` to [start, end), 0..100.

    Starts at 100; conflicts, distance from the original time and off-hours
    starts cost points, a preferred hour, the same weekday and free buffers
    around the slot earn points.
    """
    settings = settings or default_settings
    score = 100.0

    score -= len(conflicts) * CONFLICT_PENALTY

    days_difference = abs((start - original_event.start).total_seconds()) / 86400
    score -= min(days_difference * DAY_DISTANCE_PENALTY, MAX_DISTANCE_PENALTY)

    if _matches_preferred_hour(start, constraints):
        score += PREFERRED_TIME_BONUS

    if start.weekday() == original_event.start.weekday():
        score += SAME_WEEKDAY_BONUS

    if not _in_working_hours(start, settings):
        score -= OFF_HOURS_PENALTY

    if constraints.buffer_time is not None:
        if _has_buffer(start, end, constraints.buffer_time, original_event.id, all_events):
            score += BUFFER_BONUS

    return max(0.0, min(100.0, score))


def slot_reasons(start: datetime,
                 conflicts: Sequence[Event],
                 constraints: RescheduleConstraints,
                 settings: Optional[EngineSettings] = None) -> List[str]:
    """Display strings explaining a slot's score."""
    settings = settings or default_settings
    reasons = []

    if conflicts:
        reasons.append(f"{len(conflicts)} conflict(s)")
    else:
        reasons.append("No conflicts")

    # core band (9-17), narrower than the scoring band
    if _in_core_hours(start, settings):
        reasons.append("During working hours")

    if _matches_preferred_hour(start, constraints):
        reasons.append("Matches preferred time")

    reasons.append(f"On {start:%A}")
    return reasons


def score_slot(start: datetime,
               end: datetime,
               original_event: Event,
               conflicts: Sequence[Event],
               constraints: RescheduleConstraints,
               all_events: Sequence[Event],
               settings: Optional[EngineSettings] = None) -> Tuple[float, List[str]]:
    score = slot_score(start, end, original_event, conflicts, constraints, all_events, settings)
    return score, slot_reasons(start, conflicts, constraints, settings)
