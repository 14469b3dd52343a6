# calsched/suggestions.py
from datetime import timedelta
from typing import List, Optional, Sequence

from loguru import logger

from .models import Conflict, ConflictResolution, Event, Suggestion, SuggestionType

RESCHEDULE_GAP = timedelta(minutes=15)

# fixed per suggestion kind
CONFIDENCE = {
    SuggestionType.RESCHEDULE: 0.8,
    SuggestionType.SHORTEN: 0.7,
    SuggestionType.NO_ACTION: 0.6,
}


def generate_suggestions(conflict: Conflict,
                         all_events: Optional[Sequence[Event]] = None) -> List[Suggestion]:
    """
    Rule-based remediation options for a two-event conflict.

    Always reschedule (shorter event, 15 minutes after the longer one ends),
    shorten (later event starts when the earlier one ends) and keep-both, in
    that order. Ties go to the first event of the pair.
    """
    if len(conflict.events) < 2:
        logger.debug("Conflict needs at least two events for suggestions")
        return []

    first, second = conflict.events[0], conflict.events[1]

    if first.duration <= second.duration:
        shorter, longer = first, second
    else:
        shorter, longer = second, first

    if first.start <= second.start:
        earlier, later = first, second
    else:
        earlier, later = second, first

    return [
        Suggestion(
            type=SuggestionType.RESCHEDULE,
            title="Reschedule",
            description=f'Reschedule "{shorter.title}" to a different time slot',
            target_event=shorter,
            suggested_time=longer.end + RESCHEDULE_GAP,
            confidence=CONFIDENCE[SuggestionType.RESCHEDULE],
        ),
        Suggestion(
            type=SuggestionType.SHORTEN,
            title="Shorten Event",
            description=f'Shorten "{later.title}" to start after the first event ends',
            target_event=later,
            suggested_time=earlier.end,
            confidence=CONFIDENCE[SuggestionType.SHORTEN],
        ),
        Suggestion(
            type=SuggestionType.NO_ACTION,
            title="Keep Both",
            description="Keep both events and mark one as tentative if they're both important",
            confidence=CONFIDENCE[SuggestionType.NO_ACTION],
        ),
    ]


def generate_resolution(conflict: Conflict,
                        all_events: Optional[Sequence[Event]] = None) -> ConflictResolution:
    return ConflictResolution(
        conflict=conflict,
        suggestions=tuple(generate_suggestions(conflict, all_events)),
    )
