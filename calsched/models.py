# calsched/models.py
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import List, Optional, Tuple


class EventSource(str, Enum):
    IOS = "ios"
    GOOGLE = "google"
    OUTLOOK = "outlook"


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    start: datetime
    end: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    is_all_day: bool = False
    source: EventSource = EventSource.IOS
    organizer: Optional[str] = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_valid(self) -> bool:
        return self.end >= self.start

    def with_times(self, start: datetime, end: datetime) -> "Event":
        """Same event (identity and metadata) moved to a new time window."""
        return replace(self, start=start, end=end)


class Severity(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class Conflict:
    events: Tuple[Event, ...]
    overlap_start: datetime
    overlap_end: datetime
    severity: Severity

    @property
    def overlap_duration(self) -> timedelta:
        return self.overlap_end - self.overlap_start

    @property
    def overlap_label(self) -> str:
        total_minutes = int(self.overlap_duration.total_seconds()) // 60
        hours, minutes = divmod(total_minutes, 60)
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"

    @property
    def event_ids(self) -> List[str]:
        return [e.id for e in self.events]

    @property
    def key(self) -> str:
        # order-independent, used to remember approved conflicts
        return "|".join(sorted(self.event_ids))


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError("TimeRange end must be after start")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start < other.end and self.end > other.start


@dataclass(frozen=True)
class RescheduleConstraints:
    must_reschedule_before: Optional[datetime] = None
    preferred_days_of_week: Optional[Tuple[int, ...]] = None  # Monday=0
    preferred_time_range: Optional[TimeRange] = None
    minimum_duration: Optional[timedelta] = None
    maximum_duration: Optional[timedelta] = None
    avoid_conflicts: bool = True
    maintain_attendees: bool = True
    maintain_location: bool = True
    buffer_time: Optional[timedelta] = timedelta(minutes=15)

    def __post_init__(self):
        if (self.minimum_duration is not None
                and self.maximum_duration is not None
                and self.minimum_duration > self.maximum_duration):
            raise ValueError("minimum_duration cannot exceed maximum_duration")
        if self.preferred_days_of_week is not None:
            bad = [d for d in self.preferred_days_of_week if not 0 <= d <= 6]
            if bad:
                raise ValueError(f"weekday numbers must be 0..6, got {bad}")

    @classmethod
    def default(cls) -> "RescheduleConstraints":
        return cls()


class ScoreCategory(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    score: float                          # 0-100
    conflicts: Tuple[Event, ...] = ()
    reasons: Tuple[str, ...] = ()

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def score_category(self) -> ScoreCategory:
        if self.score >= 90:
            return ScoreCategory.EXCELLENT
        if self.score >= 75:
            return ScoreCategory.GOOD
        if self.score >= 50:
            return ScoreCategory.FAIR
        return ScoreCategory.POOR


@dataclass(frozen=True)
class RescheduleResult:
    success: bool
    original_event: Event
    new_time_slot: Optional[TimeSlot]
    updated_event: Optional[Event]
    conflicts: Tuple[Event, ...]
    message: str


class Strategy(str, Enum):
    SEQUENTIAL = "sequential"   # one after another, later events see earlier placements
    PARALLEL = "parallel"       # independently against the original snapshot
    OPTIMIZED = "optimized"     # sequential unless the solver is requested
    COMPACT = "compact"         # pack tightly, conflict-free only
    SPREAD = "spread"           # distribute across the coming week


@dataclass
class BulkRescheduleOperation:
    events: List[Event]
    strategy: Strategy
    constraints: RescheduleConstraints
    results: List[RescheduleResult] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if not self.results:
            return 0.0
        successful = sum(1 for r in self.results if r.success)
        return successful / len(self.results) * 100

    @property
    def has_conflicts(self) -> bool:
        return any(r.conflicts for r in self.results)


class SuggestionType(str, Enum):
    RESCHEDULE = "reschedule"
    DECLINE = "decline"
    SHORTEN = "shorten"
    MARK_OPTIONAL = "mark_optional"
    NO_ACTION = "no_action"

    @property
    def label(self) -> str:
        return {
            "reschedule": "Reschedule",
            "decline": "Decline",
            "shorten": "Shorten",
            "mark_optional": "Mark Optional",
            "no_action": "Keep Both",
        }[self.value]


@dataclass(frozen=True)
class Suggestion:
    type: SuggestionType
    title: str
    description: str
    target_event: Optional[Event] = None
    suggested_time: Optional[datetime] = None
    confidence: float = 0.8   # 0.0 - 1.0


@dataclass(frozen=True)
class ConflictResolution:
    conflict: Conflict
    suggestions: Tuple[Suggestion, ...]


@dataclass(frozen=True)
class ConflictCheck:
    has_conflict: bool
    conflicting_events: Tuple[Event, ...] = ()
    alternative_times: Tuple[datetime, ...] = ()


class WarningType(str, Enum):
    BACK_TO_BACK = "back_to_back"
    INSUFFICIENT_TRAVEL_TIME = "insufficient_travel_time"
    LUNCH_TIME_CONFLICT = "lunch_time_conflict"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    OVERBOOKED = "overbooked"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class SchedulingWarning:
    type: WarningType
    severity: Severity
    message: str
    suggestion: str


@dataclass(frozen=True)
class AlternativeSlot:
    """A free gap found around an event's day; score is relative, not 0..100."""
    start: datetime
    end: datetime
    reason: str
    score: float
