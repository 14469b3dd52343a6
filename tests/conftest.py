"""Shared fixtures for calsched tests.

All times are UTC on the week of Monday 2025-11-03 so weekday and
working-hour arithmetic is free of DST effects.
"""

from datetime import datetime, timedelta, timezone

import pytest

from calsched.config import EngineSettings
from calsched.models import Event, RescheduleConstraints

MONDAY = datetime(2025, 11, 3, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day_offset: int = 0) -> datetime:
    """Time on Monday 2025-11-03 (or `day_offset` days later), UTC."""
    return MONDAY + timedelta(days=day_offset, hours=hour, minutes=minute)


def make_event(event_id: str,
               start: datetime,
               end: datetime,
               title: str = None,
               **kwargs) -> Event:
    return Event(id=event_id, title=title or event_id.upper(), start=start, end=end, **kwargs)


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def now() -> datetime:
    """Monday 07:00 UTC."""
    return at(7)


@pytest.fixture
def settings() -> EngineSettings:
    """Settings with the documented defaults, independent of the environment."""
    return EngineSettings(
        timezone="UTC",
        work_start_hour=8,
        work_end_hour=18,
        alt_start_hour=9,
        alt_end_hour=17,
        max_slots=20,
        search_days=14,
        compact_search_days=7,
        spread_days=7,
        solver_time_limit=10,
        low_overlap_minutes=15,
        medium_ratio=0.5,
        high_ratio=0.9,
    )


@pytest.fixture
def default_constraints() -> RescheduleConstraints:
    return RescheduleConstraints.default()


@pytest.fixture
def no_buffer() -> RescheduleConstraints:
    """Constraints without a buffer, so scores are not lifted by the buffer bonus."""
    return RescheduleConstraints(buffer_time=None)
