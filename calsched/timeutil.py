# calsched/timeutil.py
from datetime import date, datetime, time, timedelta


def start_of_day(moment: datetime) -> datetime:
    """Local midnight of the day `moment` falls on, keeping its tzinfo."""
    return datetime.combine(moment.date(), time(), tzinfo=moment.tzinfo)


def day_start(day: date, like: datetime) -> datetime:
    return datetime.combine(day, time(), tzinfo=like.tzinfo)


def add_days(day: datetime, days: int) -> datetime:
    # wall-clock days, so midnights stay midnights across DST changes
    return day_start(day.date() + timedelta(days=days), day)


def format_slot_time(moment: datetime) -> str:
    """'Mon, Nov 3 at 9:00 AM'"""
    hour12 = moment.hour % 12 or 12
    return f"{moment:%a, %b} {moment.day} at {hour12}:{moment:%M %p}"
