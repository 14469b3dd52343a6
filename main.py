# main.py
import argparse
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pandas as pd
from prometheus_client import start_http_server

from calsched.frames import conflicts_frame, results_frame, slots_frame
from calsched.log import setup_logging
from calsched.models import Event, EventSource, RescheduleConstraints, Strategy, TimeRange
from calsched.scheduler import (bulk_reschedule, detect_conflicts, find_time_slots,
                                generate_suggestions, predict_scheduling_issues,
                                suggest_alternatives)


def main():
    parser = argparse.ArgumentParser(description="Conflict detection and rescheduling demo")
    parser.add_argument("--strategy", default="sequential", choices=[s.value for s in Strategy])
    parser.add_argument("--solver", action="store_true", help="use CP-SAT for 'optimized'")
    parser.add_argument("--metrics-port", type=int, default=None)
    args = parser.parse_args()

    setup_logging()
    if args.metrics_port:
        start_http_server(args.metrics_port)

    TZ = ZoneInfo("America/New_York")
    now = datetime(2025, 11, 3, 7, 30, tzinfo=TZ)   # Monday morning

    def at(day, hour, minute=0):
        return datetime(2025, 11, day, hour, minute, tzinfo=TZ)

    events = [
        Event(id="class-os", title="OS Class", start=at(3, 12, 50), end=at(3, 14, 45)),
        Event(id="team-sync", title="Team Sync", start=at(3, 14, 0), end=at(3, 15, 0),
              source=EventSource.GOOGLE, organizer="lead@example.com"),
        Event(id="profs", title="Profs Mtg", start=at(3, 14, 30), end=at(3, 15, 30),
              source=EventSource.OUTLOOK, location="Room 204"),
        Event(id="holiday", title="Holiday", start=at(4, 0), end=at(5, 0), is_all_day=True),
    ]

    conflicts = detect_conflicts(events)
    print("=== Conflicts ===")
    print(conflicts_frame(conflicts))

    if conflicts:
        print("\n=== Suggestions for first conflict ===")
        for s in generate_suggestions(conflicts[0], events):
            print(f"[{s.confidence:.1f}] {s.title}: {s.description}")

    print("\n=== Warnings and gaps for Profs Mtg ===")
    for w in predict_scheduling_issues(events[2], events):
        print(f"[{w.severity.label}] {w.message}: {w.suggestion}")
    for alt in suggest_alternatives(events[2], events):
        print(f"{alt.score:.2f}  {alt.start:%a %H:%M}  {alt.reason}")

    constraints = RescheduleConstraints(
        preferred_days_of_week=(0, 1, 2, 3, 4),
        preferred_time_range=TimeRange(at(3, 9), at(3, 12)),
        buffer_time=timedelta(minutes=15),
    )

    print("\n=== Slots for Team Sync ===")
    with pd.option_context("display.max_colwidth", 60):
        print(slots_frame(find_time_slots(events[1], constraints, events, now=now)).head(5))

    movers = [e for e in events if e.id in {c.events[1].id for c in conflicts}]
    operation = bulk_reschedule(movers, args.strategy, constraints, events,
                                now=now, use_solver=args.solver)
    print(f"\n=== Bulk {operation.strategy.value} ({operation.success_rate:.0f}% placed) ===")
    print(results_frame(operation.results))


if __name__ == "__main__":
    main()
