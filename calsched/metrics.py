# calsched/metrics.py
from prometheus_client import Counter, Summary

BULK_RESCHEDULE_TIME = Summary(
    "calsched_bulk_reschedule_seconds",
    "Time spent computing a bulk reschedule plan",
    ["strategy"],
)

CONFLICTS_DETECTED = Counter(
    "calsched_conflicts_detected_total",
    "Count of pairwise conflicts reported by detection",
)

RESCHEDULE_RESULTS = Counter(
    "calsched_reschedule_results_total",
    "Count of per-event reschedule outcomes",
    ["strategy", "outcome"],  # outcome = success / failure
)
