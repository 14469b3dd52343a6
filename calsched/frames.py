# calsched/frames.py
from typing import Iterable

import pandas as pd

from .models import Conflict, RescheduleResult, TimeSlot

CONFLICT_COLUMNS = ["event_ids", "titles", "overlap_start", "overlap_end",
                    "overlap_minutes", "severity"]
SLOT_COLUMNS = ["start", "end", "score", "category", "n_conflicts", "reasons"]
RESULT_COLUMNS = ["id", "title", "success", "old_start", "new_start", "new_end",
                  "n_conflicts", "message"]


def conflicts_frame(conflicts: Iterable[Conflict]) -> pd.DataFrame:
    rows = [{
        "event_ids": " | ".join(c.event_ids),
        "titles": " ↔ ".join(e.title for e in c.events),
        "overlap_start": c.overlap_start,
        "overlap_end": c.overlap_end,
        "overlap_minutes": c.overlap_duration.total_seconds() / 60,
        "severity": c.severity.label,
    } for c in conflicts]
    df = pd.DataFrame(rows, columns=CONFLICT_COLUMNS)
    return df.sort_values("overlap_start", kind="stable").reset_index(drop=True)


def slots_frame(slots: Iterable[TimeSlot]) -> pd.DataFrame:
    """Keeps the ranking order of the slots."""
    rows = [{
        "start": s.start,
        "end": s.end,
        "score": s.score,
        "category": s.score_category.value,
        "n_conflicts": len(s.conflicts),
        "reasons": ", ".join(s.reasons),
    } for s in slots]
    return pd.DataFrame(rows, columns=SLOT_COLUMNS)


def results_frame(results: Iterable[RescheduleResult]) -> pd.DataFrame:
    rows = [{
        "id": r.original_event.id,
        "title": r.original_event.title,
        "success": r.success,
        "old_start": r.original_event.start,
        "new_start": r.new_time_slot.start if r.new_time_slot else pd.NaT,
        "new_end": r.new_time_slot.end if r.new_time_slot else pd.NaT,
        "n_conflicts": len(r.conflicts),
        "message": r.message,
    } for r in results]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)
