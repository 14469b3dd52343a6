# calsched/optimizer.py
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger
from ortools.sat.python import cp_model

from .config import EngineSettings, settings as default_settings
from .models import Event, RescheduleConstraints, TimeSlot
from .slots import find_time_slots


def build_candidates(events: Sequence[Event],
                     constraints: RescheduleConstraints,
                     all_events: Sequence[Event],
                     now: datetime,
                     settings: EngineSettings) -> Tuple[pd.DataFrame, List[List[TimeSlot]]]:
    """
    Ranked slots per moving event, scored against the events that stay put.

    Returns a flat candidate table (event_idx, slot_idx, start, end, score)
    and the TimeSlot lists it indexes into.
    """
    moving = {e.id for e in events}
    fixed = [e for e in all_events if e.id not in moving]

    slots_by_event: List[List[TimeSlot]] = []
    rows = []
    for t_idx, event in enumerate(events):
        slots = find_time_slots(event, constraints, fixed, now, settings.search_days, settings)
        slots_by_event.append(slots)
        for k, slot in enumerate(slots):
            rows.append({
                "event_idx": t_idx,
                "slot_idx": k,
                "start": slot.start.timestamp(),
                "end": slot.end.timestamp(),
                "score": slot.score,
            })

    cand = pd.DataFrame(rows, columns=["event_idx", "slot_idx", "start", "end", "score"])
    return cand, slots_by_event


def clashing_pairs(cand: pd.DataFrame, buffer: timedelta) -> np.ndarray:
    """Index pairs (i < j) of candidates for different events that are too close."""
    if cand.empty:
        return np.empty((0, 2), dtype=int)
    pad = buffer.total_seconds()
    s = cand["start"].to_numpy()
    e = cand["end"].to_numpy() + pad
    owner = cand["event_idx"].to_numpy()
    too_close = (s[:, None] < e[None, :]) & (s[None, :] < e[:, None])
    too_close &= owner[:, None] != owner[None, :]
    return np.argwhere(np.triu(too_close, k=1))


def optimize_placements(events: Sequence[Event],
                        constraints: RescheduleConstraints,
                        all_events: Sequence[Event],
                        now: datetime,
                        settings: Optional[EngineSettings] = None) -> Optional[Dict[int, TimeSlot]]:
    """
    Run CP-SAT to pick one slot per event jointly.

    Chosen windows (plus buffer) never overlap each other and the summed
    slot score is maximised. Returns {event index: slot} for the events that
    have candidates, or None when the model has no solution.
    """
    settings = settings or default_settings
    cand, slots_by_event = build_candidates(events, constraints, all_events, now, settings)
    if cand.empty:
        return {}

    model = cp_model.CpModel()
    x: Dict[int, cp_model.IntVar] = {}  # candidate row -> Bool
    for row in cand.itertuples():
        x[row.Index] = model.NewBoolVar(f"x_t{row.event_idx}_k{row.slot_idx}")

    # Each event with candidates is placed exactly once
    for _, group in cand.groupby("event_idx"):
        model.Add(sum(x[i] for i in group.index) == 1)

    # Placed events keep apart, buffer included
    buffer = constraints.buffer_time or timedelta(0)
    for i, j in clashing_pairs(cand, buffer).tolist():
        model.AddBoolOr([x[i].Not(), x[j].Not()])

    # Objective: maximize total score (CP-SAT needs integer weights)
    model.Maximize(sum(int(round(row.score * 100)) * x[row.Index] for row in cand.itertuples()))

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = settings.solver_time_limit
    status = solver.Solve(model)
    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        logger.info("Joint placement found no solution (status {})", solver.StatusName(status))
        return None

    chosen: Dict[int, TimeSlot] = {}
    for row in cand.itertuples():
        if solver.Value(x[row.Index]) == 1:
            t_idx, k = int(row.event_idx), int(row.slot_idx)
            chosen[t_idx] = slots_by_event[t_idx][k]
    logger.debug("Joint placement: {} of {} event(s) placed", len(chosen), len(events))
    return chosen
