#!/usr/bin/env python3
"""
Progression calculator: the next weight/rep target for a slot.

Double progression, evaluated on the heaviest working set of the most recent
session for the slot's exerciseId:

1. No history            -> rep range at no weight (user picks a start)
2. All working sets hit repMax          -> same range, weight + increment
3. Working sets between repMin and repMax -> same weight, add reps
4. Working sets below repMin for N consecutive sessions at the same
   weight (default 2)    -> deload by a fraction (default 10%), reps reset
   to repMin

A single session below repMin that does not trigger a deload repeats the
same weight. Everything here is a pure function of its arguments.
"""

import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

sys.path.insert(0, str(Path(__file__).parent))
from constants import (
    ACTION_ADD_REPS,
    ACTION_DELOAD,
    ACTION_INCREASE_WEIGHT,
    ACTION_REPEAT,
    ACTION_START,
    DEFAULT_DELOAD_FRACTION,
    DEFAULT_FAILED_SESSIONS_BEFORE_DELOAD,
    DEFAULT_WEIGHT_INCREMENT,
    EPLEY_DIVISOR,
)
from history import ExercisePerformance, SessionRecord, SetPerformance, performance_log
from logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class ProgressionTarget:
    suggested_weight: Optional[float]
    suggested_reps: Tuple[int, int]
    rationale: str
    action: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'suggestedWeight': self.suggested_weight,
            'suggestedReps': list(self.suggested_reps),
            'rationale': self.rationale,
            'action': self.action,
        }


def _fmt(weight: float) -> str:
    return f"{weight:g}"


def _has_failed_set(entry: ExercisePerformance, rep_min: int) -> bool:
    return any(s.reps < rep_min for s in entry.working_sets)


def deload_due(performances: Sequence[ExercisePerformance], rep_min: int, sessions: int) -> bool:
    """True if the last `sessions` entries all failed repMin at one unchanged top weight."""
    if len(performances) < sessions:
        return False
    recent = performances[-sessions:]
    weight = recent[-1].top_weight
    return all(p.top_weight == weight and _has_failed_set(p, rep_min) for p in recent)


def suggest_target(exercise_id: str, slot, history: Sequence[SessionRecord],
                   weight_increment: float = DEFAULT_WEIGHT_INCREMENT,
                   deload_fraction: float = DEFAULT_DELOAD_FRACTION,
                   failed_sessions_before_deload: int = DEFAULT_FAILED_SESSIONS_BEFORE_DELOAD) -> ProgressionTarget:
    """
    Compute the next target for one slot.

    Args:
        exercise_id: Stable slot identity used to look up history
        slot: Slot definition (repMin/repMax)
        history: Date-ordered session records
        weight_increment: Load added when the rep ceiling is cleared
        deload_fraction: Share of load removed on deload
        failed_sessions_before_deload: Consecutive failed sessions that trigger a deload
    """
    rep_min, rep_max = slot.rep_min, slot.rep_max
    performances = [entry for _, entry in performance_log(history, exercise_id)]

    if not performances:
        return ProgressionTarget(
            suggested_weight=None,
            suggested_reps=(rep_min, rep_max),
            rationale=f"No history for this slot yet. Pick a starting weight you can lift for {rep_min}-{rep_max} reps.",
            action=ACTION_START,
        )

    last = performances[-1]
    top = last.top_weight
    working = last.working_sets

    if deload_due(performances, rep_min, failed_sessions_before_deload):
        weight = round(top * (1 - deload_fraction), 2)
        logger.info(
            "Deload suggested",
            exercise_id=exercise_id,
            from_weight=top,
            to_weight=weight,
        )
        return ProgressionTarget(
            suggested_weight=weight,
            suggested_reps=(rep_min, rep_min),
            rationale=(
                f"Missed {rep_min} reps at {_fmt(top)} for {failed_sessions_before_deload} sessions in a row. "
                f"Deload {int(round(deload_fraction * 100))}% to {_fmt(weight)} and rebuild from {rep_min} reps."
            ),
            action=ACTION_DELOAD,
        )

    if all(s.reps >= rep_max for s in working):
        weight = round(top + weight_increment, 2)
        return ProgressionTarget(
            suggested_weight=weight,
            suggested_reps=(rep_min, rep_max),
            rationale=(
                f"All working sets reached {rep_max} reps at {_fmt(top)}. "
                f"Add {_fmt(weight_increment)} and work back up from {rep_min} reps."
            ),
            action=ACTION_INCREASE_WEIGHT,
        )

    if _has_failed_set(last, rep_min):
        return ProgressionTarget(
            suggested_weight=top,
            suggested_reps=(rep_min, rep_max),
            rationale=f"At least one set fell short of {rep_min} reps at {_fmt(top)}. Repeat the weight.",
            action=ACTION_REPEAT,
        )

    lowest = min(s.reps for s in working)
    return ProgressionTarget(
        suggested_weight=top,
        suggested_reps=(min(lowest + 1, rep_max), rep_max),
        rationale=f"Stay at {_fmt(top)} and add reps toward {rep_max} (lowest set last time: {lowest}).",
        action=ACTION_ADD_REPS,
    )


# =============================================================================
# SUMMARIES
# =============================================================================

def estimate_1rm(weight: float, reps: int) -> float:
    """Epley estimated one-rep max."""
    return weight * (1 + reps / EPLEY_DIVISOR)


@dataclass(frozen=True)
class ExerciseSummary:
    exercise_id: str
    last_date: Optional[datetime]
    last_variant: str
    last_sets: Tuple[SetPerformance, ...]
    best_set: Optional[SetPerformance]
    best_variant: str
    sessions_logged: int

    @property
    def last_set(self) -> Optional[SetPerformance]:
        return self.last_sets[-1] if self.last_sets else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exerciseId': self.exercise_id,
            'lastDate': self.last_date.isoformat() if self.last_date else None,
            'lastVariant': self.last_variant,
            'lastSets': [s.to_dict() for s in self.last_sets],
            'lastSet': self.last_set.to_dict() if self.last_set else None,
            'bestSet': self.best_set.to_dict() if self.best_set else None,
            'bestVariant': self.best_variant,
            'bestEstimated1RM': (
                round(estimate_1rm(self.best_set.weight, self.best_set.reps), 1)
                if self.best_set else None
            ),
            'sessionsLogged': self.sessions_logged,
        }


def best_set(history: Sequence[SessionRecord], exercise_id: str) -> Optional[Tuple[SetPerformance, str]]:
    """Best set (by estimated 1RM) ever logged for exercise_id, with its variant name."""
    best: Optional[Tuple[SetPerformance, str]] = None
    best_score = -1.0
    for _, entry in performance_log(history, exercise_id):
        for s in entry.sets:
            score = estimate_1rm(s.weight, s.reps)
            if score > best_score:
                best, best_score = (s, entry.variant_name), score
    return best


def exercise_summary(history: Sequence[SessionRecord], exercise_id: str) -> ExerciseSummary:
    """Last session's sets and the all-time best set for one slot."""
    log = performance_log(history, exercise_id)
    best = best_set(history, exercise_id)

    if not log:
        return ExerciseSummary(exercise_id, None, '', (), None, '', 0)

    last_record, last_entry = log[-1]
    return ExerciseSummary(
        exercise_id=exercise_id,
        last_date=last_record.date,
        last_variant=last_entry.variant_name,
        last_sets=last_entry.sets,
        best_set=best[0] if best else None,
        best_variant=best[1] if best else '',
        sessions_logged=len(log),
    )
