#!/usr/bin/env python3
"""
In-session progress: logged sets per slot and the next slot to work on.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

sys.path.insert(0, str(Path(__file__).parent))
from history import ExercisePerformance
from workout_config import SessionTemplate


@dataclass(frozen=True)
class SlotProgress:
    exercise_id: str
    pattern_id: str
    logged_sets: int
    target_sets: int

    @property
    def complete(self) -> bool:
        return self.logged_sets >= self.target_sets

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exerciseId': self.exercise_id,
            'patternId': self.pattern_id,
            'loggedSets': self.logged_sets,
            'targetSets': self.target_sets,
            'complete': self.complete,
        }


def slot_progress(template: SessionTemplate, exercises: Iterable[ExercisePerformance]) -> List[SlotProgress]:
    """Logged vs. target sets for each slot, in template order."""
    logged: Dict[str, int] = {}
    for entry in exercises:
        if entry.skipped:
            continue
        logged[entry.exercise_id] = logged.get(entry.exercise_id, 0) + len(entry.sets)

    return [
        SlotProgress(
            exercise_id=slot.exercise_id,
            pattern_id=slot.pattern_id,
            logged_sets=logged.get(slot.exercise_id, 0),
            target_sets=slot.sets,
        )
        for slot in template.slots
    ]


def next_incomplete_slot(template: SessionTemplate, exercises: Iterable[ExercisePerformance],
                         current_exercise_id: Optional[str] = None) -> Optional[SlotProgress]:
    """
    Next slot with sets left to log.

    Looks forward from the current slot first, then wraps to the start.
    Returns None once every slot is complete.
    """
    progress = slot_progress(template, exercises)
    ids = [p.exercise_id for p in progress]
    start = ids.index(current_exercise_id) if current_exercise_id in ids else -1

    ordered = progress[start + 1:] + progress[:start + 1]
    for item in ordered:
        if not item.complete:
            return item
    return None
