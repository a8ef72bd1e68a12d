#!/usr/bin/env python3
"""
Session history: parsed, date-ordered view over the workoutSessions collection.

Raw records are owned by the collection store and are never modified here.
A record that cannot be read is skipped with a warning, and exercise entries
whose exerciseId is not configured are left out of the parsed view, so one
bad entry never blocks the next-session computation.

Persisted shape (camelCase, as stored by the browser app):

    {
      "id": "wor_lq3k2a_x8f1k2",
      "date": "2025-03-04T18:22:00Z",
      "templateId": "upper_a",
      "restDay": false,
      "exercises": [
        {"exerciseId": "upper_a_incline_press",
         "variantName": "Smith Incline Press",
         "setsPerformed": [{"weight": 40, "reps": 10}],
         "skipped": false}
      ]
    }
"""

import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

sys.path.insert(0, str(Path(__file__).parent))
from errors import HistoryInconsistency
from logger import get_logger

logger = get_logger()


def parse_record_date(value: Any) -> datetime:
    """Parse YYYY-MM-DD or an ISO-8601 date-time; aware values become naive UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Invalid date: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@dataclass(frozen=True)
class SetPerformance:
    weight: float
    reps: int

    @classmethod
    def from_dict(cls, data: Any) -> 'SetPerformance':
        if not isinstance(data, dict):
            raise ValueError("set must be a mapping")
        weight = data.get('weight', 0)
        reps = data.get('reps')
        if weight is None:
            weight = 0
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight < 0:
            raise ValueError(f"invalid weight {weight!r}")
        if isinstance(reps, bool) or not isinstance(reps, int) or reps < 0:
            raise ValueError(f"invalid reps {reps!r}")
        return cls(weight=weight, reps=reps)

    def to_dict(self) -> Dict[str, Any]:
        return {'weight': self.weight, 'reps': self.reps}


@dataclass(frozen=True)
class ExercisePerformance:
    exercise_id: str
    variant_name: str
    sets: Tuple[SetPerformance, ...]
    skipped: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> 'ExercisePerformance':
        if not isinstance(data, dict):
            raise ValueError("exercise entry must be a mapping")
        exercise_id = data.get('exerciseId')
        if not isinstance(exercise_id, str) or not exercise_id:
            raise ValueError("exercise entry is missing exerciseId")
        raw_sets = data.get('setsPerformed') or []
        if not isinstance(raw_sets, list):
            raise ValueError(f"setsPerformed for {exercise_id} must be a list")
        return cls(
            exercise_id=exercise_id,
            variant_name=str(data.get('variantName') or ''),
            sets=tuple(SetPerformance.from_dict(s) for s in raw_sets),
            skipped=bool(data.get('skipped', False)),
        )

    @property
    def top_weight(self) -> Optional[float]:
        """Heaviest weight lifted in this entry."""
        if not self.sets:
            return None
        return max(s.weight for s in self.sets)

    @property
    def working_sets(self) -> Tuple[SetPerformance, ...]:
        """Sets performed at the top weight."""
        top = self.top_weight
        return tuple(s for s in self.sets if s.weight == top)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exerciseId': self.exercise_id,
            'variantName': self.variant_name,
            'setsPerformed': [s.to_dict() for s in self.sets],
            'skipped': self.skipped,
        }


@dataclass(frozen=True)
class SessionRecord:
    id: Optional[str]
    date: datetime
    template_id: Optional[str]
    rest_day: bool
    exercises: Tuple[ExercisePerformance, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> 'SessionRecord':
        """Parse a stored record. Raises HistoryInconsistency if it is unusable."""
        if not isinstance(data, dict):
            raise HistoryInconsistency("Session record is not a mapping")

        record_id = data.get('id')
        try:
            date = parse_record_date(data.get('date'))
            rest_day = data.get('restDay', False)
            if not isinstance(rest_day, bool):
                raise ValueError(f"restDay must be true or false, got {rest_day!r}")

            template_id = data.get('templateId')
            if not rest_day and (not isinstance(template_id, str) or not template_id):
                raise ValueError("record is neither a rest day nor a templated session")

            raw_exercises = data.get('exercises') or []
            if not isinstance(raw_exercises, list):
                raise ValueError("exercises must be a list")
            exercises = tuple(ExercisePerformance.from_dict(e) for e in raw_exercises)
        except ValueError as e:
            raise HistoryInconsistency(f"Malformed session record: {e}", record_id) from e

        return cls(
            id=record_id,
            date=date,
            template_id=template_id if not rest_day else (template_id or None),
            rest_day=rest_day,
            exercises=exercises,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'date': self.date.isoformat(),
            'templateId': self.template_id,
            'restDay': self.rest_day,
            'exercises': [e.to_dict() for e in self.exercises],
        }
        if self.id:
            data['id'] = self.id
        return data

    def performance(self, exercise_id: str) -> Optional[ExercisePerformance]:
        for entry in self.exercises:
            if entry.exercise_id == exercise_id:
                return entry
        return None


def parse_history(records: Iterable[Any], workout_config=None) -> List[SessionRecord]:
    """
    Parse raw records into a date-ordered history.

    Malformed records are skipped and logged. When a configuration is given,
    exercise entries for unknown exerciseIds are dropped from the parsed view
    (the stored record is untouched).
    """
    parsed: List[SessionRecord] = []

    for raw in records:
        try:
            record = SessionRecord.from_dict(raw)
        except HistoryInconsistency as e:
            logger.warning("Skipping unreadable session record", reason=str(e))
            continue

        if workout_config is not None and record.exercises:
            record = _drop_orphans(record, workout_config)

        parsed.append(record)

    # sorted() is stable, so same-date records keep their stored order
    return sorted(parsed, key=lambda r: r.date)


def _drop_orphans(record: SessionRecord, workout_config) -> SessionRecord:
    kept = []
    for entry in record.exercises:
        if workout_config.has_exercise(entry.exercise_id):
            kept.append(entry)
            continue
        orphan = HistoryInconsistency(
            f"exerciseId '{entry.exercise_id}' is not in any configured template", record.id
        )
        logger.warning("Ignoring orphaned exercise entry for progression", reason=str(orphan))

    if len(kept) == len(record.exercises):
        return record
    return SessionRecord(
        id=record.id,
        date=record.date,
        template_id=record.template_id,
        rest_day=record.rest_day,
        exercises=tuple(kept),
    )


def performance_log(history: Iterable[SessionRecord],
                    exercise_id: str) -> List[Tuple[SessionRecord, ExercisePerformance]]:
    """(record, entry) pairs with a non-skipped, non-empty entry for exercise_id, oldest first."""
    found = []
    for record in history:
        if record.rest_day:
            continue
        entry = record.performance(exercise_id)
        if entry is not None and not entry.skipped and entry.sets:
            found.append((record, entry))
    return found
