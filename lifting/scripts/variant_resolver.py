#!/usr/bin/env python3
"""
Variant resolver: which exercises can fill a slot in a given environment.

Picking a variant never changes the slot's exerciseId. The chosen name is
stored in the performance entry's variantName so history stays on one key.
"""

import sys
from pathlib import Path
from typing import Iterable, List, Optional

sys.path.insert(0, str(Path(__file__).parent))
from history import ExercisePerformance, SetPerformance
from logger import get_logger
from workout_config import Slot, Variant, WorkoutConfig

logger = get_logger()


def eligible_variants(workout_config: WorkoutConfig, pattern_id: str,
                      environment_tag: Optional[str] = None) -> List[Variant]:
    """
    Variants of a pattern available in an environment.

    With no environment tag, every variant of the pattern is returned.
    Raises ConfigurationError for an unknown pattern.
    """
    variants = workout_config.variants_for(pattern_id)
    if not environment_tag:
        return list(variants)
    return [v for v in variants if v.has_tag(environment_tag)]


def build_performance(slot: Slot, variant_name: str, sets: Iterable[SetPerformance],
                      skipped: bool = False, workout_config: Optional[WorkoutConfig] = None) -> ExercisePerformance:
    """
    Performance entry for a slot, keyed by the slot's exerciseId.

    Names outside the configured variant list are accepted as custom variants.
    """
    name = (variant_name or '').strip()
    if not name and not skipped:
        raise ValueError(f"A variant name is required for {slot.exercise_id}")

    if name and workout_config is not None:
        known = {v.name for v in workout_config.variants_for(slot.pattern_id)}
        if name not in known:
            logger.debug("Custom variant recorded", exercise_id=slot.exercise_id, variant=name)

    return ExercisePerformance(
        exercise_id=slot.exercise_id,
        variant_name=name,
        sets=tuple(sets),
        skipped=skipped,
    )
