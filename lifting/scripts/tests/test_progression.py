#!/usr/bin/env python3
"""Tests for progression.py.

Covers:
- Double progression (increase weight / add reps)
- Repeat and deload after failed sessions
- Purity of suggest_target
- Estimated 1RM, best set and exercise summaries

Run with: pytest lifting/scripts/tests/test_progression.py -v
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from constants import (
    ACTION_ADD_REPS,
    ACTION_DELOAD,
    ACTION_INCREASE_WEIGHT,
    ACTION_REPEAT,
    ACTION_START,
    DEFAULT_WORKOUT_CONFIG_PATH,
)
from history import SetPerformance, parse_history
from progression import best_set, estimate_1rm, exercise_summary, suggest_target
from workout_config import load_workout_config


INCLINE = 'upper_a_incline_press'


@pytest.fixture(scope='module')
def workout_config():
    return load_workout_config(DEFAULT_WORKOUT_CONFIG_PATH)


@pytest.fixture
def incline_slot(workout_config):
    return workout_config.slot(INCLINE)


def _history(*sessions, exercise_id=INCLINE, variant='Smith Incline Press'):
    """sessions: lists of (weight, reps) tuples, one session per day."""
    return parse_history([
        {
            'id': f'wor_{day}',
            'date': f'2025-03-{day:02d}',
            'templateId': 'upper_a',
            'restDay': False,
            'exercises': [{
                'exerciseId': exercise_id,
                'variantName': variant,
                'setsPerformed': [{'weight': w, 'reps': r} for w, r in sets],
            }],
        }
        for day, sets in enumerate(sessions, start=1)
    ])


# =============================================================================
# SUGGEST TARGET
# =============================================================================

class TestSuggestTarget:

    def test_no_history(self, incline_slot):
        target = suggest_target(INCLINE, incline_slot, [])
        assert target.suggested_weight is None
        assert target.suggested_reps == (6, 10)
        assert target.action == ACTION_START

    def test_rep_max_reached_adds_weight(self, incline_slot):
        target = suggest_target(INCLINE, incline_slot, _history([(40, 10)]), weight_increment=2.5)
        assert target.suggested_weight == 42.5
        assert target.suggested_reps == (6, 10)
        assert target.action == ACTION_INCREASE_WEIGHT

    def test_every_working_set_must_reach_rep_max(self, incline_slot):
        target = suggest_target(INCLINE, incline_slot, _history([(40, 10), (40, 10), (40, 9)]))
        assert target.suggested_weight == 40
        assert target.action == ACTION_ADD_REPS

    def test_warmup_sets_ignored(self, incline_slot):
        history = _history([(20, 5), (30, 5), (40, 10), (40, 10)])
        target = suggest_target(INCLINE, incline_slot, history, weight_increment=2.5)
        assert target.suggested_weight == 42.5

    def test_within_range_adds_reps(self, incline_slot):
        target = suggest_target(INCLINE, incline_slot, _history([(40, 8), (40, 7)]))
        assert target.suggested_weight == 40
        assert target.suggested_reps == (8, 10)
        assert target.action == ACTION_ADD_REPS

    def test_add_reps_capped_at_rep_max(self, incline_slot):
        target = suggest_target(INCLINE, incline_slot, _history([(40, 10), (40, 9)]))
        assert target.suggested_reps == (10, 10)

    def test_single_failed_session_repeats(self, incline_slot):
        target = suggest_target(INCLINE, incline_slot, _history([(40, 7), (40, 5)]))
        assert target.suggested_weight == 40
        assert target.suggested_reps == (6, 10)
        assert target.action == ACTION_REPEAT

    def test_two_failed_sessions_deload(self, incline_slot):
        history = _history([(40, 5), (40, 5)], [(40, 4), (40, 4)])
        target = suggest_target(INCLINE, incline_slot, history, deload_fraction=0.10)
        assert target.suggested_weight == 36
        assert target.suggested_reps == (6, 6)
        assert target.action == ACTION_DELOAD

    def test_failed_sessions_at_different_weights_repeat(self, incline_slot):
        history = _history([(42.5, 5)], [(40, 5)])
        target = suggest_target(INCLINE, incline_slot, history)
        assert target.action == ACTION_REPEAT
        assert target.suggested_weight == 40

    def test_success_between_failures_resets_deload(self, incline_slot):
        history = _history([(40, 5)], [(40, 8)], [(40, 5)])
        assert suggest_target(INCLINE, incline_slot, history).action == ACTION_REPEAT

    def test_configurable_deload_trigger(self, incline_slot):
        history = _history([(40, 5)], [(40, 5)])
        target = suggest_target(INCLINE, incline_slot, history, failed_sessions_before_deload=3)
        assert target.action == ACTION_REPEAT

        history = _history([(40, 5)], [(40, 5)], [(40, 5)])
        target = suggest_target(INCLINE, incline_slot, history, failed_sessions_before_deload=3)
        assert target.action == ACTION_DELOAD

    def test_only_latest_session_drives_target(self, incline_slot):
        history = _history([(40, 10)], [(42.5, 7)])
        target = suggest_target(INCLINE, incline_slot, history)
        assert target.suggested_weight == 42.5
        assert target.suggested_reps == (8, 10)

    def test_other_slots_ignored(self, workout_config, incline_slot):
        history = _history([(100, 10)], exercise_id='lower_a_knee_dominant')
        target = suggest_target(INCLINE, incline_slot, history)
        assert target.action == ACTION_START

    def test_pattern_increment(self, workout_config):
        slot = workout_config.slot('upper_a_lateral_raise')
        history = _history([(8, 20)] * 5, exercise_id=slot.exercise_id)
        target = suggest_target(slot.exercise_id, slot, history,
                                weight_increment=workout_config.increment_for(slot))
        assert target.suggested_weight == 9

    def test_idempotent(self, incline_slot):
        history = _history([(40, 5)], [(40, 5)])
        first = suggest_target(INCLINE, incline_slot, history)
        second = suggest_target(INCLINE, incline_slot, history)
        assert first == second
        assert len(history) == 2

    def test_to_dict(self, incline_slot):
        data = suggest_target(INCLINE, incline_slot, _history([(40, 10)])).to_dict()
        assert data == {
            'suggestedWeight': 42.5,
            'suggestedReps': [6, 10],
            'rationale': data['rationale'],
            'action': ACTION_INCREASE_WEIGHT,
        }
        assert '42.5' in data['rationale'] or '2.5' in data['rationale']


# =============================================================================
# SUMMARIES
# =============================================================================

class TestSummaries:

    def test_epley(self):
        assert estimate_1rm(100, 30) == 200
        assert estimate_1rm(100, 0) == 100

    def test_best_set_by_estimated_1rm(self):
        history = _history([(40, 10)], [(45, 5)], variant='Smith Incline Press')
        best, variant = best_set(history, INCLINE)
        assert best == SetPerformance(40, 10)
        assert variant == 'Smith Incline Press'

    def test_best_set_none_without_history(self):
        assert best_set([], INCLINE) is None

    def test_exercise_summary(self):
        history = _history([(40, 10)], [(42.5, 8), (42.5, 6)])
        summary = exercise_summary(history, INCLINE)

        assert summary.last_date == datetime(2025, 3, 2)
        assert summary.last_set == SetPerformance(42.5, 6)
        assert summary.sessions_logged == 2

        data = summary.to_dict()
        assert data['lastSets'] == [{'weight': 42.5, 'reps': 8}, {'weight': 42.5, 'reps': 6}]
        assert data['bestSet'] == {'weight': 42.5, 'reps': 8}
        assert data['bestEstimated1RM'] == pytest.approx(53.8, abs=0.1)

    def test_empty_summary(self):
        data = exercise_summary([], INCLINE).to_dict()
        assert data['lastDate'] is None
        assert data['lastSet'] is None
        assert data['sessionsLogged'] == 0
