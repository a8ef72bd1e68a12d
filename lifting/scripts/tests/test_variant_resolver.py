#!/usr/bin/env python3
"""Tests for variant_resolver.py.

Run with: pytest lifting/scripts/tests/test_variant_resolver.py -v
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from constants import DEFAULT_WORKOUT_CONFIG_PATH, ENVIRONMENT_TAGS
from errors import ConfigurationError
from history import SetPerformance
from variant_resolver import build_performance, eligible_variants
from workout_config import Variant, load_workout_config


@pytest.fixture(scope='module')
def workout_config():
    return load_workout_config(DEFAULT_WORKOUT_CONFIG_PATH)


class TestEligibleVariants:

    def test_home_lateral_raise(self, workout_config):
        variants = eligible_variants(workout_config, 'lateral_raise', 'home')
        assert variants == [Variant(name='Band Lateral Raise', tags=('home', 'apartment'))]

    def test_no_tag_returns_all(self, workout_config):
        variants = eligible_variants(workout_config, 'lateral_raise')
        assert len(variants) == 4

    @pytest.mark.parametrize('tag', ENVIRONMENT_TAGS)
    def test_every_result_carries_tag(self, workout_config, tag):
        for pattern_id in workout_config.patterns:
            for variant in eligible_variants(workout_config, pattern_id, tag):
                assert tag in variant.tags

    def test_config_order_preserved(self, workout_config):
        names = [v.name for v in eligible_variants(workout_config, 'incline_press', 'commercial')]
        assert names == ['DB Incline Press', 'Machine Incline Press']

    def test_no_match_is_empty(self, workout_config):
        assert eligible_variants(workout_config, 'incline_press', 'home') == []

    def test_unknown_pattern(self, workout_config):
        with pytest.raises(ConfigurationError):
            eligible_variants(workout_config, 'bench_press', 'home')


class TestBuildPerformance:

    def test_keyed_by_slot_exercise_id(self, workout_config):
        slot = workout_config.slot('upper_a_lateral_raise')
        entry = build_performance(slot, 'Band Lateral Raise', [SetPerformance(0, 20)], workout_config=workout_config)
        assert entry.exercise_id == 'upper_a_lateral_raise'
        assert entry.variant_name == 'Band Lateral Raise'

    def test_custom_variant_allowed(self, workout_config):
        slot = workout_config.slot('upper_a_lateral_raise')
        entry = build_performance(slot, '  Kettlebell Lateral Raise ', [SetPerformance(8, 15)],
                                  workout_config=workout_config)
        assert entry.variant_name == 'Kettlebell Lateral Raise'
        assert entry.exercise_id == 'upper_a_lateral_raise'

    def test_blank_variant_rejected(self, workout_config):
        slot = workout_config.slot('upper_a_lateral_raise')
        with pytest.raises(ValueError):
            build_performance(slot, '  ', [SetPerformance(8, 15)])

    def test_skipped_slot_needs_no_variant(self, workout_config):
        slot = workout_config.slot('upper_a_biceps')
        entry = build_performance(slot, '', [], skipped=True)
        assert entry.skipped is True
        assert entry.to_dict()['setsPerformed'] == []
