#!/usr/bin/env python3
"""
Workout configuration: patterns, variants, session templates and the cycle.

The configuration file keeps the exact field names of the browser app's
WORKOUT_CONFIG object so exported data stays compatible:

    settings:
      restRecommendAfterConsecutiveSessions: 4
      offerUpperC: true
    cycle: [upper_a, lower_a, upper_b, lower_b]
    patterns: [{id: incline_press, name: Incline Press}, ...]
    variantsByPattern: {incline_press: [{name: ..., tags: [...]}, ...]}
    templates: {upper_a: {name: ..., optional: false, items: [...]}}

The file is read once, validated as a whole, and turned into frozen values.
Every problem found is reported in a single ConfigurationError so a broken
file can be fixed in one pass.

Usage:
    python3 workout_config.py [path/to/workout_config.yaml]
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, NewType, Optional, Tuple

import yaml

sys.path.insert(0, str(Path(__file__).parent))
from constants import (
    DEFAULT_BONUS_ANCHOR,
    DEFAULT_BONUS_TEMPLATE,
    DEFAULT_DELOAD_FRACTION,
    DEFAULT_FAILED_SESSIONS_BEFORE_DELOAD,
    DEFAULT_REST_THRESHOLD,
    DEFAULT_WEIGHT_INCREMENT,
)
from errors import ConfigurationError, InvalidTarget
from logger import get_logger

logger = get_logger()

# Stable slot identity. History is keyed on this, never on the variant name.
ExerciseId = NewType('ExerciseId', str)


@dataclass(frozen=True)
class Pattern:
    """A movement category, e.g. incline_press."""
    id: str
    name: str


@dataclass(frozen=True)
class Variant:
    """A concrete exercise for a pattern, tagged by where it can be done."""
    name: str
    tags: Tuple[str, ...] = ()

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'tags': list(self.tags)}


@dataclass(frozen=True)
class Slot:
    """One exercise position within a session template."""
    exercise_id: ExerciseId
    pattern_id: str
    sets: int
    rep_min: int
    rep_max: int
    core: bool = False
    weight_increment: Optional[float] = None
    template_id: str = ''

    @property
    def rep_range(self) -> Tuple[int, int]:
        return (self.rep_min, self.rep_max)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'exerciseId': self.exercise_id,
            'patternId': self.pattern_id,
            'sets': self.sets,
            'repMin': self.rep_min,
            'repMax': self.rep_max,
            'core': self.core,
        }
        if self.weight_increment is not None:
            data['weightIncrement'] = self.weight_increment
        return data


@dataclass(frozen=True)
class SessionTemplate:
    """A named, ordered collection of slots."""
    id: str
    name: str
    slots: Tuple[Slot, ...]
    optional: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'optional': self.optional,
            'items': [slot.to_dict() for slot in self.slots],
        }


@dataclass(frozen=True)
class Settings:
    """Engine settings. Field names in the file are camelCase."""
    rest_recommend_after_consecutive_sessions: int = DEFAULT_REST_THRESHOLD
    offer_upper_c: bool = True
    bonus_anchor: str = DEFAULT_BONUS_ANCHOR
    bonus_template: str = DEFAULT_BONUS_TEMPLATE
    weight_increment: float = DEFAULT_WEIGHT_INCREMENT
    weight_increment_by_pattern: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    deload_fraction: float = DEFAULT_DELOAD_FRACTION
    deload_after_failed_sessions: int = DEFAULT_FAILED_SESSIONS_BEFORE_DELOAD


@dataclass(frozen=True)
class WorkoutConfig:
    """Validated, read-only workout configuration."""
    settings: Settings
    cycle: Tuple[str, ...]
    patterns: Mapping[str, Pattern]
    variants_by_pattern: Mapping[str, Tuple[Variant, ...]]
    templates: Mapping[str, SessionTemplate]
    slots: Mapping[ExerciseId, Slot] = field(repr=False)

    def template(self, template_id: str) -> SessionTemplate:
        try:
            return self.templates[template_id]
        except KeyError:
            raise ConfigurationError(f"Unknown template '{template_id}'") from None

    def slot(self, exercise_id: str) -> Slot:
        try:
            return self.slots[exercise_id]
        except KeyError:
            raise ConfigurationError(f"Unknown exerciseId '{exercise_id}'") from None

    def pattern(self, pattern_id: str) -> Pattern:
        try:
            return self.patterns[pattern_id]
        except KeyError:
            raise ConfigurationError(f"Unknown pattern '{pattern_id}'") from None

    def variants_for(self, pattern_id: str) -> Tuple[Variant, ...]:
        """All configured variants for a pattern (empty if none are listed)."""
        self.pattern(pattern_id)
        return self.variants_by_pattern.get(pattern_id, ())

    def has_exercise(self, exercise_id: str) -> bool:
        return exercise_id in self.slots

    def increment_for(self, slot: Slot) -> float:
        """Weight increment for a slot: slot override, then pattern, then global."""
        if slot.weight_increment is not None:
            return slot.weight_increment
        by_pattern = self.settings.weight_increment_by_pattern
        if slot.pattern_id in by_pattern:
            return by_pattern[slot.pattern_id]
        return self.settings.weight_increment

    def bonus_policy(self):
        """BonusPolicy built from settings (disabled when offerUpperC is false)."""
        from cycle_scheduler import BonusPolicy
        return BonusPolicy.from_settings(self.settings)


# =============================================================================
# PARSING & VALIDATION
# =============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class _ConfigParser:
    """Builds a WorkoutConfig from a raw mapping, collecting every problem."""

    def __init__(self, raw: Dict):
        self.raw = raw
        self.problems: List[str] = []
        self.target_problems: List[str] = []

    def problem(self, msg: str):
        self.problems.append(msg)

    def parse(self) -> WorkoutConfig:
        if not isinstance(self.raw, dict):
            raise ConfigurationError("Workout configuration must be a mapping")

        settings = self._parse_settings(self.raw.get('settings', {}))
        patterns = self._parse_patterns(self.raw.get('patterns'))
        variants = self._parse_variants(self.raw.get('variantsByPattern', {}), patterns)
        templates, slots = self._parse_templates(self.raw.get('templates'), patterns)
        cycle = self._parse_cycle(self.raw.get('cycle'), templates)
        self._check_bonus(settings, cycle, templates)
        self._check_increment_patterns(settings, patterns)

        if self.problems:
            raise ConfigurationError("Invalid workout configuration", self.problems)
        if self.target_problems:
            raise InvalidTarget("Invalid slot targets", self.target_problems)

        return WorkoutConfig(
            settings=settings,
            cycle=tuple(cycle),
            patterns=MappingProxyType(patterns),
            variants_by_pattern=MappingProxyType(variants),
            templates=MappingProxyType(templates),
            slots=MappingProxyType(slots),
        )

    def _parse_settings(self, raw: Any) -> Settings:
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            self.problem("settings must be a mapping")
            return Settings()

        defaults = Settings()

        threshold = raw.get('restRecommendAfterConsecutiveSessions',
                            defaults.rest_recommend_after_consecutive_sessions)
        if not _is_count(threshold) or threshold < 1:
            self.problem(f"settings.restRecommendAfterConsecutiveSessions must be a positive integer, got {threshold!r}")
            threshold = defaults.rest_recommend_after_consecutive_sessions

        offer = raw.get('offerUpperC', defaults.offer_upper_c)
        if not isinstance(offer, bool):
            self.problem(f"settings.offerUpperC must be true or false, got {offer!r}")
            offer = defaults.offer_upper_c

        anchor = raw.get('bonusAnchor', defaults.bonus_anchor)
        bonus_template = raw.get('bonusTemplate', defaults.bonus_template)
        for key, value in (('bonusAnchor', anchor), ('bonusTemplate', bonus_template)):
            if not isinstance(value, str) or not value:
                self.problem(f"settings.{key} must be a template id")

        increment = raw.get('weightIncrement', defaults.weight_increment)
        if not _is_number(increment) or increment <= 0:
            self.problem(f"settings.weightIncrement must be a positive number, got {increment!r}")
            increment = defaults.weight_increment

        by_pattern = raw.get('weightIncrementByPattern') or {}
        clean_by_pattern = {}
        if not isinstance(by_pattern, dict):
            self.problem("settings.weightIncrementByPattern must be a mapping")
        else:
            for pattern_id, value in by_pattern.items():
                if not _is_number(value) or value <= 0:
                    self.problem(f"settings.weightIncrementByPattern.{pattern_id} must be a positive number")
                else:
                    clean_by_pattern[pattern_id] = float(value)

        fraction = raw.get('deloadFraction', defaults.deload_fraction)
        if not _is_number(fraction) or not 0 < fraction < 1:
            self.problem(f"settings.deloadFraction must be between 0 and 1, got {fraction!r}")
            fraction = defaults.deload_fraction

        failed = raw.get('deloadAfterFailedSessions', defaults.deload_after_failed_sessions)
        if not _is_count(failed) or failed < 1:
            self.problem(f"settings.deloadAfterFailedSessions must be a positive integer, got {failed!r}")
            failed = defaults.deload_after_failed_sessions

        return Settings(
            rest_recommend_after_consecutive_sessions=threshold,
            offer_upper_c=offer,
            bonus_anchor=anchor,
            bonus_template=bonus_template,
            weight_increment=float(increment),
            weight_increment_by_pattern=MappingProxyType(clean_by_pattern),
            deload_fraction=float(fraction),
            deload_after_failed_sessions=failed,
        )

    def _parse_patterns(self, raw: Any) -> Dict[str, Pattern]:
        patterns: Dict[str, Pattern] = {}
        if not isinstance(raw, list) or not raw:
            self.problem("patterns must be a non-empty list")
            return patterns

        for idx, item in enumerate(raw):
            if not isinstance(item, dict):
                self.problem(f"patterns[{idx}] must be a mapping")
                continue
            pattern_id = item.get('id')
            name = item.get('name')
            if not isinstance(pattern_id, str) or not pattern_id:
                self.problem(f"patterns[{idx}] is missing an id")
                continue
            if pattern_id in patterns:
                self.problem(f"Duplicate pattern id '{pattern_id}'")
                continue
            if not isinstance(name, str) or not name.strip():
                self.problem(f"Pattern '{pattern_id}' is missing a name")
                name = pattern_id
            patterns[pattern_id] = Pattern(id=pattern_id, name=name)

        return patterns

    def _parse_variants(self, raw: Any, patterns: Dict[str, Pattern]) -> Dict[str, Tuple[Variant, ...]]:
        variants: Dict[str, Tuple[Variant, ...]] = {}
        if not isinstance(raw, dict):
            self.problem("variantsByPattern must be a mapping")
            return variants

        for pattern_id, items in raw.items():
            if pattern_id not in patterns:
                self.problem(f"variantsByPattern references unknown pattern '{pattern_id}'")
                continue
            if not isinstance(items, list):
                self.problem(f"variantsByPattern.{pattern_id} must be a list")
                continue

            parsed = []
            for idx, item in enumerate(items):
                where = f"variantsByPattern.{pattern_id}[{idx}]"
                if not isinstance(item, dict):
                    self.problem(f"{where} must be a mapping")
                    continue
                name = item.get('name')
                if not isinstance(name, str) or not name.strip():
                    self.problem(f"{where} is missing a name")
                    continue
                tags = item.get('tags') or []
                if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
                    self.problem(f"{where} tags must be a list of strings")
                    continue
                parsed.append(Variant(name=name, tags=tuple(tags)))

            variants[pattern_id] = tuple(parsed)

        return variants

    def _parse_templates(self, raw: Any, patterns: Dict[str, Pattern]):
        templates: Dict[str, SessionTemplate] = {}
        slots: Dict[ExerciseId, Slot] = {}
        if not isinstance(raw, dict) or not raw:
            self.problem("templates must be a non-empty mapping")
            return templates, slots

        for template_id, body in raw.items():
            if not isinstance(body, dict):
                self.problem(f"templates.{template_id} must be a mapping")
                continue

            name = body.get('name')
            if not isinstance(name, str) or not name.strip():
                self.problem(f"templates.{template_id} is missing a name")
                name = template_id

            optional = body.get('optional', False)
            if not isinstance(optional, bool):
                self.problem(f"templates.{template_id}.optional must be true or false")
                optional = False

            items = body.get('items')
            if not isinstance(items, list) or not items:
                self.problem(f"templates.{template_id} must have at least one item")
                continue

            template_slots = []
            for idx, item in enumerate(items):
                slot = self._parse_slot(template_id, idx, item, patterns, slots)
                if slot is not None:
                    template_slots.append(slot)
                    slots[slot.exercise_id] = slot

            templates[template_id] = SessionTemplate(
                id=template_id,
                name=name,
                slots=tuple(template_slots),
                optional=optional,
            )

        return templates, slots

    def _parse_slot(self, template_id: str, idx: int, item: Any,
                    patterns: Dict[str, Pattern], seen: Dict[ExerciseId, Slot]) -> Optional[Slot]:
        where = f"templates.{template_id}.items[{idx}]"
        if not isinstance(item, dict):
            self.problem(f"{where} must be a mapping")
            return None

        exercise_id = item.get('exerciseId')
        if not isinstance(exercise_id, str) or not exercise_id.strip():
            self.problem(f"{where} is missing an exerciseId")
            return None
        if exercise_id in seen:
            self.problem(
                f"Duplicate exerciseId '{exercise_id}' in {template_id} "
                f"(already used by {seen[exercise_id].template_id})"
            )
            return None

        pattern_id = item.get('patternId')
        if pattern_id not in patterns:
            self.problem(f"{where} ({exercise_id}) references unknown pattern '{pattern_id}'")
            return None

        core = item.get('core', False)
        if not isinstance(core, bool):
            self.problem(f"{where} ({exercise_id}) core must be true or false")
            return None

        increment = item.get('weightIncrement')
        if increment is not None and (not _is_number(increment) or increment <= 0):
            self.problem(f"{where} ({exercise_id}) weightIncrement must be a positive number")
            return None

        sets = item.get('sets')
        rep_min = item.get('repMin')
        rep_max = item.get('repMax')
        target_ok = True

        if not _is_count(sets) or sets <= 0:
            self.target_problems.append(f"{exercise_id}: sets must be a positive integer, got {sets!r}")
            target_ok = False
        if not _is_count(rep_min) or not _is_count(rep_max):
            self.target_problems.append(
                f"{exercise_id}: repMin/repMax must be integers, got {rep_min!r}/{rep_max!r}"
            )
            target_ok = False
        elif rep_min < 1:
            self.target_problems.append(f"{exercise_id}: repMin must be at least 1, got {rep_min}")
            target_ok = False
        elif rep_min > rep_max:
            self.target_problems.append(f"{exercise_id}: repMin {rep_min} is greater than repMax {rep_max}")
            target_ok = False

        if not target_ok:
            return None

        return Slot(
            exercise_id=ExerciseId(exercise_id),
            pattern_id=pattern_id,
            sets=sets,
            rep_min=rep_min,
            rep_max=rep_max,
            core=core,
            weight_increment=float(increment) if increment is not None else None,
            template_id=template_id,
        )

    def _parse_cycle(self, raw: Any, templates: Dict[str, SessionTemplate]) -> List[str]:
        if not isinstance(raw, list) or not raw:
            self.problem("cycle must be a non-empty list of template ids")
            return []

        cycle = []
        for template_id in raw:
            if template_id in cycle:
                self.problem(f"cycle lists '{template_id}' more than once")
                continue
            template = templates.get(template_id)
            if template is None:
                self.problem(f"cycle references unknown template '{template_id}'")
                continue
            if template.optional:
                self.problem(f"Optional template '{template_id}' cannot be part of the cycle")
                continue
            cycle.append(template_id)

        return cycle

    def _check_bonus(self, settings: Settings, cycle: List[str], templates: Dict[str, SessionTemplate]):
        if not settings.offer_upper_c:
            return
        if settings.bonus_anchor not in cycle:
            self.problem(f"Bonus anchor '{settings.bonus_anchor}' is not in the cycle")
        bonus = templates.get(settings.bonus_template)
        if bonus is None:
            self.problem(f"Bonus template '{settings.bonus_template}' is not defined")
        elif not bonus.optional:
            self.problem(f"Bonus template '{settings.bonus_template}' must be marked optional")

    def _check_increment_patterns(self, settings: Settings, patterns: Dict[str, Pattern]):
        for pattern_id in settings.weight_increment_by_pattern:
            if pattern_id not in patterns:
                self.problem(f"settings.weightIncrementByPattern references unknown pattern '{pattern_id}'")


def parse_workout_config(raw: Dict) -> WorkoutConfig:
    """Validate a raw WORKOUT_CONFIG mapping and return the frozen configuration."""
    return _ConfigParser(raw).parse()


def load_workout_config(path: Optional[Path] = None) -> WorkoutConfig:
    """
    Load and validate the workout configuration file.

    Raises ConfigurationError (or InvalidTarget) with every problem found.
    """
    if path is None:
        from config_loader import get_config
        path = get_config().get_workout_config_path()
    path = Path(path)

    if not path.exists():
        logger.error("Workout configuration not found", path=str(path))
        raise ConfigurationError(f"Workout configuration not found: {path}")

    try:
        with open(path, 'r') as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error("Workout configuration is not valid YAML", path=str(path))
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not raw:
        raise ConfigurationError(f"Workout configuration is empty: {path}")

    try:
        workout_config = parse_workout_config(raw)
    except ConfigurationError as e:
        logger.error("Workout configuration rejected", path=str(path), problems=len(e.problems))
        raise

    logger.debug(
        "Workout configuration loaded",
        path=str(path),
        templates=len(workout_config.templates),
        slots=len(workout_config.slots),
    )
    return workout_config


def validate_workout_config_interactive(path: Optional[Path] = None) -> bool:
    """Validate a configuration file and print the result."""
    logger.header(f"VALIDATING: {path or 'workout configuration'}")

    try:
        workout_config = load_workout_config(path)
    except ConfigurationError as e:
        kind = "TARGETS" if isinstance(e, InvalidTarget) else "CONFIGURATION"
        logger.subheader(f"INVALID {kind}")
        for problem in e.problems or [str(e)]:
            logger.detail(problem)
        return False

    logger.detail(f"Cycle: {' -> '.join(workout_config.cycle)}")
    for template in workout_config.templates.values():
        marker = " (optional)" if template.optional else ""
        logger.detail(f"{template.id}{marker}: {len(template.slots)} slots", indent=2)
    logger.success("Configuration is valid")
    return True


if __name__ == '__main__':
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    sys.exit(0 if validate_workout_config_interactive(target) else 1)
