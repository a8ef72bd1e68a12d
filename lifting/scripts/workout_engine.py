#!/usr/bin/env python3
"""
Workout engine: the operations the UI (CLI or HTTP) calls.

Ties the workout configuration to the collection store. Every decision is
recomputed from persisted history on each call; the only extra state kept is
the workoutMeta record that remembers a declined bonus offer.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

sys.path.insert(0, str(Path(__file__).parent))
from constants import BONUS_DECISION_ID, SESSIONS_COLLECTION, WORKOUT_META_COLLECTION
from cycle_scheduler import NextSession, last_training_session, next_session
from errors import HistoryInconsistency
from history import ExercisePerformance, SessionRecord, parse_history
from logger import get_logger
from progression import ProgressionTarget, exercise_summary, suggest_target
from rest_advisor import should_recommend_rest
from session_progress import next_incomplete_slot, slot_progress
from session_store import CollectionStore, now_iso
from variant_resolver import build_performance, eligible_variants
from workout_config import WorkoutConfig

logger = get_logger()


class WorkoutEngine:
    """Façade over configuration + persisted sessions."""

    def __init__(self, workout_config: WorkoutConfig, store: CollectionStore):
        self.workout_config = workout_config
        self.store = store

    # =========================================================================
    # HISTORY
    # =========================================================================

    def history(self) -> List[SessionRecord]:
        return parse_history(self.store.get_collection(SESSIONS_COLLECTION), self.workout_config)

    def _offer_declined(self, history: List[SessionRecord]) -> bool:
        decision = self.store.get(WORKOUT_META_COLLECTION, BONUS_DECISION_ID)
        if not decision:
            return False
        last = last_training_session(history)
        return last is not None and last.id is not None and decision.get('anchorSessionId') == last.id

    def _next(self, history: List[SessionRecord]) -> NextSession:
        return next_session(
            self.workout_config.cycle,
            history,
            self.workout_config.bonus_policy(),
            offer_declined=self._offer_declined(history),
        )

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def next_session(self) -> Dict[str, Any]:
        """Next template plus rest advice."""
        history = self.history()
        upcoming = self._next(history)
        advice = should_recommend_rest(
            history, self.workout_config.settings.rest_recommend_after_consecutive_sessions
        )
        template = self.workout_config.template(upcoming.template_id)

        return {
            'templateId': template.id,
            'templateName': template.name,
            'isOptionalOffer': upcoming.is_optional_offer,
            'restRecommended': advice.recommend,
            'consecutiveCount': advice.consecutive_count,
            'lastRestDate': advice.last_rest_date.isoformat() if advice.last_rest_date else None,
        }

    def decline_bonus_offer(self) -> Dict[str, Any]:
        """
        Decline the pending bonus offer, if there is one.

        The decision is tied to the anchor session's record id, so the offer
        comes back after the anchor is trained again next cycle.
        """
        history = self.history()
        upcoming = self._next(history)

        if not upcoming.is_optional_offer:
            logger.info("No bonus offer pending; nothing to decline", template_id=upcoming.template_id)
            return self.next_session()

        anchor = last_training_session(history)
        self.store.upsert(WORKOUT_META_COLLECTION, {
            'id': BONUS_DECISION_ID,
            'anchorSessionId': anchor.id,
            'templateId': upcoming.template_id,
            'declinedAt': now_iso(),
        })
        logger.info("Bonus offer declined", template_id=upcoming.template_id, anchor_session=anchor.id)
        return self.next_session()

    # =========================================================================
    # TARGETS & PLANS
    # =========================================================================

    def slot_target(self, exercise_id: str, history: Optional[List[SessionRecord]] = None) -> ProgressionTarget:
        slot = self.workout_config.slot(exercise_id)
        settings = self.workout_config.settings
        return suggest_target(
            exercise_id,
            slot,
            self.history() if history is None else history,
            weight_increment=self.workout_config.increment_for(slot),
            deload_fraction=settings.deload_fraction,
            failed_sessions_before_deload=settings.deload_after_failed_sessions,
        )

    def session_plan(self, template_id: Optional[str] = None,
                     environment_tag: Optional[str] = None) -> Dict[str, Any]:
        """Template slots with targets and eligible variants. Defaults to the next session."""
        history = self.history()
        if template_id is None:
            template_id = self._next(history).template_id
        template = self.workout_config.template(template_id)

        slots = []
        for slot in template.slots:
            variants = eligible_variants(self.workout_config, slot.pattern_id, environment_tag)
            slots.append({
                **slot.to_dict(),
                'patternName': self.workout_config.pattern(slot.pattern_id).name,
                'target': self.slot_target(slot.exercise_id, history).to_dict(),
                'variants': [v.to_dict() for v in variants],
            })

        return {
            'templateId': template.id,
            'templateName': template.name,
            'optional': template.optional,
            'environment': environment_tag or None,
            'slots': slots,
        }

    def eligible_variants(self, pattern_id: str, environment_tag: Optional[str] = None):
        return eligible_variants(self.workout_config, pattern_id, environment_tag)

    def exercise_summary(self, exercise_id: str) -> Dict[str, Any]:
        self.workout_config.slot(exercise_id)
        return exercise_summary(self.history(), exercise_id).to_dict()

    def session_progress(self, template_id: str, exercises: List[Dict[str, Any]],
                         current_exercise_id: Optional[str] = None) -> Dict[str, Any]:
        """Logged sets per slot for an in-progress session and the slot to do next."""
        template = self.workout_config.template(template_id)
        entries = [ExercisePerformance.from_dict(e) for e in exercises]
        upcoming = next_incomplete_slot(template, entries, current_exercise_id)
        return {
            'templateId': template.id,
            'slots': [p.to_dict() for p in slot_progress(template, entries)],
            'nextExerciseId': upcoming.exercise_id if upcoming else None,
        }

    # =========================================================================
    # RECORDING
    # =========================================================================

    def complete_session(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a finished session (or rest day) record.

        The record is stored exactly as given (an id is added if missing).
        Raises HistoryInconsistency if it cannot be read back as history, or
        if a configured slot was performed without naming a variant.
        """
        parsed = SessionRecord.from_dict(record)

        if not parsed.rest_day and parsed.template_id not in self.workout_config.templates:
            raise HistoryInconsistency(f"Unknown templateId '{parsed.template_id}'", parsed.id)

        for entry in parsed.exercises:
            if not self.workout_config.has_exercise(entry.exercise_id):
                logger.warning(
                    "Session contains an exerciseId that is not configured",
                    exercise_id=entry.exercise_id,
                    template_id=parsed.template_id,
                )
                continue
            self._record_variant(entry, parsed.id)

        stored = self.store.upsert(SESSIONS_COLLECTION, record)
        self.store.touch_meta()
        logger.info(
            "Session recorded",
            session_id=stored['id'],
            template_id=parsed.template_id,
            rest_day=parsed.rest_day,
        )
        return stored

    def _record_variant(self, entry: ExercisePerformance, record_id: Optional[str]) -> ExercisePerformance:
        """Check a performed entry against its slot; the variant never replaces the exerciseId."""
        slot = self.workout_config.slot(entry.exercise_id)
        try:
            return build_performance(slot, entry.variant_name, entry.sets, entry.skipped, self.workout_config)
        except ValueError as e:
            raise HistoryInconsistency(str(e), record_id) from e

    def log_rest_day(self, date: Optional[str] = None) -> Dict[str, Any]:
        """Record a rest day. Resets the consecutive-session count, not the cycle."""
        return self.complete_session({
            'date': date or now_iso(),
            'templateId': None,
            'restDay': True,
            'exercises': [],
        })
