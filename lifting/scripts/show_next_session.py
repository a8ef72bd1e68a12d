#!/usr/bin/env python3
"""
Show the next session: template, rest advice and per-slot targets.

Usage:
    python3 show_next_session.py
    python3 show_next_session.py --environment home
    python3 show_next_session.py --decline      # skip the pending bonus offer
    python3 show_next_session.py --rest-day     # log a rest day first
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
from config_loader import get_config
from constants import ENVIRONMENT_TAGS
from errors import ConfigurationError
from logger import get_logger
from session_store import CollectionStore
from workout_config import load_workout_config
from workout_engine import WorkoutEngine

logger = get_logger()


def _fmt_target(target: dict) -> str:
    low, high = target['suggestedReps']
    reps = f"{low}-{high}" if low != high else f"{low}"
    weight = target['suggestedWeight']
    if weight is None:
        return f"{reps} reps (choose a starting weight)"
    return f"{weight:g} x {reps} reps"


def show_next_session(engine: WorkoutEngine, environment: str = None):
    upcoming = engine.next_session()
    plan = engine.session_plan(upcoming['templateId'], environment)

    logger.header(f"NEXT SESSION: {upcoming['templateName']}")
    if upcoming['isOptionalOffer']:
        logger.detail("Optional bonus session. Run with --decline to continue the cycle instead.")

    count = upcoming['consecutiveCount']
    if upcoming['restRecommended']:
        logger.warning(f"{count} sessions since your last rest day. A rest day is recommended.")
    else:
        logger.detail(f"Sessions since last rest day: {count}")
    if upcoming['lastRestDate']:
        logger.detail(f"Last rest day: {upcoming['lastRestDate'][:10]}")

    for slot in plan['slots']:
        marker = " [core]" if slot['core'] else ""
        logger.subheader(f"{slot['patternName']}{marker}: {slot['sets']} sets")
        logger.detail(_fmt_target(slot['target']))
        logger.detail(slot['target']['rationale'], indent=2)
        names = [v['name'] for v in slot['variants']]
        if names:
            logger.detail(f"Variants: {', '.join(names)}", indent=2)
        elif environment:
            logger.detail(f"No configured variants for '{environment}' (a custom variant is fine)", indent=2)


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Show the next workout session and targets')
    parser.add_argument('--data-dir', help='Directory holding the lifeos.*.json collections')
    parser.add_argument('--workout-config', help='Path to workout_config.yaml')
    parser.add_argument('--environment', help=f"Environment tag for variants ({', '.join(ENVIRONMENT_TAGS)})")
    parser.add_argument('--decline', action='store_true', help='Decline the pending bonus session offer')
    parser.add_argument('--rest-day', action='store_true', help='Log a rest day before showing the next session')

    args = parser.parse_args()
    config = get_config()
    logger.set_level(config.get('logging.level', 'INFO'))
    if config.get('logging.format') == 'json':
        logger.set_json_mode(True)

    try:
        workout_config = load_workout_config(Path(args.workout_config) if args.workout_config else None)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    data_dir = Path(args.data_dir) if args.data_dir else config.get_data_dir()
    engine = WorkoutEngine(workout_config, CollectionStore(data_dir))

    if args.rest_day:
        engine.log_rest_day()
        logger.success("Rest day logged")

    if args.decline:
        engine.decline_bonus_offer()

    show_next_session(engine, args.environment or config.get('training.default_environment') or None)


if __name__ == '__main__':
    main()
